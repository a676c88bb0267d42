from __future__ import annotations

from typing import Sequence

from solana_trading.trading.transaction import SignedTransaction

from .http import RelayHttpClient, jsonrpc_body


class DefaultRelayClient(RelayHttpClient):
    """Plain JSON-RPC endpoint; also fronts relays that authenticate through the URL."""

    provider_name = "default"

    async def send_transaction(self, transaction: SignedTransaction) -> None:
        body = jsonrpc_body("sendTransaction", [transaction.to_base64(), {"encoding": "base64"}])
        await self._json_post(self._endpoint, body, transactions=[transaction])

    async def send_transactions(self, transactions: Sequence[SignedTransaction]) -> None:
        if not transactions:
            return
        body = jsonrpc_body(
            "sendTransactions",
            [[transaction.to_base64() for transaction in transactions], {"encoding": "base64"}],
        )
        await self._json_post(self._endpoint, body, transactions=transactions)
