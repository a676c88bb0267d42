from __future__ import annotations

from typing import Sequence

from solana_trading.trading.transaction import SignedTransaction

from .http import RelayHttpClient, jsonrpc_body

JITO_ENDPOINTS = {
    "mainnet": "https://mainnet.block-engine.jito.wtf",
    "frankfurt": "https://frankfurt.mainnet.block-engine.jito.wtf",
    "amsterdam": "https://amsterdam.mainnet.block-engine.jito.wtf",
    "newyork": "https://ny.mainnet.block-engine.jito.wtf",
    "tokyo": "https://tokyo.mainnet.block-engine.jito.wtf",
}


class JitoClient(RelayHttpClient):
    provider_name = "jito"

    async def send_transaction(self, transaction: SignedTransaction) -> None:
        body = jsonrpc_body("sendTransaction", [transaction.to_base64(), {"encoding": "base64"}])
        await self._json_post(f"{self._endpoint}/api/v1/transactions", body, transactions=[transaction])

    async def send_transactions(self, transactions: Sequence[SignedTransaction]) -> None:
        """Submit as one bundle; the block engine lands it all-or-nothing."""
        if not transactions:
            return
        body = jsonrpc_body(
            "sendBundle",
            [[transaction.to_base64() for transaction in transactions], {"encoding": "base64"}],
        )
        await self._json_post(f"{self._endpoint}/api/v1/bundles", body, transactions=transactions)
