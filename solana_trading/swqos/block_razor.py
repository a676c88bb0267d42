from __future__ import annotations

from typing import Sequence

from solana_trading.trading.transaction import SignedTransaction

from .http import RelayHttpClient
from .nextblock import submit_batch_body

BLOCK_RAZOR_ENDPOINTS = {
    "frankfurt": "http://frankfurt.solana.blockrazor.xyz:443",
    "newyork": "http://newyork.solana.blockrazor.xyz:443",
    "tokyo": "http://tokyo.solana.blockrazor.xyz:443",
    "amsterdam": "http://amsterdam.solana.blockrazor.xyz:443",
}


class BlockRazorClient(RelayHttpClient):
    provider_name = "blockrazor"

    async def send_transaction(self, transaction: SignedTransaction) -> None:
        await self._json_post(
            f"{self._endpoint}/sendTransaction",
            {"transaction": transaction.to_base64()},
            transactions=[transaction],
        )

    async def send_transactions(self, transactions: Sequence[SignedTransaction]) -> None:
        if not transactions:
            return
        await self._json_post(
            f"{self._endpoint}/api/v2/submit-batch",
            submit_batch_body(transactions),
            transactions=transactions,
        )
