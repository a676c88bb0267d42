from __future__ import annotations

from typing import Any, Sequence

from solana_trading.trading.transaction import SignedTransaction

from .http import RelayHttpClient

NEXTBLOCK_ENDPOINTS = {
    "frankfurt": "https://fra.nextblock.io",
    "newyork": "https://ny.nextblock.io",
}


def submit_batch_body(transactions: Sequence[SignedTransaction]) -> dict[str, Any]:
    return {
        "entries": [
            {"transaction": {"content": transaction.to_base64()}}
            for transaction in transactions
        ],
    }


class NextBlockClient(RelayHttpClient):
    provider_name = "nextblock"

    def _submit_body(self, transaction: SignedTransaction) -> dict[str, Any]:
        return {
            "transaction": {"content": transaction.to_base64()},
            "frontRunningProtection": False,
        }

    async def send_transaction(self, transaction: SignedTransaction) -> None:
        await self._json_post(
            f"{self._endpoint}/api/v2/submit",
            self._submit_body(transaction),
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
