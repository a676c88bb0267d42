from __future__ import annotations

from typing import Protocol, Sequence

from solders.pubkey import Pubkey

from solana_trading.trading.transaction import SignedTransaction


class SWQoSClient(Protocol):
    """A relay that accepts signed transactions for landing."""

    @property
    def name(self) -> str:
        ...

    async def send_transaction(self, transaction: SignedTransaction) -> None:
        ...

    async def send_transactions(self, transactions: Sequence[SignedTransaction]) -> None:
        ...

    def tip_account(self) -> Pubkey | None:
        ...

    async def close(self) -> None:
        ...
