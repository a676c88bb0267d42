from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Sequence

from solders.pubkey import Pubkey

from solana_trading.common import guarded_call, log_event
from solana_trading.trading.errors import ProviderSubmissionError
from solana_trading.trading.transaction import SignedTransaction

from .base import SWQoSClient
from .http import SWQOS_RPC_TIMEOUT_SECONDS

if TYPE_CHECKING:
    from .config import SWQoSConfig


class SWQoSRuntime:
    """One relay client bound to its provider config, with a per-submission timeout."""

    def __init__(
        self,
        *,
        config: SWQoSConfig,
        client: SWQoSClient,
        logger: logging.Logger,
        timeout_seconds: float = SWQOS_RPC_TIMEOUT_SECONDS,
    ) -> None:
        self.config = config
        self.client = client
        self._logger = logger
        self._timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return self.client.name

    def tip_account(self) -> Pubkey | None:
        return self.client.tip_account()

    async def send_transaction(self, transaction: SignedTransaction) -> None:
        await self._submit(self.client.send_transaction(transaction), [transaction])

    async def send_transactions(self, transactions: Sequence[SignedTransaction]) -> None:
        await self._submit(self.client.send_transactions(transactions), transactions)

    async def close(self) -> None:
        await guarded_call(
            self.client.close,
            logger=self._logger,
            event="swqos_close_failed",
            message="Failed to close relay client",
            provider=self.name,
        )

    async def _submit(self, submission: Awaitable[None], transactions: Sequence[SignedTransaction]) -> None:
        signatures = [str(transaction.signature) for transaction in transactions]
        try:
            await asyncio.wait_for(submission, timeout=self._timeout_seconds)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as error:
            self._log_failure(signatures, f"timed out after {self._timeout_seconds}s")
            raise ProviderSubmissionError(
                self.name, f"submission timed out after {self._timeout_seconds}s"
            ) from error
        except Exception as error:
            self._log_failure(signatures, str(error))
            raise ProviderSubmissionError(self.name, error) from error

        log_event(
            self._logger,
            level="info",
            event="swqos_submit_succeeded",
            message="Relay submission succeeded",
            provider=self.name,
            signatures=signatures,
        )

    def _log_failure(self, signatures: list[str], error: str) -> None:
        log_event(
            self._logger,
            level="warning",
            event="swqos_submit_failed",
            message="Relay submission failed",
            provider=self.name,
            signatures=signatures,
            error=error,
        )
