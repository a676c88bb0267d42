from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.signature import Signature

from solana_trading.common import collect_outcomes, guarded_call, log_event

from .errors import BroadcastError, ProviderSubmissionError
from .fee_policy import resolve_fee, resolve_tip
from .ledger import Ledger
from .transaction import SignedTransaction, TransactionVersion, build_transaction, compose_instructions
from .types import BatchTxItem, OperationKind, PriorityFee

if TYPE_CHECKING:
    from solana_trading.swqos.runtime import SWQoSRuntime


class TradingEndpoint:
    """Ledger reads plus fan-out of one signed transaction per relay runtime."""

    def __init__(
        self,
        *,
        ledger: Ledger,
        runtimes: Sequence[SWQoSRuntime],
        logger: logging.Logger,
        transaction_version: TransactionVersion = "legacy",
    ) -> None:
        if not runtimes:
            raise ValueError("At least one relay runtime is required.")
        self.ledger = ledger
        self.runtimes = list(runtimes)
        self._logger = logger
        self._transaction_version = transaction_version

    async def get_latest_blockhash(self) -> Hash:
        return await self.ledger.get_latest_blockhash()

    async def close(self) -> None:
        for runtime in self.runtimes:
            await runtime.close()
        await guarded_call(
            self.ledger.close,
            logger=self._logger,
            event="ledger_close_failed",
            message="Failed to close ledger client",
        )

    async def build_and_broadcast_tx(
        self,
        *,
        kind: OperationKind,
        payer: Keypair,
        instructions: Sequence[Instruction],
        blockhashes: Sequence[Hash],
        nonce_instruction: Instruction | None = None,
        additional_fee: PriorityFee | None = None,
        additional_tip: int = 0,
        extra_signers: Sequence[Keypair] = (),
    ) -> list[Signature]:
        """Sign one transaction per runtime and submit them all concurrently.

        Runtime ``i`` signs against ``blockhashes[i % len(blockhashes)]``. Every
        transaction is built before any network I/O, so a configuration error
        aborts the call with nothing submitted.
        """
        if not blockhashes:
            raise ValueError("At least one blockhash is required.")

        planned: list[tuple[SWQoSRuntime, SignedTransaction]] = []
        for index, runtime in enumerate(self.runtimes):
            tip = resolve_tip(
                runtime.config,
                kind,
                tip_account=runtime.tip_account(),
                provider=runtime.name,
                additional_tip=additional_tip,
            )
            composed = compose_instructions(
                payer=payer.pubkey(),
                instructions=instructions,
                nonce_instruction=nonce_instruction,
                fee=resolve_fee(runtime.config, kind, additional_fee),
                tip=tip,
            )
            transaction = build_transaction(
                payer,
                composed,
                blockhashes[index % len(blockhashes)],
                extra_signers,
                version=self._transaction_version,
            )
            planned.append((runtime, transaction))

        signatures = [transaction.signature for _, transaction in planned]
        log_event(
            self._logger,
            level="info",
            event="broadcast_built",
            message="Signed transactions for relay broadcast",
            kind=kind,
            runtime_count=len(planned),
            signatures=[str(signature) for signature in signatures],
        )

        outcomes = await collect_outcomes(
            runtime.send_transaction(transaction) for runtime, transaction in planned
        )
        self._raise_for_failures(
            [runtime for runtime, _ in planned],
            outcomes,
            signatures=signatures,
            event_prefix="broadcast",
            kind=kind,
        )
        return signatures

    async def build_and_broadcast_batch_txs(
        self,
        *,
        kind: OperationKind,
        items: Sequence[BatchTxItem],
        blockhash: Hash,
        additional_fee: PriorityFee | None = None,
        additional_tip: int = 0,
    ) -> list[Signature]:
        """Sign every item once per runtime (v0 transactions) and submit each runtime's set in one request."""
        if not items:
            return []

        planned: list[tuple[SWQoSRuntime, list[SignedTransaction]]] = []
        for runtime in self.runtimes:
            tip = resolve_tip(
                runtime.config,
                kind,
                tip_account=runtime.tip_account(),
                provider=runtime.name,
                additional_tip=additional_tip,
            )
            fee = resolve_fee(runtime.config, kind, additional_fee)
            transactions = [
                build_transaction(
                    item.payer,
                    compose_instructions(
                        payer=item.payer.pubkey(),
                        instructions=item.instructions,
                        fee=fee,
                        tip=tip,
                    ),
                    blockhash,
                    version="v0",
                )
                for item in items
            ]
            planned.append((runtime, transactions))

        signatures = [transaction.signature for _, transactions in planned for transaction in transactions]
        log_event(
            self._logger,
            level="info",
            event="batch_broadcast_built",
            message="Signed batch transactions for relay broadcast",
            kind=kind,
            runtime_count=len(planned),
            item_count=len(items),
        )

        outcomes = await collect_outcomes(
            runtime.send_transactions(transactions) for runtime, transactions in planned
        )
        self._raise_for_failures(
            [runtime for runtime, _ in planned],
            outcomes,
            signatures=signatures,
            event_prefix="batch_broadcast",
            kind=kind,
        )
        return signatures

    def _raise_for_failures(
        self,
        runtimes: Sequence[SWQoSRuntime],
        outcomes: Sequence[object],
        *,
        signatures: list[Signature],
        event_prefix: str,
        kind: OperationKind,
    ) -> None:
        failures: list[ProviderSubmissionError] = []
        for runtime, outcome in zip(runtimes, outcomes):
            if isinstance(outcome, ProviderSubmissionError):
                failures.append(outcome)
            elif isinstance(outcome, Exception):
                failures.append(ProviderSubmissionError(runtime.name, outcome))

        if failures:
            log_event(
                self._logger,
                level="error",
                event=f"{event_prefix}_failed",
                message="Relay broadcast finished with failures",
                kind=kind,
                failed_providers=[failure.provider for failure in failures],
                signatures=[str(signature) for signature in signatures],
            )
            raise BroadcastError(signatures=signatures, failures=failures)

        log_event(
            self._logger,
            level="info",
            event=f"{event_prefix}_completed",
            message="Relay broadcast completed",
            kind=kind,
            runtime_count=len(runtimes),
        )
