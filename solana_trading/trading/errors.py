from __future__ import annotations

from typing import Sequence

from solders.signature import Signature


class TradingError(RuntimeError):
    pass


class PoolUninitializedError(TradingError):
    pass


class VenueUnsupportedOperationError(TradingError):
    def __init__(self, venue: str, operation: str) -> None:
        super().__init__(f"{operation} is not supported on venue {venue}")
        self.venue = venue
        self.operation = operation


class VenueNotInitializedError(TradingError):
    def __init__(self, venue: str) -> None:
        super().__init__(f"Venue {venue} is not initialized; call initialize() first.")
        self.venue = venue


class MissingFeeOrTipConfigurationError(TradingError):
    pass


class InstructionBuildError(TradingError):
    pass


class SigningError(TradingError):
    pass


class LedgerQueryError(TradingError):
    def __init__(self, message: str, *, method: str, code: int | None = None) -> None:
        super().__init__(message)
        self.method = method
        self.code = code


class ProviderSubmissionError(TradingError):
    def __init__(self, provider: str, cause: BaseException | str) -> None:
        super().__init__(f"{provider}: {cause}")
        self.provider = provider
        self.cause = cause


class BroadcastError(TradingError):
    """One or more relay submissions failed.

    ``signatures`` holds the signature of every transaction that was built for the
    call, including those whose submission failed, so inclusion can be checked later.
    """

    def __init__(
        self,
        *,
        signatures: Sequence[Signature],
        failures: Sequence[ProviderSubmissionError],
    ) -> None:
        providers = ", ".join(failure.provider for failure in failures)
        details = "; ".join(str(failure) for failure in failures)
        super().__init__(
            f"Submission failed on {len(failures)} provider(s) [{providers}]: {details}"
        )
        self.signatures = list(signatures)
        self.failures = list(failures)

    @property
    def failed_providers(self) -> list[str]:
        return [failure.provider for failure in self.failures]
