from .endpoint import TradingEndpoint
from .errors import (
    BroadcastError,
    InstructionBuildError,
    LedgerQueryError,
    MissingFeeOrTipConfigurationError,
    PoolUninitializedError,
    ProviderSubmissionError,
    SigningError,
    TradingError,
    VenueNotInitializedError,
    VenueUnsupportedOperationError,
)
from .ledger import Ledger, LedgerClient
from .trader import TradeQuote, VenueTrader
from .types import (
    SELL_ALL,
    BatchBuyParam,
    BatchSellParam,
    CreateAta,
    CreateParams,
    PoolInfo,
    PriorityFee,
    SwapInfo,
    TipFee,
)

__all__ = [
    "SELL_ALL",
    "BatchBuyParam",
    "BatchSellParam",
    "BroadcastError",
    "CreateAta",
    "CreateParams",
    "InstructionBuildError",
    "Ledger",
    "LedgerClient",
    "LedgerQueryError",
    "MissingFeeOrTipConfigurationError",
    "PoolInfo",
    "PoolUninitializedError",
    "PriorityFee",
    "ProviderSubmissionError",
    "SigningError",
    "SwapInfo",
    "TipFee",
    "TradeQuote",
    "TradingEndpoint",
    "TradingError",
    "VenueNotInitializedError",
    "VenueTrader",
    "VenueUnsupportedOperationError",
]
