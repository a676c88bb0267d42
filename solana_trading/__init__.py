from .client import TradingClient, TradingConfig

__all__ = [
    "TradingClient",
    "TradingConfig",
]
