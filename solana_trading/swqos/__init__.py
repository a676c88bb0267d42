from .base import SWQoSClient
from .block_razor import BlockRazorClient
from .blox import BloxClient
from .config import SWQOS_KINDS, SWQoSConfig, SWQoSKind
from .default import DefaultRelayClient
from .http import SWQOS_RPC_TIMEOUT_SECONDS, RelayHttpClient, RelayRateLimitError
from .jito import JitoClient
from .nextblock import NextBlockClient
from .runtime import SWQoSRuntime
from .tip_accounts import chunk_accounts

__all__ = [
    "SWQOS_KINDS",
    "SWQOS_RPC_TIMEOUT_SECONDS",
    "BlockRazorClient",
    "BloxClient",
    "DefaultRelayClient",
    "JitoClient",
    "NextBlockClient",
    "RelayHttpClient",
    "RelayRateLimitError",
    "SWQoSClient",
    "SWQoSConfig",
    "SWQoSKind",
    "SWQoSRuntime",
    "chunk_accounts",
]
