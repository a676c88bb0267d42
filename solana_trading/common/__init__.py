from .async_utils import collect_outcomes, gather_or_cancel, guarded_call
from .lamports import LAMPORTS_PER_SOL, Lamports
from .logging import log_event
from .once import OnceCell

__all__ = [
    "LAMPORTS_PER_SOL",
    "Lamports",
    "OnceCell",
    "collect_outcomes",
    "gather_or_cancel",
    "guarded_call",
    "log_event",
]
