from .logging import JsonFormatter, setup_logger
from .settings import AppSettings, parse_private_key, parse_swqos_configs

__all__ = [
    "AppSettings",
    "JsonFormatter",
    "parse_private_key",
    "parse_swqos_configs",
    "setup_logger",
]
