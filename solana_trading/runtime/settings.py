from __future__ import annotations

import contextlib
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from solders.keypair import Keypair

from solana_trading.swqos import SWQOS_RPC_TIMEOUT_SECONDS, SWQoSConfig
from solana_trading.trading.transaction import TransactionVersion


def to_float(value: Any, default: float) -> float:
    try:
        if value is None or str(value).strip() == "":
            return default
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def normalize_transaction_version(value: str) -> TransactionVersion:
    version = (value or "").strip().lower()
    if version == "v0":
        return "v0"
    return "legacy"


def parse_swqos_configs(raw: str) -> list[SWQoSConfig]:
    """Parse a JSON list of relay entries; a single object is accepted as a one-entry list."""
    if not raw.strip():
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as error:
        raise ValueError(f"SWQOS_CONFIG is not valid JSON: {error}") from error

    entries = parsed if isinstance(parsed, list) else [parsed]
    configs: list[SWQoSConfig] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"SWQOS_CONFIG entry {index} must be an object, got {entry!r}")
        configs.append(SWQoSConfig.from_dict(entry))
    return configs


def parse_private_key(raw: str) -> Keypair:
    value = raw.strip()
    if not value:
        raise ValueError("PRIVATE_KEY is required.")

    if value.startswith("["):
        arr = json.loads(value)
        if not isinstance(arr, list):
            raise ValueError("PRIVATE_KEY JSON must be an integer array.")
        return Keypair.from_bytes(bytes(arr))

    with contextlib.suppress(Exception):
        return Keypair.from_base58_string(value)

    raise ValueError("Unsupported PRIVATE_KEY format.")


@dataclass(slots=True)
class AppSettings:
    rpc_url: str
    private_key: str
    swqos: list[SWQoSConfig] = field(default_factory=list)
    swqos_timeout_seconds: float = SWQOS_RPC_TIMEOUT_SECONDS
    ledger_timeout_seconds: float = 10.0
    transaction_version: TransactionVersion = "legacy"
    log_level: str = "info"

    @classmethod
    def from_env(cls) -> "AppSettings":
        raw_swqos = os.getenv("SWQOS_CONFIG", "")
        config_file = os.getenv("SWQOS_CONFIG_FILE", "").strip()
        if not raw_swqos.strip() and config_file:
            raw_swqos = Path(config_file).read_text(encoding="utf-8")

        return cls(
            rpc_url=os.getenv("RPC_URL", "").strip(),
            private_key=os.getenv("PRIVATE_KEY", ""),
            swqos=parse_swqos_configs(raw_swqos),
            swqos_timeout_seconds=max(
                0.5,
                to_float(os.getenv("SWQOS_TIMEOUT_SECONDS"), SWQOS_RPC_TIMEOUT_SECONDS),
            ),
            ledger_timeout_seconds=max(0.5, to_float(os.getenv("LEDGER_TIMEOUT_SECONDS"), 10.0)),
            transaction_version=normalize_transaction_version(os.getenv("TRANSACTION_VERSION", "legacy")),
            log_level=os.getenv("LOG_LEVEL", "info").strip().lower() or "info",
        )

    def keypair(self) -> Keypair:
        return parse_private_key(self.private_key)
