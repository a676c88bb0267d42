from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence, get_args

from solders.pubkey import Pubkey

from solana_trading.common import Lamports
from solana_trading.trading.types import PriorityFee, to_int

from .base import SWQoSClient
from .block_razor import BLOCK_RAZOR_ENDPOINTS, BlockRazorClient
from .blox import BLOX_ENDPOINTS, BloxClient
from .default import DefaultRelayClient
from .http import SWQOS_RPC_TIMEOUT_SECONDS, RelayHttpClient
from .jito import JITO_ENDPOINTS, JitoClient
from .nextblock import NEXTBLOCK_ENDPOINTS, NextBlockClient
from .runtime import SWQoSRuntime
from .tip_accounts import (
    BLOCK_RAZOR_TIP_ACCOUNTS,
    BLOX_TIP_ACCOUNTS,
    JITO_TIP_ACCOUNTS,
    NEXTBLOCK_TIP_ACCOUNTS,
    chunk_accounts,
)

SWQoSKind = Literal["default", "jito", "nextblock", "blox", "blockrazor"]
SWQOS_KINDS: tuple[str, ...] = get_args(SWQoSKind)


@dataclass(slots=True, frozen=True)
class _ProviderSpec:
    client_cls: type[RelayHttpClient]
    tip_accounts: tuple[Pubkey, ...]
    auth_header_name: str | None
    endpoints: dict[str, str] = field(default_factory=dict)
    default_region: str = ""

    def endpoint_for(self, region: str) -> str:
        return self.endpoints.get(region or self.default_region, "")


PROVIDERS: dict[str, _ProviderSpec] = {
    "default": _ProviderSpec(DefaultRelayClient, (), None),
    "jito": _ProviderSpec(JitoClient, JITO_TIP_ACCOUNTS, "x-jito-auth", JITO_ENDPOINTS, "mainnet"),
    "nextblock": _ProviderSpec(NextBlockClient, NEXTBLOCK_TIP_ACCOUNTS, "Authorization", NEXTBLOCK_ENDPOINTS, "frankfurt"),
    "blox": _ProviderSpec(BloxClient, BLOX_TIP_ACCOUNTS, "Authorization", BLOX_ENDPOINTS, "frankfurt"),
    "blockrazor": _ProviderSpec(BlockRazorClient, BLOCK_RAZOR_TIP_ACCOUNTS, "apikey", BLOCK_RAZOR_ENDPOINTS, "frankfurt"),
}


def _optional_tip(value: Any) -> Lamports | None:
    if value is None or str(value).strip() == "":
        return None
    return Lamports.from_sol(value)


def _optional_fee(value: Any) -> PriorityFee | None:
    if not isinstance(value, dict):
        return None
    return PriorityFee.from_dict(value)


@dataclass(slots=True, frozen=True)
class SWQoSConfig:
    kind: SWQoSKind
    endpoint: str
    concurrency: int = 1
    auth_token: str = ""
    auth_header: tuple[str, str] | None = None
    buy_tip: Lamports | None = None
    buy_fee: PriorityFee | None = None
    sell_tip: Lamports | None = None
    sell_fee: PriorityFee | None = None
    tip_accounts: tuple[Pubkey, ...] | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in PROVIDERS:
            raise ValueError(f"Unknown relay kind {self.kind!r}; expected one of {', '.join(SWQOS_KINDS)}")
        object.__setattr__(self, "concurrency", max(1, int(self.concurrency)))

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SWQoSConfig":
        kind = str(payload.get("kind") or "").strip().lower()
        if kind not in PROVIDERS:
            raise ValueError(f"Unknown relay kind {kind!r}; expected one of {', '.join(SWQOS_KINDS)}")

        region = str(payload.get("region") or "").strip().lower().replace("_", "").replace("-", "")
        endpoint = str(payload.get("endpoint") or PROVIDERS[kind].endpoint_for(region)).strip()
        if not endpoint:
            if region:
                raise ValueError(f"Relay {kind} has no endpoint for region {region!r}.")
            raise ValueError(f"Relay {kind} requires an endpoint.")

        raw_header = payload.get("auth_header")
        auth_header: tuple[str, str] | None = None
        if isinstance(raw_header, (list, tuple)) and len(raw_header) == 2:
            auth_header = (str(raw_header[0]), str(raw_header[1]))

        raw_accounts = payload.get("tip_accounts")
        tip_accounts: tuple[Pubkey, ...] | None = None
        if isinstance(raw_accounts, list):
            tip_accounts = tuple(Pubkey.from_string(str(item).strip()) for item in raw_accounts if str(item).strip())
            if not tip_accounts and PROVIDERS[kind].tip_accounts:
                raise ValueError(f"Relay {kind} needs at least one tip account; omit tip_accounts to use its published pool.")

        return cls(
            kind=kind,
            endpoint=endpoint,
            concurrency=to_int(payload.get("concurrency"), 1),
            auth_token=str(payload.get("auth_token") or "").strip(),
            auth_header=auth_header,
            buy_tip=_optional_tip(payload.get("buy_tip")),
            buy_fee=_optional_fee(payload.get("buy_fee")),
            sell_tip=_optional_tip(payload.get("sell_tip")),
            sell_fee=_optional_fee(payload.get("sell_fee")),
            tip_accounts=tip_accounts,
            name=str(payload.get("name")).strip() if payload.get("name") else None,
        )

    def resolved_auth_header(self) -> tuple[str, str] | None:
        if self.auth_header is not None:
            return self.auth_header
        header_name = PROVIDERS[self.kind].auth_header_name
        if header_name and self.auth_token:
            return (header_name, self.auth_token)
        return None

    def resolved_tip_accounts(self) -> tuple[Pubkey, ...]:
        if self.tip_accounts is not None:
            return self.tip_accounts
        return PROVIDERS[self.kind].tip_accounts

    def build_clients(
        self,
        *,
        logger: logging.Logger,
        timeout_seconds: float = SWQOS_RPC_TIMEOUT_SECONDS,
        rng: random.Random | None = None,
    ) -> list[SWQoSClient]:
        """One client per tip-account chunk, or ``concurrency`` clients when there is no pool."""
        provider = PROVIDERS[self.kind]
        pool = self.resolved_tip_accounts()
        chunks: Sequence[tuple[Pubkey, ...]] = chunk_accounts(pool, self.concurrency) or [()] * self.concurrency

        clients: list[SWQoSClient] = []
        for chunk in chunks:
            clients.append(
                provider.client_cls(
                    logger=logger,
                    endpoint=self.endpoint,
                    auth_header=self.resolved_auth_header(),
                    tip_accounts=chunk,
                    timeout_seconds=timeout_seconds,
                    rng=random.Random(rng.getrandbits(64)) if rng is not None else None,
                    name=self.name,
                )
            )
        return clients

    def build_runtimes(
        self,
        *,
        logger: logging.Logger,
        timeout_seconds: float = SWQOS_RPC_TIMEOUT_SECONDS,
        rng: random.Random | None = None,
    ) -> list[SWQoSRuntime]:
        return [
            SWQoSRuntime(config=self, client=client, logger=logger, timeout_seconds=timeout_seconds)
            for client in self.build_clients(logger=logger, timeout_seconds=timeout_seconds, rng=rng)
        ]
