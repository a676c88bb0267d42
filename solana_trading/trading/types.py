from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solana_trading.common import Lamports
from solana_trading.common.lamports import U64_MAX

OperationKind = Literal["buy", "sell", "create"]
OPERATION_BUY: OperationKind = "buy"
OPERATION_SELL: OperationKind = "sell"
OPERATION_CREATE: OperationKind = "create"

# "create" fails if the account exists, "idempotent" tolerates it, "none" skips
# creation, "seeded" derives a fresh account from CreateAta.seed.
CreateAtaMode = Literal["create", "idempotent", "none", "seeded"]

SELL_ALL: Literal["all"] = "all"
TokenAmount = int | Literal["all"]

U32_MAX = 2**32 - 1


def to_int(value: Any, default: int) -> int:
    try:
        if value is None or str(value).strip() == "":
            return default
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


@dataclass(slots=True, frozen=True)
class PriorityFee:
    unit_limit: int
    unit_price: int

    def __add__(self, other: "PriorityFee") -> "PriorityFee":
        return PriorityFee(
            unit_limit=min(U32_MAX, self.unit_limit + other.unit_limit),
            unit_price=max(self.unit_price, other.unit_price),
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PriorityFee":
        return cls(
            unit_limit=max(0, min(U32_MAX, to_int(payload.get("unit_limit"), 0))),
            unit_price=max(0, min(U64_MAX, to_int(payload.get("unit_price"), 0))),
        )


@dataclass(slots=True, frozen=True)
class TipFee:
    tip_account: Pubkey
    tip_lamports: Lamports


@dataclass(slots=True, frozen=True)
class SwapInfo:
    token_amount: int
    sol_amount: int


@dataclass(slots=True, frozen=True)
class PoolInfo:
    pool: Pubkey
    token_reserves: int
    sol_reserves: int
    creator: Pubkey | None = None
    creator_vault: Pubkey | None = None
    config: Pubkey | None = None


@dataclass(slots=True, frozen=True)
class CreateAta:
    mode: CreateAtaMode = "idempotent"
    seed: str = ""

    @classmethod
    def seeded(cls, seed: str) -> "CreateAta":
        return cls(mode="seeded", seed=seed)


@dataclass(slots=True, frozen=True)
class AccountData:
    address: Pubkey
    owner: Pubkey
    lamports: int
    data: bytes


@dataclass(slots=True, frozen=True)
class TokenAccountData:
    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int


@dataclass(slots=True)
class BatchTxItem:
    payer: Keypair
    instructions: list[Instruction] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class BatchBuyParam:
    payer: Keypair
    sol_amount: int


@dataclass(slots=True, frozen=True)
class BatchSellParam:
    payer: Keypair
    token_amount: int
    custom_ata: Pubkey | None = None
    close_mint_ata: bool = False


@dataclass(slots=True, frozen=True)
class CreateParams:
    mint_keypair: Keypair
    name: str
    symbol: str
    uri: str
    buy_sol_amount: int | None = None
    slippage_bps: int | None = None
