from __future__ import annotations

from typing import TYPE_CHECKING

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from solana_trading.common import Lamports

from .errors import MissingFeeOrTipConfigurationError
from .types import OPERATION_SELL, OperationKind, PriorityFee, TipFee

if TYPE_CHECKING:
    from solana_trading.swqos.config import SWQoSConfig


def base_fee_for(config: SWQoSConfig, kind: OperationKind) -> PriorityFee | None:
    if kind == OPERATION_SELL:
        return config.sell_fee or config.buy_fee
    return config.buy_fee


def base_tip_for(config: SWQoSConfig, kind: OperationKind) -> Lamports | None:
    if kind == OPERATION_SELL:
        return config.sell_tip if config.sell_tip is not None else config.buy_tip
    return config.buy_tip


def resolve_fee(
    config: SWQoSConfig,
    kind: OperationKind,
    additional_fee: PriorityFee | None = None,
) -> PriorityFee | None:
    base_fee = base_fee_for(config, kind)
    if base_fee is not None and additional_fee is not None:
        return base_fee + additional_fee
    return base_fee if base_fee is not None else additional_fee


def resolve_tip(
    config: SWQoSConfig,
    kind: OperationKind,
    *,
    tip_account: Pubkey | None,
    provider: str,
    additional_tip: int = 0,
) -> TipFee | None:
    if tip_account is None:
        return None

    base_tip = base_tip_for(config, kind)
    if base_tip is None:
        raise MissingFeeOrTipConfigurationError(
            f"No tip configured for {kind} on relay provider {provider}"
        )
    return TipFee(tip_account=tip_account, tip_lamports=base_tip + max(0, int(additional_tip)))


def build_fee_instructions(fee: PriorityFee | None) -> list[Instruction]:
    if fee is None:
        return []
    return [
        set_compute_unit_price(fee.unit_price),
        set_compute_unit_limit(fee.unit_limit),
    ]
