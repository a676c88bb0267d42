from __future__ import annotations

from dataclasses import dataclass

from .errors import PoolUninitializedError
from .types import PoolInfo

BPS_DENOMINATOR = 10_000


def swap_out(reserve_in: int, reserve_out: int, amount_in: int) -> int:
    """Constant-product output for ``amount_in`` against ``x * y = k``, floored."""
    if reserve_in <= 0 or reserve_out <= 0:
        raise PoolUninitializedError(
            f"Pool reserves are not initialized: reserve_in={reserve_in} reserve_out={reserve_out}"
        )
    if amount_in < 0:
        raise ValueError(f"amount_in cannot be negative: {amount_in}")
    if amount_in == 0:
        return 0
    return (amount_in * reserve_out) // (reserve_in + amount_in)


def buy_token_out(*, sol_reserves: int, token_reserves: int, sol_amount: int) -> int:
    return swap_out(sol_reserves, token_reserves, sol_amount)


def sell_sol_out(*, sol_reserves: int, token_reserves: int, token_amount: int) -> int:
    return swap_out(token_reserves, sol_reserves, token_amount)


def with_slippage_buy(amount: int, slippage_bps: int) -> int:
    """Maximum input the buyer accepts; the slippage allowance is rounded up."""
    if amount < 0 or slippage_bps < 0:
        raise ValueError(f"amount and slippage_bps must be non-negative: {amount}, {slippage_bps}")
    return amount + -(-amount * slippage_bps // BPS_DENOMINATOR)


def with_slippage_sell(amount: int, slippage_bps: int) -> int:
    """Minimum output the seller accepts, rounded down and floored at zero."""
    if amount < 0 or slippage_bps < 0:
        raise ValueError(f"amount and slippage_bps must be non-negative: {amount}, {slippage_bps}")
    deduction = -(-amount * slippage_bps // BPS_DENOMINATOR)
    return max(0, amount - deduction)


@dataclass(slots=True)
class ReserveSimulator:
    """Running local copy of pool reserves used to price a batch item by item.

    Each quote mutates the copy as if the previous items had already executed in
    the same block. Nothing is written back to the ledger, and since every item
    lands as its own transaction the simulation is best effort: an item that
    fails to land leaves the real pool diverging from this copy.
    """

    sol_reserves: int
    token_reserves: int

    @classmethod
    def from_pool(cls, pool: PoolInfo) -> "ReserveSimulator":
        return cls(sol_reserves=pool.sol_reserves, token_reserves=pool.token_reserves)

    def buy(self, sol_amount: int) -> int:
        bought = buy_token_out(
            sol_reserves=self.sol_reserves,
            token_reserves=self.token_reserves,
            sol_amount=sol_amount,
        )
        self.sol_reserves += sol_amount
        self.token_reserves -= bought
        return bought

    def sell(self, token_amount: int) -> int:
        received = sell_sol_out(
            sol_reserves=self.sol_reserves,
            token_reserves=self.token_reserves,
            token_amount=token_amount,
        )
        self.sol_reserves -= received
        self.token_reserves += token_amount
        return received
