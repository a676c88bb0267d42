from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1


@dataclass(slots=True, frozen=True, order=True)
class Lamports:
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Lamports value must be an integer, got {type(self.value).__name__}")
        if self.value < 0:
            raise ValueError(f"Lamports value cannot be negative: {self.value}")
        if self.value > U64_MAX:
            raise ValueError(f"Lamports value exceeds u64 range: {self.value}")

    @classmethod
    def from_sol(cls, sol_value: Any) -> "Lamports":
        if isinstance(sol_value, bool):
            raise TypeError("SOL value must be numeric, got bool")
        try:
            amount = sol_value if isinstance(sol_value, Decimal) else Decimal(str(sol_value).strip())
        except (InvalidOperation, ValueError) as error:
            raise ValueError(f"Invalid SOL value: {sol_value!r}") from error

        if not amount.is_finite():
            raise ValueError(f"SOL value must be finite: {sol_value!r}")
        if amount < 0:
            raise ValueError(f"SOL value cannot be negative: {sol_value}")

        # Nearest lamport: 0.000000001 SOL must not truncate to zero.
        lamports = int((amount * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_HALF_UP))
        if lamports > U64_MAX:
            raise ValueError(f"Converted lamports value ({lamports}) exceeds u64 range")
        return cls(lamports)

    def to_sol(self) -> Decimal:
        # 20 significant digits at most, well inside the default 28-digit context
        return Decimal(self.value) / LAMPORTS_PER_SOL

    def __int__(self) -> int:
        return self.value

    def __add__(self, other: "Lamports | int") -> "Lamports":
        return Lamports(self.value + int(other))

    def __sub__(self, other: "Lamports | int") -> "Lamports":
        return Lamports(self.value - int(other))

    def __str__(self) -> str:
        return str(self.value)
