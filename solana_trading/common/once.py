from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")


class OnceCell(Generic[T]):
    """Write-once holder for snapshots fetched by an explicit initialize step."""

    __slots__ = ("_label", "_value")

    def __init__(self, label: str) -> None:
        self._label = label
        self._value: T | None = None

    @property
    def is_set(self) -> bool:
        return self._value is not None

    def set(self, value: T) -> None:
        if self._value is not None:
            raise RuntimeError(f"{self._label} is already initialized.")
        self._value = value

    def get(self) -> T | None:
        return self._value

