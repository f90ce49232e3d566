"""Single-assignment memoization cell.

A cell computes its value on first access and returns the cached value
afterwards, so expensive per-file reads happen at most once per process.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class MemoCell(Generic[T]):
    """Lazily computed, cached value owned by one entity."""

    def __init__(self) -> None:
        self._value: T | None = None
        self._computed = False
        self.compute_count = 0

    @property
    def is_computed(self) -> bool:
        """Return whether the value has been computed."""
        return self._computed

    def get(self, factory: Callable[[], T]) -> T:
        """Return the cached value, computing it with ``factory`` once.

        A factory that raises leaves the cell empty so a later call retries.
        """
        if not self._computed:
            self._value = factory()
            self._computed = True
            self.compute_count += 1
        return self._value  # type: ignore[return-value]

    def __repr__(self) -> str:
        state = "computed" if self._computed else "empty"
        return f"MemoCell({state})"
