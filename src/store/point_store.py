"""Time-series store contract.

This module defines the write and read surface the import pipeline needs
from a time-series store, plus the shared in-memory point buffer.
"""

from __future__ import annotations

from typing import Mapping, Protocol

from core.types import Point


class PointStore(Protocol):
    """Buffered time-series store used by the import pipeline."""

    def add_point(self, point: Point) -> None:
        """Append one point to the write buffer."""

    def points_count(self) -> int:
        """Return the number of buffered points."""

    def clear_points(self) -> None:
        """Drop all buffered points."""

    def write_points(self) -> None:
        """Write buffered points without clearing the buffer.

        Raises:
            NmonStoreError: If the store rejects the write.
        """

    def read_last_value(
        self,
        measurement: str,
        filters: Mapping[str, str],
    ) -> tuple[str, str] | None:
        """Return ``(measurement, value)`` of the newest matching point or None."""


class PointBuffer:
    """In-memory point buffer shared by store implementations."""

    def __init__(self) -> None:
        self._points: list[Point] = []

    def add_point(self, point: Point) -> None:
        self._points.append(point)

    def points_count(self) -> int:
        return len(self._points)

    def clear_points(self) -> None:
        self._points.clear()

    def buffered_points(self) -> tuple[Point, ...]:
        return tuple(self._points)
