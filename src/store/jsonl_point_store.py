"""Local JSONL-backed point store.

This module persists points as one JSON object per line, one file per
database under the data root. It backs local runs and tests.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from core.constants import JSONL_STORE_DIR_NAME, POINT_VALUE_FIELD
from core.errors import NmonStoreError
from core.types import Point
from store.point_store import PointBuffer


class JsonlPointStore(PointBuffer):
    """Filesystem point store with append-only JSONL files."""

    def __init__(self, data_root: Path, database: str) -> None:
        super().__init__()
        self._points_path = data_root / JSONL_STORE_DIR_NAME / f"{database}.jsonl"

    @property
    def points_path(self) -> Path:
        return self._points_path

    def write_points(self) -> None:
        """Append buffered points to the database file.

        Raises:
            NmonStoreError: If the file cannot be written.
        """
        points = self.buffered_points()
        if not points:
            return
        lines = [json.dumps(point_to_payload(point), sort_keys=True) for point in points]
        try:
            self._points_path.parent.mkdir(parents=True, exist_ok=True)
            with self._points_path.open("a", encoding="utf-8") as handle:
                handle.write("\n".join(lines) + "\n")
        except OSError as error:
            raise NmonStoreError(
                f"Failed to write {len(points)} points to {self._points_path}: {error}. "
                "Check the data root permissions and retry the import."
            ) from error

    def read_points(self) -> list[Point]:
        """Read every stored point in write order.

        Raises:
            NmonStoreError: If a stored line is not a valid point payload.
        """
        if not self._points_path.exists():
            return []
        points: list[Point] = []
        text = self._points_path.read_text(encoding="utf-8")
        for line_number, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            points.append(self._parse_point_line(line, line_number))
        return points

    def read_last_value(
        self,
        measurement: str,
        filters: Mapping[str, str],
    ) -> tuple[str, str] | None:
        """Return the value of the newest point matching measurement and tags."""
        latest: Point | None = None
        for point in self.read_points():
            if point.measurement != measurement or not _tags_match(point, filters):
                continue
            if latest is None or point.timestamp >= latest.timestamp:
                latest = point
        if latest is None or POINT_VALUE_FIELD not in latest.fields:
            return None
        return (measurement, str(latest.fields[POINT_VALUE_FIELD]))

    def _parse_point_line(self, line: str, line_number: int) -> Point:
        try:
            return point_from_payload(json.loads(line))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as error:
            raise NmonStoreError(
                f"Invalid point payload at {self._points_path}:{line_number}: {error}. "
                "Remove the corrupted line and retry."
            ) from error


def point_to_payload(point: Point) -> dict[str, object]:
    """Serialize a point into a JSON-safe payload."""
    return {
        "measurement": point.measurement,
        "timestamp": point.timestamp.isoformat(),
        "fields": dict(point.fields),
        "tags": dict(point.tags),
    }


def point_from_payload(payload: dict[str, Any]) -> Point:
    """Deserialize a JSON payload into a point."""
    return Point(
        measurement=str(payload["measurement"]),
        timestamp=datetime.fromisoformat(str(payload["timestamp"])),
        fields=dict(payload["fields"]),
        tags={str(key): str(value) for key, value in dict(payload.get("tags", {})).items()},
    )


def _tags_match(point: Point, filters: Mapping[str, str]) -> bool:
    return all(point.tags.get(key) == value for key, value in filters.items())
