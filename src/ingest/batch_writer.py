"""Size-bounded batch writes of points to a store."""

from __future__ import annotations

from core.constants import DEFAULT_POINT_BATCH_SIZE
from core.errors import NmonConfigError
from core.logging_config import get_logger
from core.types import Point
from store.point_store import PointStore

_LOGGER = get_logger(__name__)


def validate_batch_size(batch_size: int) -> None:
    """Reject non-positive batch sizes.

    Raises:
        NmonConfigError: If ``batch_size`` is not a positive point count.
    """
    if batch_size <= 0:
        raise NmonConfigError(
            f"Invalid batch size {batch_size}: expected a positive point count. "
            "Pass a --batch-size greater than 0."
        )


class PointBatchWriter:
    """Buffer points in a store and flush every ``batch_size`` points."""

    def __init__(
        self,
        store: PointStore,
        batch_size: int = DEFAULT_POINT_BATCH_SIZE,
        source_name: str = "",
    ) -> None:
        validate_batch_size(batch_size)
        self._store = store
        self._batch_size = batch_size
        self._source_name = source_name
        self._written_count = 0
        self._batch_count = 0

    @property
    def written_count(self) -> int:
        return self._written_count

    def add(self, point: Point) -> None:
        """Buffer one point, flushing when the batch is full.

        Raises:
            NmonStoreError: If the batch write fails.
        """
        self._store.add_point(point)
        if self._store.points_count() >= self._batch_size:
            self._flush()
            self._batch_count += 1
            _LOGGER.info(
                "batch_flushed",
                source=self._source_name,
                batch=self._batch_count,
                written_points=self._written_count,
            )

    def finish(self) -> int:
        """Flush remaining points and return the total written count.

        Raises:
            NmonStoreError: If the final write fails.
        """
        self._flush()
        return self._written_count

    def _flush(self) -> None:
        self._store.write_points()
        self._written_count += self._store.points_count()
        self._store.clear_points()
