"""Import watermark persistence and change detection.

This module reads and writes the per-file (timestamp, checksum) pair
kept in the log store and decides whether a file needs importing.
"""

from __future__ import annotations

from datetime import datetime, tzinfo

from core.constants import (
    EPOCH_FLOOR_LABEL,
    POINT_VALUE_FIELD,
    WATERMARK_CHECKSUM_MEASUREMENT,
    WATERMARK_FILE_TAG,
    WATERMARK_TIMESTAMP_MEASUREMENT,
)
from core.types import ImportDecision, ImportWatermark, Point
from ingest.record_parser import parse_time_label
from store.point_store import PointStore


class WatermarkStore:
    """Watermark reader and writer backed by the log store."""

    def __init__(self, log_store: PointStore) -> None:
        self._log_store = log_store

    def read(self, file_name: str) -> ImportWatermark | None:
        """Read the stored watermark of a file.

        Args:
            file_name: Base name of the source file.

        Returns:
            Stored watermark, or None when the file was never imported.

        Raises:
            NmonStoreError: If the log store cannot be queried.
        """
        filters = {WATERMARK_FILE_TAG: file_name}
        timestamp = self._log_store.read_last_value(WATERMARK_TIMESTAMP_MEASUREMENT, filters)
        checksum = self._log_store.read_last_value(WATERMARK_CHECKSUM_MEASUREMENT, filters)
        if timestamp is None and checksum is None:
            return None
        return ImportWatermark(
            file_name=file_name,
            timestamp_label=timestamp[1] if timestamp else None,
            checksum=checksum[1] if checksum else None,
        )

    def persist(
        self,
        file_name: str,
        timestamp_label: str,
        checksum: str,
        written_at: datetime,
    ) -> None:
        """Write the new watermark of a fully imported file.

        Raises:
            NmonStoreError: If the log store write fails.
        """
        tags = {WATERMARK_FILE_TAG: file_name}
        self._log_store.add_point(
            Point(
                measurement=WATERMARK_TIMESTAMP_MEASUREMENT,
                timestamp=written_at,
                fields={POINT_VALUE_FIELD: timestamp_label},
                tags=tags,
            )
        )
        self._log_store.add_point(
            Point(
                measurement=WATERMARK_CHECKSUM_MEASUREMENT,
                timestamp=written_at,
                fields={POINT_VALUE_FIELD: checksum},
                tags=tags,
            )
        )
        try:
            self._log_store.write_points()
        finally:
            self._log_store.clear_points()


def decide_import(
    watermark: ImportWatermark | None,
    checksum: str,
    force: bool,
    zone: tzinfo,
) -> ImportDecision:
    """Decide whether to import a file and from which point in time.

    Args:
        watermark: Stored watermark, if any.
        checksum: Freshly computed tail checksum.
        force: Ignore the stored watermark.
        zone: Zone of nmon time labels.

    Returns:
        Skip flag and lower bound; rows at or before the bound are not imported.

    Raises:
        NmonIngestError: If the stored timestamp label cannot be parsed.
    """
    epoch_floor = parse_time_label(EPOCH_FLOOR_LABEL, zone)
    if force or watermark is None:
        return ImportDecision(skip=False, lower_bound=epoch_floor)
    if watermark.checksum is not None and watermark.checksum == checksum:
        return ImportDecision(skip=True, lower_bound=epoch_floor)
    if watermark.timestamp_label is None:
        return ImportDecision(skip=False, lower_bound=epoch_floor)
    return ImportDecision(
        skip=False,
        lower_bound=parse_time_label(watermark.timestamp_label, zone),
    )
