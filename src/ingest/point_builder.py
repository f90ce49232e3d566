"""Conversion of resolved nmon rows into time-series points."""

from __future__ import annotations

import math
import re

from core.constants import (
    DEFAULT_WLM_CLASS,
    POINT_VALUE_FIELD,
    TOP_COLUMNS,
    TOP_MEASUREMENT,
)
from core.logging_config import get_logger
from core.types import DataRow, Point, ProcessRow, SampleRow, SeriesDefinition
from ingest.record_parser import CPU_DETAIL_PATTERN, ParsedNmon

_LOGGER = get_logger(__name__)

_NFS_PATTERN = re.compile(r"^NFS")
_INSTANCE_SUFFIX_PATTERN = re.compile(r"\d+$")


def measurement_name(metric_name: str) -> str:
    """Map a metric row name to its measurement.

    NFS and per-CPU rows keep their literal name; other names lose a
    trailing instance number, so ``net1`` becomes ``net``.
    """
    if _NFS_PATTERN.search(metric_name) or CPU_DETAIL_PATTERN.search(metric_name):
        return metric_name
    return _INSTANCE_SUFFIX_PATTERN.sub("", metric_name)


def build_row_points(row: SampleRow, parsed: ParsedNmon) -> list[Point]:
    """Build the points of one resolved row."""
    if isinstance(row, ProcessRow):
        return process_row_points(row, parsed.hostname)
    return data_row_points(row, parsed.series.get(row.name), parsed.hostname)


def data_row_points(
    row: DataRow,
    series: SeriesDefinition | None,
    hostname: str,
) -> list[Point]:
    """Build one point per labelled numeric value of a data row.

    Args:
        row: Resolved data row.
        series: Column labels of the row's metric, if defined.
        hostname: Host tag value.

    Returns:
        Points in column order. Unlabelled and non-numeric values are dropped.
    """
    if row.timestamp is None:
        return []
    columns = series.columns if series is not None else ()
    if len(row.values) > len(columns):
        _LOGGER.debug(
            "columns_unlabelled",
            metric=row.name,
            time_code=row.time_code,
            labelled=len(columns),
            values=len(row.values),
        )
    measurement = measurement_name(row.name)
    points: list[Point] = []
    for column, raw_value in zip(columns, row.values):
        value = parse_numeric(raw_value)
        if value is None:
            continue
        points.append(
            Point(
                measurement=measurement,
                timestamp=row.timestamp,
                fields={POINT_VALUE_FIELD: value},
                tags={"host": hostname, "name": column},
            )
        )
    return points


def process_row_points(row: ProcessRow, hostname: str) -> list[Point]:
    """Build the fixed TOP series points of one process row."""
    if row.timestamp is None:
        return []
    fields = row.fields
    wlm_class = fields[14] if len(fields) > 14 else DEFAULT_WLM_CLASS
    points: list[Point] = []
    for column, raw_value in zip(TOP_COLUMNS, fields[3:12]):
        value = parse_numeric(raw_value)
        if value is None:
            continue
        points.append(
            Point(
                measurement=TOP_MEASUREMENT,
                timestamp=row.timestamp,
                fields={POINT_VALUE_FIELD: value},
                tags={
                    "host": hostname,
                    "name": column,
                    "pid": row.pid,
                    "command": fields[13],
                    "wlm": wlm_class,
                },
            )
        )
    return points


def parse_numeric(raw_value: str) -> float | None:
    """Parse a finite float, returning None for text values."""
    try:
        value = float(raw_value)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value
