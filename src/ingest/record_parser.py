"""nmon record classification and parsing.

This module classifies lexically sorted nmon lines with an immutable rule table,
collects header metadata, series definitions and time markers in a first
pass, then resolves sample rows against time markers in a second pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import Iterable, Mapping

from core.constants import NMON_TIME_FORMAT, NOW_LABEL, TOP_MIN_FIELD_COUNT
from core.errors import NmonConfigError, NmonIngestError
from core.logging_config import get_logger
from core.types import (
    ClassifiedRecord,
    DataRow,
    MetadataRecord,
    ProcessRow,
    RecordKind,
    SampleRow,
    SeriesDefinition,
    TimeMarker,
)
_LOGGER = get_logger(__name__)

CPU_DETAIL_PATTERN = re.compile(r"^CPU\d+|^SCPU\d+|^PCPU\d+")
DISK_DETAIL_PATTERN = re.compile(r"^DISK")
TIME_MARKER_PATTERN = re.compile(r"^ZZZZ,([^,]+),(.*)$")
NOISE_PATTERN = re.compile(r"T0+,|^Z|^TOP,%CPU")
PROCESS_ROW_PATTERN = re.compile(r"^TOP,\d+,(T\d+)")
DATA_ROW_PATTERN = re.compile(r"^[^,]+?,(T\d+)")
METADATA_PATTERN = re.compile(r"^AAA|^BBB|^UARG|,T\d")
_OS_PATTERN = re.compile(r"(Linux|AIX)")


@dataclass(frozen=True)
class ClassificationRule:
    """One ordered classification rule."""

    pattern: re.Pattern[str]
    kind: RecordKind


@dataclass(frozen=True)
class ClassificationTable:
    """Immutable ordered rule table; first matching rule wins.

    Attributes:
        rules: Ordered rules evaluated per line.
        skip_metric_pattern: Optional pattern excluding rows by metric name.
    """

    rules: tuple[ClassificationRule, ...]
    skip_metric_pattern: re.Pattern[str] | None = None

    def classify(self, line: str) -> RecordKind:
        """Return the kind of the first rule matching ``line``."""
        for rule in self.rules:
            if rule.pattern.search(line):
                return rule.kind
        return RecordKind.SERIES_DEFINITION

    def skips_metric(self, name: str) -> bool:
        return self.skip_metric_pattern is not None and bool(
            self.skip_metric_pattern.search(name)
        )


@dataclass(frozen=True)
class ParsedNmon:
    """Parse result of one nmon file.

    Attributes:
        hostname: Host from the ``AAA,host`` record.
        os_name: ``Linux`` or ``AIX`` when detected.
        interval: Sampling interval in seconds when present.
        info: All ``AAA`` header values keyed by name.
        series: Column labels keyed by metric row name.
        time_markers: Time markers keyed by time code.
        rows: Resolved rows newer than the lower bound, in sorted-line order.
        newest_timestamp: Newest resolved row timestamp.
        newest_label: Time label of ``newest_timestamp``.
        unresolved_count: Rows dropped for an unknown time code.
        stale_count: Rows dropped at or before the lower bound.
        malformed_count: TOP rows dropped for missing fields.
        skipped_metric_count: Rows dropped by the metric skip pattern.
    """

    hostname: str
    os_name: str | None
    interval: int | None
    info: Mapping[str, str]
    series: Mapping[str, SeriesDefinition]
    time_markers: Mapping[str, TimeMarker]
    rows: tuple[SampleRow, ...]
    newest_timestamp: datetime | None = None
    newest_label: str | None = None
    unresolved_count: int = 0
    stale_count: int = 0
    malformed_count: int = 0
    skipped_metric_count: int = 0


@dataclass
class _HeaderState:
    hostname: str = ""
    os_name: str | None = None
    interval: int | None = None
    info: dict[str, str] = field(default_factory=dict)
    series: dict[str, SeriesDefinition] = field(default_factory=dict)
    time_markers: dict[str, TimeMarker] = field(default_factory=dict)


def build_classification_table(
    all_cpus: bool = False,
    skip_disks: bool = False,
    skip_metrics: str | None = None,
) -> ClassificationTable:
    """Build the ordered rule table for one import run.

    Args:
        all_cpus: Keep per-CPU detail rows.
        skip_disks: Drop per-disk detail rows.
        skip_metrics: Comma-separated metric-name patterns to drop.

    Returns:
        Immutable classification table.

    Raises:
        NmonConfigError: If ``skip_metrics`` is not a valid pattern list.
    """
    rules: list[ClassificationRule] = []
    if not all_cpus:
        rules.append(ClassificationRule(CPU_DETAIL_PATTERN, RecordKind.DROPPED))
    if skip_disks:
        rules.append(ClassificationRule(DISK_DETAIL_PATTERN, RecordKind.DROPPED))
    rules.extend(
        [
            ClassificationRule(TIME_MARKER_PATTERN, RecordKind.TIME_MARKER),
            ClassificationRule(NOISE_PATTERN, RecordKind.DROPPED),
            ClassificationRule(PROCESS_ROW_PATTERN, RecordKind.PROCESS_ROW),
            ClassificationRule(DATA_ROW_PATTERN, RecordKind.DATA_ROW),
            ClassificationRule(METADATA_PATTERN, RecordKind.METADATA),
        ]
    )
    return ClassificationTable(
        rules=tuple(rules),
        skip_metric_pattern=_compile_skip_pattern(skip_metrics),
    )


def parse_time_label(label: str, zone: tzinfo, now: datetime | None = None) -> datetime:
    """Parse an nmon ``HH:MM:SS,DD-MON-YYYY`` label in ``zone``.

    The ``now`` pseudo-label resolves to the current wall-clock time.

    Raises:
        NmonIngestError: If the label does not match the nmon time format.
    """
    if label == NOW_LABEL:
        return now or datetime.now(zone)
    try:
        return datetime.strptime(label.strip(), NMON_TIME_FORMAT).replace(tzinfo=zone)
    except ValueError as error:
        raise NmonIngestError(
            f"Invalid nmon time label '{label}': expected HH:MM:SS,DD-MON-YYYY."
        ) from error


def classify_lines(
    lines: Iterable[str],
    table: ClassificationTable,
    zone: tzinfo,
) -> list[ClassifiedRecord]:
    """Turn lines into typed records, keeping their order.

    Callers pass lines already sorted by ``sort_lines``, as cached by
    ``read_source_lines``. Dropped and blank lines produce no record.
    """
    records: list[ClassifiedRecord] = []
    for line in lines:
        if not line.strip():
            continue
        record = _build_record(line, table.classify(line), zone)
        if record is not None:
            records.append(record)
    return records


def parse_nmon(
    lines: Iterable[str],
    table: ClassificationTable,
    zone: tzinfo,
    lower_bound: datetime,
) -> ParsedNmon:
    """Parse nmon lines into header metadata and resolved sample rows.

    All metadata, series definitions and time markers are collected before
    any row is resolved, so row resolution does not depend on line order.

    Args:
        lines: Lexically sorted file lines; resolution does not depend on their order.
        table: Classification rules.
        zone: Zone of the file's time labels.
        lower_bound: Rows at or before this time are dropped.

    Returns:
        Parse result with resolved rows.
    """
    records = classify_lines(lines, table, zone)
    header = _collect_header(records)
    rows: list[SampleRow] = []
    newest_timestamp: datetime | None = None
    newest_label: str | None = None
    counters = {"unresolved": 0, "stale": 0, "malformed": 0, "skipped_metric": 0}
    for record in records:
        if not isinstance(record, (DataRow, ProcessRow)):
            continue
        if not _row_is_usable(record, table, counters):
            continue
        marker = header.time_markers.get(record.time_code)
        if marker is None or marker.timestamp is None:
            counters["unresolved"] += 1
            _LOGGER.debug("time_code_unresolved", time_code=record.time_code)
            continue
        if newest_timestamp is None or marker.timestamp > newest_timestamp:
            newest_timestamp = marker.timestamp
            newest_label = marker.label
        if marker.timestamp <= lower_bound:
            counters["stale"] += 1
            continue
        rows.append(replace(record, timestamp=marker.timestamp))
    return ParsedNmon(
        hostname=header.hostname,
        os_name=header.os_name,
        interval=header.interval,
        info=dict(header.info),
        series=dict(header.series),
        time_markers=dict(header.time_markers),
        rows=tuple(rows),
        newest_timestamp=newest_timestamp,
        newest_label=newest_label,
        unresolved_count=counters["unresolved"],
        stale_count=counters["stale"],
        malformed_count=counters["malformed"],
        skipped_metric_count=counters["skipped_metric"],
    )


def _build_record(line: str, kind: RecordKind, zone: tzinfo) -> ClassifiedRecord | None:
    if kind is RecordKind.DROPPED:
        return None
    if kind is RecordKind.TIME_MARKER:
        return _build_time_marker(line, zone)
    fields = line.split(",")
    if kind is RecordKind.PROCESS_ROW:
        return ProcessRow(pid=fields[1], time_code=fields[2], fields=tuple(fields))
    if kind is RecordKind.DATA_ROW:
        return DataRow(name=fields[0], time_code=fields[1], values=tuple(fields[2:]))
    if kind is RecordKind.METADATA:
        return MetadataRecord(name=fields[0], fields=tuple(fields[1:]))
    return SeriesDefinition(name=fields[0], columns=tuple(fields[2:]))


def _build_time_marker(line: str, zone: tzinfo) -> TimeMarker:
    matched = TIME_MARKER_PATTERN.match(line)
    assert matched is not None
    time_code, label = matched.group(1), matched.group(2)
    try:
        timestamp: datetime | None = parse_time_label(label, zone)
    except NmonIngestError:
        _LOGGER.warning("time_label_invalid", time_code=time_code, label=label)
        timestamp = None
    return TimeMarker(time_code=time_code, label=label, timestamp=timestamp)


def _collect_header(records: list[ClassifiedRecord]) -> _HeaderState:
    header = _HeaderState()
    for record in records:
        if isinstance(record, TimeMarker):
            header.time_markers[record.time_code] = record
        elif isinstance(record, SeriesDefinition):
            header.series[record.name] = record
        elif isinstance(record, MetadataRecord) and record.name == "AAA" and record.fields:
            _apply_info(header, record.fields[0], ",".join(record.fields[1:]))
    return header


def _apply_info(header: _HeaderState, key: str, value: str) -> None:
    header.info[key] = value
    host_parts = value.split()
    if key == "host" and host_parts:
        header.hostname = host_parts[0]
    elif key == "interval" and value.isdigit():
        header.interval = int(value)
    if header.os_name is None:
        os_matched = _OS_PATTERN.search(f"{key},{value}")
        if os_matched is not None:
            header.os_name = os_matched.group(1)


def _row_is_usable(
    row: SampleRow,
    table: ClassificationTable,
    counters: dict[str, int],
) -> bool:
    name = row.name if isinstance(row, DataRow) else "TOP"
    if table.skips_metric(name):
        counters["skipped_metric"] += 1
        _LOGGER.debug("metric_skipped", metric=name)
        return False
    if isinstance(row, ProcessRow) and len(row.fields) < TOP_MIN_FIELD_COUNT:
        counters["malformed"] += 1
        _LOGGER.warning("top_row_malformed", pid=row.pid, field_count=len(row.fields))
        return False
    return True


def _compile_skip_pattern(skip_metrics: str | None) -> re.Pattern[str] | None:
    if not skip_metrics:
        return None
    joined = "|".join(part for part in skip_metrics.split(",") if part)
    if not joined:
        return None
    try:
        return re.compile(joined)
    except re.error as error:
        raise NmonConfigError(
            f"Invalid --skip-metrics value '{skip_metrics}': {error}. "
            "Provide a comma-separated list of metric names or patterns."
        ) from error
