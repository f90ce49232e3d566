"""Shared typed models.

This module defines the data models used by the locator, transport,
parser, point builder and store layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Mapping, Union

from core.constants import DEFAULT_POINT_BATCH_SIZE, GZIP_FILE_EXTENSION
from core.memo import MemoCell


@dataclass
class SourceFile:
    """Candidate nmon file, local or remote.

    Attributes:
        path: File path on the local or remote host.
        file_type: File extension used for type selection, e.g. ``.nmon``.
        host: Remote host name, ``None`` for local files.
        ssh_user: SSH user for remote files.
        ssh_key: Private key path for remote files.
        checksum_cell: Cached tail checksum.
        lines_cell: Cached lexically sorted content lines.
    """

    path: str
    file_type: str
    host: str | None = None
    ssh_user: str | None = None
    ssh_key: str | None = None
    checksum_cell: MemoCell[str] = field(default_factory=MemoCell, compare=False, repr=False)
    lines_cell: MemoCell[tuple[str, ...]] = field(
        default_factory=MemoCell, compare=False, repr=False
    )

    @property
    def is_remote(self) -> bool:
        return self.host is not None

    @property
    def is_compressed(self) -> bool:
        return self.file_type == GZIP_FILE_EXTENSION

    @property
    def base_name(self) -> str:
        """Logical watermark key of the file."""
        return PurePosixPath(self.path).name

    @property
    def display_name(self) -> str:
        if self.host is None:
            return self.path
        return f"{self.ssh_user}@{self.host}:{self.path}"


@dataclass(frozen=True)
class ImportWatermark:
    """Persisted import progress for one file.

    Attributes:
        file_name: Base name of the imported file.
        timestamp_label: Time label of the newest imported sample.
        checksum: Tail checksum of the file at that import.
    """

    file_name: str
    timestamp_label: str | None
    checksum: str | None


@dataclass(frozen=True)
class ImportDecision:
    """Outcome of comparing a file against its watermark."""

    skip: bool
    lower_bound: datetime


@dataclass(frozen=True)
class Point:
    """One time-series point.

    Attributes:
        measurement: Measurement name.
        timestamp: Absolute point time.
        fields: Field values keyed by field name.
        tags: String tags.
    """

    measurement: str
    timestamp: datetime
    fields: Mapping[str, float | str]
    tags: Mapping[str, str] = field(default_factory=dict)


class RecordKind(Enum):
    """Kind assigned to one nmon line by the classification table."""

    DROPPED = "dropped"
    TIME_MARKER = "time_marker"
    PROCESS_ROW = "process_row"
    DATA_ROW = "data_row"
    METADATA = "metadata"
    SERIES_DEFINITION = "series_definition"


@dataclass(frozen=True)
class MetadataRecord:
    """Header record such as ``AAA,host,server01``."""

    name: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class SeriesDefinition:
    """Ordered column labels of one metric row name."""

    name: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class TimeMarker:
    """Absolute time registered for one time code."""

    time_code: str
    label: str
    timestamp: datetime | None


@dataclass(frozen=True)
class DataRow:
    """Metric sample row keyed by a time code.

    Attributes:
        name: Metric row name, e.g. ``CPU_ALL``.
        time_code: Time code, e.g. ``T0001``.
        values: Raw value fields after the time code.
        timestamp: Resolved timestamp, set when the time code resolves.
    """

    name: str
    time_code: str
    values: tuple[str, ...]
    timestamp: datetime | None = None


@dataclass(frozen=True)
class ProcessRow:
    """TOP process sampling row: ``TOP,<pid>,T<code>,...``."""

    pid: str
    time_code: str
    fields: tuple[str, ...]
    timestamp: datetime | None = None


ClassifiedRecord = Union[MetadataRecord, SeriesDefinition, TimeMarker, DataRow, ProcessRow]
SampleRow = Union[DataRow, ProcessRow]


@dataclass(frozen=True)
class ImportOptions:
    """Import command options.

    Attributes:
        sources: Local paths or ``[user@]host:path`` remote specs.
        force: Ignore stored checksum and timestamp watermarks.
        all_cpus: Import per-CPU detail rows.
        skip_disks: Skip per-disk detail rows.
        skip_metrics: Comma-separated metric-name patterns to skip.
        ssh_user: Default SSH user, config default when omitted.
        ssh_key: Default private key path, config default when omitted.
        fail_fast_remote: Abort the run on the first SSH session failure.
        batch_size: Number of points per store write.
    """

    sources: tuple[str, ...]
    force: bool = False
    all_cpus: bool = False
    skip_disks: bool = False
    skip_metrics: str | None = None
    ssh_user: str | None = None
    ssh_key: str | None = None
    fail_fast_remote: bool = True
    batch_size: int = DEFAULT_POINT_BATCH_SIZE


@dataclass(frozen=True)
class FileImportResult:
    """Per-file import outcome."""

    source_name: str
    status: str
    point_count: int = 0
    error: str | None = None
