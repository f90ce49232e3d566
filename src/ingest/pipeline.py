"""Import orchestration for nmon files.

This module coordinates source discovery, checksum gating, parsing,
batched point writes and watermark updates, one file at a time.
"""

from __future__ import annotations

from core.config import NmonConfig
from core.constants import NOW_LABEL
from core.errors import NmonIngestError, NmonStoreError, NmonTransportError
from core.logging_config import get_logger
from core.types import FileImportResult, ImportOptions, SourceFile
from ingest.batch_writer import PointBatchWriter, validate_batch_size
from ingest.point_builder import build_row_points
from ingest.record_parser import (
    ParsedNmon,
    build_classification_table,
    parse_nmon,
    parse_time_label,
)
from ingest.source_locator import locate_source_files, select_nmon_files
from ingest.transport import (
    SessionFactory,
    SftpSessionPool,
    read_source_lines,
    source_checksum,
)
from ingest.watermark import WatermarkStore, decide_import
from store.point_store import PointStore

_LOGGER = get_logger(__name__)

STATUS_IMPORTED = "imported"
STATUS_UNCHANGED = "unchanged"
STATUS_FAILED = "failed"


class NmonImportRunner:
    """Sequential per-file import of nmon sources."""

    def __init__(
        self,
        options: ImportOptions,
        config: NmonConfig,
        data_store: PointStore,
        log_store: PointStore,
        connect: SessionFactory | None = None,
    ) -> None:
        validate_batch_size(options.batch_size)
        self._options = options
        self._config = config
        self._data_store = data_store
        self._watermarks = WatermarkStore(log_store)
        self._connect = connect
        self._table = build_classification_table(
            all_cpus=options.all_cpus,
            skip_disks=options.skip_disks,
            skip_metrics=options.skip_metrics,
        )
        self._ssh_user = options.ssh_user or config.ssh_user
        self._ssh_key = options.ssh_key or str(config.ssh_key)

    def run(self) -> list[FileImportResult]:
        """Import every selected source file in source-list order.

        Returns:
            One result per selected nmon file.

        Raises:
            NmonTransportError: On SSH session failure when fail-fast is set.
        """
        sources = self.locate_sources()
        results = [self._import_file(source) for source in sources]
        _log_import_completion(results)
        return results

    def locate_sources(self) -> list[SourceFile]:
        """Expand option sources into selected nmon files."""
        with SftpSessionPool(self._connect) as sessions:
            candidates = locate_source_files(
                self._options.sources,
                default_user=self._ssh_user,
                default_key=self._ssh_key,
                sessions=sessions,
                fail_fast_remote=self._options.fail_fast_remote,
            )
        return select_nmon_files(candidates)

    def _import_file(self, source: SourceFile) -> FileImportResult:
        try:
            return self._import_file_unchecked(source)
        except NmonTransportError as error:
            if self._options.fail_fast_remote:
                raise
            return self._failed(source, error)
        except (NmonIngestError, NmonStoreError) as error:
            self._data_store.clear_points()
            return self._failed(source, error)

    def _import_file_unchecked(self, source: SourceFile) -> FileImportResult:
        zone = self._config.timezone
        with SftpSessionPool(self._connect) as sessions:
            checksum = source_checksum(source, sessions)
            watermark = self._watermarks.read(source.base_name)
            decision = decide_import(watermark, checksum, self._options.force, zone)
            if decision.skip:
                _LOGGER.info("file_unchanged", source=source.display_name)
                return FileImportResult(
                    source_name=source.display_name,
                    status=STATUS_UNCHANGED,
                )
            lines = read_source_lines(source, sessions)
        parsed = parse_nmon(lines, self._table, zone, decision.lower_bound)
        point_count = self._write_points(source, parsed)
        if parsed.newest_label is not None:
            self._watermarks.persist(
                source.base_name,
                parsed.newest_label,
                checksum,
                parse_time_label(NOW_LABEL, zone),
            )
        _log_file_imported(source, parsed, point_count)
        return FileImportResult(
            source_name=source.display_name,
            status=STATUS_IMPORTED,
            point_count=point_count,
        )

    def _write_points(self, source: SourceFile, parsed: ParsedNmon) -> int:
        writer = PointBatchWriter(
            self._data_store,
            batch_size=self._options.batch_size,
            source_name=source.display_name,
        )
        for row in parsed.rows:
            for point in build_row_points(row, parsed):
                writer.add(point)
        return writer.finish()

    def _failed(self, source: SourceFile, error: Exception) -> FileImportResult:
        _LOGGER.error("file_import_failed", source=source.display_name, error=str(error))
        return FileImportResult(
            source_name=source.display_name,
            status=STATUS_FAILED,
            error=str(error),
        )


def import_nmon_files(
    options: ImportOptions,
    config: NmonConfig,
    data_store: PointStore,
    log_store: PointStore,
) -> list[FileImportResult]:
    """Run the nmon import pipeline.

    Args:
        options: Import request options.
        config: Runtime configuration.
        data_store: Store receiving metric points.
        log_store: Store holding import watermarks.

    Returns:
        Per-file import results.

    Raises:
        NmonTransportError: On SSH session failure when fail-fast is set.
        NmonConfigError: If import options are invalid.
    """
    runner = NmonImportRunner(options, config, data_store, log_store)
    return runner.run()


def _log_file_imported(source: SourceFile, parsed: ParsedNmon, point_count: int) -> None:
    _LOGGER.info(
        "file_imported",
        source=source.display_name,
        hostname=parsed.hostname,
        os_name=parsed.os_name,
        interval=parsed.interval,
        point_count=point_count,
        unresolved_rows=parsed.unresolved_count,
        stale_rows=parsed.stale_count,
        malformed_rows=parsed.malformed_count,
        skipped_metric_rows=parsed.skipped_metric_count,
    )


def _log_import_completion(results: list[FileImportResult]) -> None:
    """Log run completion with per-status counts."""
    _LOGGER.info(
        "import_completed",
        file_count=len(results),
        imported=sum(1 for result in results if result.status == STATUS_IMPORTED),
        unchanged=sum(1 for result in results if result.status == STATUS_UNCHANGED),
        failed=sum(1 for result in results if result.status == STATUS_FAILED),
        point_count=sum(result.point_count for result in results),
    )
