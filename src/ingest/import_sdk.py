"""Python SDK for nmon imports.

This module exposes a high-level client that wires runtime config,
store selection and the import pipeline together.
"""

from __future__ import annotations

from core.config import NmonConfig
from core.types import FileImportResult, ImportOptions
from ingest.pipeline import import_nmon_files
from store.point_store import PointStore
from store.store_factory import build_point_stores


class NmonClient:
    """Primary SDK entry point for nmon imports."""

    def __init__(
        self,
        config: NmonConfig | None = None,
        data_store: PointStore | None = None,
        log_store: PointStore | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            data_store: Optional metric store overriding the configured backend.
            log_store: Optional watermark store overriding the configured backend.
        """
        self._config = config or NmonConfig.from_env()
        default_data_store, default_log_store = build_point_stores(self._config)
        self._data_store = data_store or default_data_store
        self._log_store = log_store or default_log_store

    @property
    def config(self) -> NmonConfig:
        return self._config

    def import_files(self, options: ImportOptions) -> list[FileImportResult]:
        """Import nmon files into the configured store.

        Args:
            options: Import options.

        Returns:
            Per-file import results.

        Raises:
            NmonTransportError: On SSH session failure when fail-fast is set.
        """
        return import_nmon_files(options, self._config, self._data_store, self._log_store)
