"""Public SDK surface for nmon2tsdb.

This module provides a stable import path for library users.
It re-exports the client, typed options and store implementations.
"""

from __future__ import annotations

from core.config import NmonConfig
from core.types import FileImportResult, ImportOptions, Point
from ingest.import_sdk import NmonClient
from store.influxdb_store import InfluxDBPointStore
from store.jsonl_point_store import JsonlPointStore
from store.point_store import PointStore

__all__ = [
    "FileImportResult",
    "ImportOptions",
    "InfluxDBPointStore",
    "JsonlPointStore",
    "NmonClient",
    "NmonConfig",
    "Point",
    "PointStore",
]
