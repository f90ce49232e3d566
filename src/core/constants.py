"""Core constants used across nmon2tsdb modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".nmon2tsdb")
DEFAULT_DATA_DATABASE = "nmon_reports"
DEFAULT_LOG_DATABASE = "nmon2tsdb_log"
DEFAULT_SSH_USER = "root"
DEFAULT_SSH_KEY_PATH = Path("~/.ssh/id_rsa")
DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_INFLUXDB_TIMEOUT_SECONDS = 30.0
SSH_PORT = 22
NMON_FILE_EXTENSION = ".nmon"
GZIP_FILE_EXTENSION = ".gz"
SUPPORTED_NMON_EXTENSIONS = (NMON_FILE_EXTENSION, GZIP_FILE_EXTENSION)
CHECKSUM_ALGORITHM = "sha1"
CHECKSUM_TAIL_BYTES = 1024
DEFAULT_POINT_BATCH_SIZE = 10000
NMON_TIME_FORMAT = "%H:%M:%S,%d-%b-%Y"
EPOCH_FLOOR_LABEL = "00:00:00,01-JAN-1900"
NOW_LABEL = "now"
POINT_VALUE_FIELD = "value"
WATERMARK_FILE_TAG = "file"
WATERMARK_TIMESTAMP_MEASUREMENT = "timestamp"
WATERMARK_CHECKSUM_MEASUREMENT = "checksum"
TOP_MEASUREMENT = "TOP"
TOP_MIN_FIELD_COUNT = 14
TOP_COLUMNS = (
    "%CPU",
    "%Usr",
    "%Sys",
    "Size",
    "ResSet",
    "ResText",
    "ResData",
    "ShdLib",
    "MinorFault",
)
DEFAULT_WLM_CLASS = "none"
JSONL_STORE_DIR_NAME = "points"
