"""Runtime configuration model for nmon2tsdb.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.constants import (
    DEFAULT_DATA_DATABASE,
    DEFAULT_DATA_ROOT,
    DEFAULT_INFLUXDB_TIMEOUT_SECONDS,
    DEFAULT_LOG_DATABASE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SSH_KEY_PATH,
    DEFAULT_SSH_USER,
    DEFAULT_TIMEZONE,
)
from core.errors import NmonConfigError


@dataclass(frozen=True)
class NmonConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for the JSONL point store.
        data_database: Database name receiving metric points.
        log_database: Database name receiving import watermarks.
        influxdb_url: Optional InfluxDB base URL; selects the InfluxDB store.
        influxdb_user: Optional InfluxDB user name.
        influxdb_password: Optional InfluxDB password.
        influxdb_timeout: HTTP timeout in seconds for InfluxDB calls.
        ssh_user: Default SSH user for remote sources.
        ssh_key: Default private key path for remote sources.
        timezone: Zone used to interpret nmon time labels.
        log_level: Minimum structured log level.
    """

    data_root: Path
    data_database: str
    log_database: str
    influxdb_url: str | None
    influxdb_user: str | None
    influxdb_password: str | None
    influxdb_timeout: float
    ssh_user: str
    ssh_key: Path
    timezone: ZoneInfo
    log_level: str

    @classmethod
    def from_env(cls) -> "NmonConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            NmonConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("NMON_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        ssh_user = os.getenv("NMON_SSH_USER") or os.getenv("USER") or DEFAULT_SSH_USER
        ssh_key_value = os.getenv("NMON_SSH_KEY", str(DEFAULT_SSH_KEY_PATH))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            data_database=os.getenv("NMON_DATA_DATABASE", DEFAULT_DATA_DATABASE),
            log_database=os.getenv("NMON_LOG_DATABASE", DEFAULT_LOG_DATABASE),
            influxdb_url=os.getenv("NMON_INFLUXDB_URL") or None,
            influxdb_user=os.getenv("NMON_INFLUXDB_USER") or None,
            influxdb_password=os.getenv("NMON_INFLUXDB_PASSWORD") or None,
            influxdb_timeout=_parse_timeout(
                os.getenv("NMON_INFLUXDB_TIMEOUT", str(DEFAULT_INFLUXDB_TIMEOUT_SECONDS))
            ),
            ssh_user=ssh_user,
            ssh_key=Path(ssh_key_value).expanduser(),
            timezone=_parse_timezone(os.getenv("NMON_TIMEZONE", DEFAULT_TIMEZONE)),
            log_level=_parse_log_level(os.getenv("NMON_LOG_LEVEL", DEFAULT_LOG_LEVEL)),
        )


def _parse_timeout(raw_value: str) -> float:
    """Parse the InfluxDB timeout environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive timeout in seconds.

    Raises:
        NmonConfigError: If value is not a positive number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise NmonConfigError(
            "Invalid NMON_INFLUXDB_TIMEOUT value: "
            f"expected number of seconds, got '{raw_value}'. "
            "Set NMON_INFLUXDB_TIMEOUT to a numeric value."
        ) from error
    if timeout <= 0:
        raise NmonConfigError(
            f"Invalid NMON_INFLUXDB_TIMEOUT value: {raw_value} must be greater than 0."
        )
    return timeout


def _parse_timezone(raw_value: str) -> ZoneInfo:
    """Resolve the nmon label timezone.

    Raises:
        NmonConfigError: If the zone name is unknown.
    """
    try:
        return ZoneInfo(raw_value)
    except (ZoneInfoNotFoundError, ValueError) as error:
        raise NmonConfigError(
            f"Invalid NMON_TIMEZONE value: unknown zone '{raw_value}'. "
            "Use an IANA zone name such as Europe/Paris or UTC."
        ) from error


def _parse_log_level(raw_value: str) -> str:
    """Validate the log level name."""
    level = raw_value.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise NmonConfigError(
            f"Invalid NMON_LOG_LEVEL value: '{raw_value}'. "
            "Use one of DEBUG, INFO, WARNING, ERROR."
        )
    return level
