"""Store selection from runtime configuration."""

from __future__ import annotations

from core.config import NmonConfig
from store.influxdb_store import InfluxDBPointStore
from store.jsonl_point_store import JsonlPointStore
from store.point_store import PointStore


def build_point_stores(config: NmonConfig) -> tuple[PointStore, PointStore]:
    """Build the data and log stores for the configured backend.

    Args:
        config: Runtime configuration.

    Returns:
        Tuple of (data store, watermark log store).
    """
    if config.influxdb_url:
        return (
            _build_influxdb_store(config, config.data_database),
            _build_influxdb_store(config, config.log_database),
        )
    return (
        JsonlPointStore(config.data_root, config.data_database),
        JsonlPointStore(config.data_root, config.log_database),
    )


def _build_influxdb_store(config: NmonConfig, database: str) -> InfluxDBPointStore:
    assert config.influxdb_url is not None
    return InfluxDBPointStore(
        url=config.influxdb_url,
        database=database,
        username=config.influxdb_user,
        password=config.influxdb_password,
        timeout=config.influxdb_timeout,
    )
