"""InfluxDB 1.x HTTP point store.

This module writes buffered points with the line protocol and reads
watermark values back through the InfluxQL query endpoint.
"""

from __future__ import annotations

from typing import Any, Mapping

import requests

from core.constants import POINT_VALUE_FIELD
from core.errors import NmonStoreError
from core.logging_config import get_logger
from core.types import Point
from store.point_store import PointBuffer

_LOGGER = get_logger(__name__)


class InfluxDBPointStore(PointBuffer):
    """Buffered InfluxDB store for one database."""

    def __init__(
        self,
        url: str,
        database: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        session: Any | None = None,
    ) -> None:
        super().__init__()
        self._url = url.rstrip("/")
        self._database = database
        self._username = username
        self._password = password
        self._timeout = timeout
        self._session = session or requests.Session()

    def write_points(self) -> None:
        """Write buffered points in one line-protocol request.

        A write rejected because the database does not exist yet creates
        the database and is retried once.

        Raises:
            NmonStoreError: If the HTTP call fails or is rejected.
        """
        points = self.buffered_points()
        if not points:
            return
        body = "\n".join(format_line_protocol(point) for point in points).encode("utf-8")
        response = self._post_write(body, len(points))
        if response.status_code == 404 and _is_database_not_found(response.text):
            self.create_database()
            response = self._post_write(body, len(points))
        if response.status_code != 204:
            raise NmonStoreError(
                f"InfluxDB rejected write to database '{self._database}': "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
        _LOGGER.debug("influxdb_points_written", database=self._database, count=len(points))

    def create_database(self) -> None:
        """Create the store database; existing databases are left unchanged.

        Raises:
            NmonStoreError: If the server rejects the statement.
        """
        escaped_database = self._database.replace('"', '\\"')
        params = {"q": f'CREATE DATABASE "{escaped_database}"'}
        if self._username:
            params["u"] = self._username
        if self._password:
            params["p"] = self._password
        try:
            response = self._session.post(
                f"{self._url}/query",
                params=params,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as error:
            raise NmonStoreError(
                f"Failed to create InfluxDB database '{self._database}': {error}. "
                "Create it manually or grant the NMON_INFLUXDB_USER admin rights."
            ) from error
        _LOGGER.info("influxdb_database_created", database=self._database)

    def _post_write(self, body: bytes, point_count: int) -> Any:
        try:
            return self._session.post(
                f"{self._url}/write",
                params=self._params(precision="s"),
                data=body,
                timeout=self._timeout,
            )
        except requests.RequestException as error:
            raise NmonStoreError(
                f"Failed to write {point_count} points to InfluxDB at {self._url}: {error}. "
                "Check NMON_INFLUXDB_URL and that the server is reachable."
            ) from error

    def read_last_value(
        self,
        measurement: str,
        filters: Mapping[str, str],
    ) -> tuple[str, str] | None:
        """Query the last ``value`` field of a measurement.

        Raises:
            NmonStoreError: If the query fails.
        """
        query = build_last_value_query(measurement, filters)
        try:
            response = self._session.get(
                f"{self._url}/query",
                params=self._params(q=query),
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as error:
            raise NmonStoreError(
                f"Failed to query InfluxDB database '{self._database}': {error}. "
                "Check NMON_INFLUXDB_URL and credentials."
            ) from error
        return _extract_last_value(measurement, payload, self._database)

    def _params(self, **extra: str) -> dict[str, str]:
        params = {"db": self._database, **extra}
        if self._username:
            params["u"] = self._username
        if self._password:
            params["p"] = self._password
        return params


def format_line_protocol(point: Point) -> str:
    """Render one point in InfluxDB line protocol with second precision."""
    measurement = _escape_key(point.measurement)
    tags = "".join(
        f",{_escape_key(key)}={_escape_key(value)}"
        for key, value in sorted(point.tags.items())
        if value != ""
    )
    fields = ",".join(
        f"{_escape_key(key)}={_format_field_value(value)}"
        for key, value in sorted(point.fields.items())
    )
    return f"{measurement}{tags} {fields} {int(point.timestamp.timestamp())}"


def build_last_value_query(measurement: str, filters: Mapping[str, str]) -> str:
    """Build the InfluxQL query selecting the newest ``value`` of a measurement."""
    escaped_measurement = measurement.replace('"', '\\"')
    query = f'SELECT last("{POINT_VALUE_FIELD}") FROM "{escaped_measurement}"'
    conditions = [
        f"\"{key}\" = '{_escape_query_string(value)}'"
        for key, value in sorted(filters.items())
    ]
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    return query


def _extract_last_value(
    measurement: str,
    payload: dict[str, Any],
    database: str,
) -> tuple[str, str] | None:
    results = payload.get("results") or [{}]
    first_result = results[0]
    if "error" in first_result:
        if _is_database_not_found(str(first_result["error"])):
            return None
        raise NmonStoreError(
            f"InfluxDB query on database '{database}' failed: {first_result['error']}"
        )
    series = first_result.get("series") or []
    if not series or not series[0].get("values"):
        return None
    # values rows are [time, last]
    value = series[0]["values"][0][1]
    if value is None:
        return None
    return (measurement, str(value))


def _is_database_not_found(message: str) -> bool:
    return "database not found" in message


def _format_field_value(value: float | str) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return repr(float(value))


def _escape_key(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def _escape_query_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")
