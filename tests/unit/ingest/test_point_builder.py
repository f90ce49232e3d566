"""Unit tests for row to point conversion."""

from __future__ import annotations

from datetime import datetime, timezone

from core.types import DataRow, ProcessRow, SeriesDefinition
from ingest.point_builder import (
    build_row_points,
    data_row_points,
    measurement_name,
    parse_numeric,
    process_row_points,
)
from ingest.record_parser import build_classification_table, parse_nmon

SAMPLE_TIME = datetime(2020, 1, 1, 0, 0, 5, tzinfo=timezone.utc)
TOP_FIELDS = tuple(
    "TOP,0004194,T0001,25.1,20.0,5.1,1024,2048,100,900,50,12,0,java".split(",")
)


def test_measurement_name_strips_instance_suffix() -> None:
    """Numbered adapters should share one measurement."""
    assert measurement_name("NET1") == "NET"


def test_measurement_name_keeps_nfs_and_cpu_names() -> None:
    """NFS versions and per-CPU names should stay literal."""
    names = [measurement_name(name) for name in ("NFS3", "CPU01", "CPU_ALL")]

    assert names == ["NFS3", "CPU01", "CPU_ALL"]


def test_data_row_points_tag_host_and_column() -> None:
    """Each labelled numeric value should become one tagged point."""
    row = DataRow(name="CPU_ALL", time_code="T0001", values=("5", "3"), timestamp=SAMPLE_TIME)
    series = SeriesDefinition(name="CPU_ALL", columns=("User%", "Sys%"))

    points = data_row_points(row, series, "server01")

    assert [(point.tags["name"], point.fields["value"]) for point in points] == [
        ("User%", 5.0),
        ("Sys%", 3.0),
    ] and all(point.tags["host"] == "server01" for point in points)


def test_data_row_points_drop_unlabelled_values() -> None:
    """Values beyond the defined columns should be dropped."""
    row = DataRow(name="MEM", time_code="T0001", values=("1", "2", "3"), timestamp=SAMPLE_TIME)
    series = SeriesDefinition(name="MEM", columns=("Free",))

    points = data_row_points(row, series, "server01")

    assert len(points) == 1


def test_data_row_points_drop_non_numeric_values() -> None:
    """Empty and text values should produce no point."""
    values = ("", "n/a", "nan", "4")
    row = DataRow(name="MEM", time_code="T0001", values=values, timestamp=SAMPLE_TIME)
    series = SeriesDefinition(name="MEM", columns=("a", "b", "c", "d"))

    points = data_row_points(row, series, "server01")

    assert [point.tags["name"] for point in points] == ["d"]


def test_data_row_points_without_series_is_empty() -> None:
    """Rows of an undefined metric should produce no points."""
    row = DataRow(name="XYZ", time_code="T0001", values=("1",), timestamp=SAMPLE_TIME)

    assert data_row_points(row, None, "server01") == []


def test_process_row_points_use_fixed_columns() -> None:
    """TOP rows should map fields three to eleven to fixed series names."""
    row = ProcessRow(pid="0004194", time_code="T0001", fields=TOP_FIELDS, timestamp=SAMPLE_TIME)

    points = process_row_points(row, "server01")

    assert [point.tags["name"] for point in points] == [
        "%CPU", "%Usr", "%Sys", "Size", "ResSet", "ResText", "ResData", "ShdLib", "MinorFault",
    ]


def test_process_row_points_default_wlm_class() -> None:
    """Missing WLM class should be tagged as none."""
    row = ProcessRow(pid="0004194", time_code="T0001", fields=TOP_FIELDS, timestamp=SAMPLE_TIME)

    points = process_row_points(row, "server01")

    assert points[0].tags == {
        "host": "server01",
        "name": "%CPU",
        "pid": "0004194",
        "command": "java",
        "wlm": "none",
    }


def test_process_row_points_keep_wlm_class() -> None:
    """A present WLM class should be carried as a tag."""
    row = ProcessRow(
        pid="0004194",
        time_code="T0001",
        fields=TOP_FIELDS + ("Unclassified",),
        timestamp=SAMPLE_TIME,
    )

    points = process_row_points(row, "server01")

    assert {point.tags["wlm"] for point in points} == {"Unclassified"}


def test_parse_numeric_rejects_infinite_values() -> None:
    """Non-finite floats should not be stored."""
    assert [parse_numeric(value) for value in ("1.5", "inf", "x")] == [1.5, None, None]


def test_parsed_cpu_row_yields_one_point_per_column() -> None:
    """A marker, a definition and one CPU_ALL row should give two points."""
    lines = ["ZZZZ,T1,00:00:10,01-JAN-2020", "CPU_ALL,T1,5,3", "CPU_ALL,CPU Total,User%,Sys%"]
    floor = datetime(1900, 1, 1, tzinfo=timezone.utc)
    parsed = parse_nmon(lines, build_classification_table(), timezone.utc, floor)

    points = [point for row in parsed.rows for point in build_row_points(row, parsed)]

    assert [(p.measurement, p.tags["name"], p.fields["value"], p.timestamp) for p in points] == [
        ("CPU_ALL", "User%", 5.0, datetime(2020, 1, 1, 0, 0, 10, tzinfo=timezone.utc)),
        ("CPU_ALL", "Sys%", 3.0, datetime(2020, 1, 1, 0, 0, 10, tzinfo=timezone.utc)),
    ]
