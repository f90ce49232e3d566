"""Unit tests for import watermarks."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from core.types import ImportWatermark
from ingest.watermark import WatermarkStore, decide_import
from store.jsonl_point_store import JsonlPointStore

UTC = timezone.utc
FLOOR = datetime(1900, 1, 1, tzinfo=UTC)


def test_decide_import_without_watermark_uses_floor() -> None:
    """A never-imported file should import from the epoch floor."""
    decision = decide_import(None, "abc", force=False, zone=UTC)

    assert (decision.skip, decision.lower_bound) == (False, FLOOR)


def test_decide_import_skips_matching_checksum() -> None:
    """An unchanged tail checksum should skip the file."""
    watermark = ImportWatermark("a.nmon", "00:05:05,01-JAN-2020", "abc")

    decision = decide_import(watermark, "abc", force=False, zone=UTC)

    assert decision.skip


def test_decide_import_resumes_after_stored_timestamp() -> None:
    """A changed file should import only rows after the stored label."""
    watermark = ImportWatermark("a.nmon", "00:05:05,01-JAN-2020", "abc")

    decision = decide_import(watermark, "def", force=False, zone=UTC)

    assert decision.lower_bound == datetime(2020, 1, 1, 0, 5, 5, tzinfo=UTC)


def test_decide_import_force_ignores_watermark() -> None:
    """Force should reimport from the epoch floor."""
    watermark = ImportWatermark("a.nmon", "00:05:05,01-JAN-2020", "abc")

    decision = decide_import(watermark, "abc", force=True, zone=UTC)

    assert (decision.skip, decision.lower_bound) == (False, FLOOR)


def test_decide_import_without_stored_timestamp_uses_floor() -> None:
    """A checksum-only watermark should import the whole file."""
    watermark = ImportWatermark("a.nmon", None, "abc")

    decision = decide_import(watermark, "def", force=False, zone=UTC)

    assert decision.lower_bound == FLOOR


def test_watermark_roundtrip_keeps_newest_value(tmp_path: Path) -> None:
    """Reading should return the latest persisted label and checksum."""
    watermarks = WatermarkStore(JsonlPointStore(tmp_path, "log"))
    watermarks.persist("a.nmon", "00:00:05,01-JAN-2020", "abc", datetime(2024, 1, 1, tzinfo=UTC))
    watermarks.persist("a.nmon", "00:05:05,01-JAN-2020", "def", datetime(2024, 1, 2, tzinfo=UTC))

    watermark = watermarks.read("a.nmon")

    assert watermark == ImportWatermark("a.nmon", "00:05:05,01-JAN-2020", "def")


def test_watermark_read_is_scoped_to_file(tmp_path: Path) -> None:
    """Another file's watermark should not be returned."""
    watermarks = WatermarkStore(JsonlPointStore(tmp_path, "log"))
    watermarks.persist("a.nmon", "00:00:05,01-JAN-2020", "abc", datetime(2024, 1, 1, tzinfo=UTC))

    assert watermarks.read("b.nmon") is None
