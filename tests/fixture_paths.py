"""Shared fixture path helpers for tests."""

from __future__ import annotations

import shutil
from pathlib import Path

SAMPLE_NMON_FILE = "nmon/server01_200101_0000.nmon"
SAMPLE_NMON_POINT_COUNT = 52


def fixture_path(relative_path: str) -> Path:
    """Resolve a fixture path relative to tests/fixtures.

    Args:
        relative_path: Path under fixtures root.

    Returns:
        Absolute fixture path.
    """
    tests_root = Path(__file__).resolve().parent
    return tests_root / "fixtures" / relative_path


def copy_sample_nmon(target_dir: Path) -> Path:
    """Copy the sample nmon file into ``target_dir`` and return its path."""
    target_dir.mkdir(parents=True, exist_ok=True)
    target_path = target_dir / Path(SAMPLE_NMON_FILE).name
    shutil.copyfile(fixture_path(SAMPLE_NMON_FILE), target_path)
    return target_path
