"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest


def pytest_sessionstart() -> None:
    """Add src and project root directories to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    for import_root in (project_root / "src", project_root):
        if str(import_root) not in sys.path:
            sys.path.insert(0, str(import_root))


@pytest.fixture
def nmon_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Runtime config rooted in a temporary directory with UTC labels."""
    from core.config import NmonConfig

    monkeypatch.delenv("NMON_INFLUXDB_URL", raising=False)
    config = NmonConfig.from_env()
    return replace(config, data_root=tmp_path / "store", timezone=ZoneInfo("UTC"))
