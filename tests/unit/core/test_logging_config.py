"""Unit tests for structured logging setup."""

from __future__ import annotations

import json

from core.logging_config import configure_logging, get_logger


def test_log_events_render_as_json_on_stderr(capsys) -> None:
    """Events should be JSON lines on stderr with their fields."""
    configure_logging("INFO")

    get_logger("tests").info("file_imported", point_count=3)

    captured = capsys.readouterr()
    payload = json.loads(captured.err.strip().splitlines()[-1])
    assert captured.out == "" and (payload["event"], payload["point_count"]) == (
        "file_imported",
        3,
    )


def test_configured_level_filters_lower_events(capsys) -> None:
    """Events below the configured level should be dropped."""
    configure_logging("WARNING")

    get_logger("tests").info("hidden_event")
    configure_logging("INFO")

    assert capsys.readouterr().err == ""
