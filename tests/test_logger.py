"""Tests for consent_inspector.utils.logger — file logging and timers."""

from __future__ import annotations

import pathlib

import pytest

from consent_inspector import config
from consent_inspector.utils import logger


@pytest.fixture()
def file_logging(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Enable file logging; tests set ``LOG_DIR`` before building settings."""
    monkeypatch.setenv("WRITE_TO_FILE", "true")
    return monkeypatch


def _use_settings(monkeypatch: pytest.MonkeyPatch, log_dir: pathlib.Path) -> None:
    monkeypatch.setenv("LOG_DIR", str(log_dir))
    settings = config.InspectorSettings()
    monkeypatch.setattr(config, "get_settings", lambda: settings)


class TestStartLogFile:
    def test_disabled_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("WRITE_TO_FILE", raising=False)
        settings = config.InspectorSettings()
        monkeypatch.setattr(config, "get_settings", lambda: settings)
        assert logger.start_log_file("example.com") is None

    def test_writes_ansi_free_lines(self, file_logging: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        _use_settings(file_logging, tmp_path / "logs")
        path = logger.start_log_file("www.example.com")
        try:
            assert path is not None
            logger.create_logger("Test").info("hello", {"phase": "baseline"})
        finally:
            logger.end_log_file()

        text = pathlib.Path(path).read_text(encoding="utf-8")
        assert pathlib.Path(path).name.startswith("example.com_")
        assert "Inspection Log - www.example.com" in text
        assert "[Test] hello" in text
        assert "\033[" not in text

    def test_unwritable_directory_is_not_fatal(self, file_logging: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        _use_settings(file_logging, blocker / "logs")

        assert logger.start_log_file("example.com") is None
        logger.create_logger("Test").info("still logging")
        logger.end_log_file()


class TestTimers:
    def test_end_timer_returns_elapsed(self) -> None:
        log = logger.create_logger("Test")
        log.start_timer("work")
        assert log.end_timer("work") >= 0.0

    def test_unknown_timer_returns_zero(self) -> None:
        assert logger.create_logger("Test").end_timer("never-started") == 0.0
