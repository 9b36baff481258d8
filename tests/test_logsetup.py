"""Tests for termtop.logsetup."""

from __future__ import annotations

import json
import logging
import logging.handlers
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from termtop.logsetup import configure_logging, default_log_path


@pytest.fixture()
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler, (logging.handlers.RotatingFileHandler, logging.NullHandler)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
    structlog.reset_defaults()


class TestDefaultLogPath:
    def test_xdg_state_home(self) -> None:
        path = default_log_path({"XDG_STATE_HOME": "/state"})
        assert path == Path("/state/termtop/termtop.log")

    def test_fallback(self) -> None:
        path = default_log_path({})
        assert path == Path.home() / ".local" / "state" / "termtop" / "termtop.log"


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    def test_writes_json_lines(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "termtop.log"
        assert configure_logging("info", log_file) == log_file

        structlog.get_logger("termtop.test").info("poll_done", polls=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().splitlines()[-1])
        assert record["event"] == "poll_done"
        assert record["polls"] == 3
        assert record["level"] == "info"
        assert "ts" in record

    def test_level_filters(self, tmp_path: Path) -> None:
        log_file = tmp_path / "termtop.log"
        configure_logging("warning", log_file)
        log = structlog.get_logger("termtop.test")
        log.info("hidden")
        log.warning("shown")
        for handler in logging.getLogger().handlers:
            handler.flush()
        events = [json.loads(line)["event"] for line in log_file.read_text().splitlines()]
        assert events == ["shown"]

    def test_unknown_level(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            configure_logging("chatty", tmp_path / "termtop.log")

    def test_unwritable_location(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        assert configure_logging("info", blocker / "termtop.log") is None
