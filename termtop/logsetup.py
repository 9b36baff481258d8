"""Structlog configuration.

curses owns the terminal while the dashboard runs, so log events go to a
rotating JSON Lines file only. Modules log through ``structlog.get_logger()``
with an event name and key/value context.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

import structlog

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def default_log_path(env: dict[str, str] | None = None) -> Path:
    """``$XDG_STATE_HOME/termtop/termtop.log`` (or ``~/.local/state/...``)."""
    env = os.environ if env is None else env
    base = env.get("XDG_STATE_HOME")
    root = Path(base) if base else Path.home() / ".local" / "state"
    return root / "termtop" / "termtop.log"


def _level_number(level: str) -> int:
    name = level.strip().upper()
    number = logging.getLevelName(name)
    if not isinstance(number, int):
        raise ValueError(f"unknown log level: {level!r}")
    return number


def configure_logging(
    level: str = "warning",
    path: Path | None = None,
    max_bytes: int = 1_048_576,
    backup_count: int = 3,
) -> Path | None:
    """Route structlog through stdlib logging into a rotating JSON file.

    Returns the log path in use, or None if the file could not be opened
    (logging is then discarded).
    """
    threshold = _level_number(level)
    path = path or default_log_path()

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(threshold)
    stdlib_root.handlers.clear()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError:
        handler = logging.NullHandler()
        path = None

    handler.setLevel(threshold)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
            ],
        )
    )
    stdlib_root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return path
