"""Persisted user settings: pane visibility, sort mode and refresh rate.

Stored as ``key=value`` lines so they survive between runs. The file is
rewritten whenever a pane is toggled and on exit.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import structlog

from termtop.config import config_dir
from termtop.layout import PaneFlags
from termtop.ranking import SortMode

log = structlog.get_logger()

REFRESH_MIN_MS = 100
REFRESH_MAX_MS = 10_000
DEFAULT_REFRESH_MS = 1000

_PANE_KEYS = {
    "show_cpu": "cpu",
    "show_mem": "memory",
    "show_disks": "disk",
    "show_net": "network",
    "show_proc": "processes",
}


def clamp_refresh(ms: int) -> int:
    return max(REFRESH_MIN_MS, min(REFRESH_MAX_MS, ms))


@dataclass(frozen=True, slots=True)
class Settings:
    panes: PaneFlags = field(default_factory=PaneFlags)
    sort_mode: SortMode = SortMode.CPU_SMOOTHED
    refresh_ms: int = DEFAULT_REFRESH_MS


def settings_path(env: dict[str, str] | None = None) -> Path:
    """Where settings live; a temp directory if no home can be found."""
    env = os.environ if env is None else env
    if env.get("XDG_CONFIG_HOME") or env.get("HOME"):
        return config_dir(env) / "settings"
    return Path(tempfile.gettempdir()) / "termtop" / "settings"


def default_settings(config: dict[str, Any]) -> Settings:
    """Initial settings derived from the TOML configuration."""
    panes = config.get("panes", {})
    flags = PaneFlags(
        cpu=bool(panes.get("cpu", True)),
        memory=bool(panes.get("memory", True)),
        disk=bool(panes.get("disk", True)),
        network=bool(panes.get("network", True)),
        processes=bool(panes.get("processes", True)),
    )
    try:
        sort_mode = SortMode.from_name(str(config.get("sort", "cpu_smoothed")))
    except ValueError:
        log.warning("invalid_sort_mode", value=config.get("sort"))
        sort_mode = SortMode.CPU_SMOOTHED
    try:
        refresh = int(config.get("refresh_ms", DEFAULT_REFRESH_MS))
    except (TypeError, ValueError):
        refresh = DEFAULT_REFRESH_MS
    return Settings(panes=flags, sort_mode=sort_mode, refresh_ms=clamp_refresh(refresh))


def parse_settings(text: str, base: Settings) -> Settings:
    """Apply ``key=value`` lines over *base*; unknown or malformed lines are skipped."""
    pane_values = {name: getattr(base.panes, name) for name in _PANE_KEYS.values()}
    sort_mode = base.sort_mode
    refresh_ms = base.refresh_ms

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        try:
            number = int(value.strip())
        except ValueError:
            continue
        if key in _PANE_KEYS:
            pane_values[_PANE_KEYS[key]] = number != 0
        elif key == "sort_mode":
            if 0 <= number < len(SortMode):
                sort_mode = SortMode(number)
        elif key == "refresh_rate":
            refresh_ms = clamp_refresh(number)

    return replace(
        base,
        panes=PaneFlags(**pane_values),
        sort_mode=sort_mode,
        refresh_ms=refresh_ms,
    )


def dump_settings(settings: Settings) -> str:
    lines = ["# termtop settings"]
    for key, name in _PANE_KEYS.items():
        lines.append(f"{key}={int(getattr(settings.panes, name))}")
    lines.append(f"sort_mode={int(settings.sort_mode)}")
    lines.append(f"refresh_rate={settings.refresh_ms}")
    return "\n".join(lines) + "\n"


def load_settings(path: Path, base: Settings) -> Settings:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return base
    except (OSError, UnicodeDecodeError) as e:
        log.warning("settings_load_failed", path=str(path), error=str(e))
        return base
    return parse_settings(text, base)


def save_settings(path: Path, settings: Settings) -> bool:
    """Write settings to *path*. Returns False (and logs) on failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_settings(settings), encoding="utf-8")
    except OSError as e:
        log.warning("settings_save_failed", path=str(path), error=str(e))
        return False
    return True
