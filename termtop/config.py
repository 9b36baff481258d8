"""Configuration loading for termtop.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → $XDG_CONFIG_HOME/termtop/config.toml → defaults only.
"""

from __future__ import annotations

import os
import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "refresh_ms": 1000,
    "history_size": 120,
    "sort": "cpu_smoothed",
    "panes": {
        "cpu": True,
        "memory": True,
        "disk": True,
        "network": True,
        "processes": True,
    },
    "limits": {
        "max_processes": 4096,
        "max_disks": 32,
        "max_cores": 256,
    },
    "disks": {
        "exclude_prefixes": ["loop", "ram", "zram", "dm-"],
    },
    "logging": {
        "level": "warning",
        "file": "",
        "max_bytes": 1_048_576,
        "backup_count": 3,
    },
}


def config_dir(env: dict[str, str] | None = None) -> Path:
    """``$XDG_CONFIG_HOME/termtop``, falling back to ``~/.config/termtop``."""
    env = os.environ if env is None else env
    base = env.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "termtop"


def default_config_path(env: dict[str, str] | None = None) -> Path:
    return config_dir(env) / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location under ``$XDG_CONFIG_HOME``.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"termtop: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"termtop: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    default_path = default_config_path()
    if default_path.is_file():
        try:
            user_config = tomllib.loads(default_path.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except (tomllib.TOMLDecodeError, OSError):
            print(
                f"termtop: warning: ignoring invalid TOML in {default_path}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    return str(value)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# termtop configuration",
        "# Place this file at ~/.config/termtop/config.toml",
        "",
    ]
    tables = []
    for key, value in DEFAULT_CONFIG.items():
        if isinstance(value, dict):
            tables.append((key, value))
        else:
            lines.append(f"{key} = {_toml_value(value)}")
    lines.append("")

    for name, table in tables:
        lines.append(f"[{name}]")
        for key, value in table.items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")

    return "\n".join(lines) + "\n"
