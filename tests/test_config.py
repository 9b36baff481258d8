"""Tests for termtop.config."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from termtop.config import (
    DEFAULT_CONFIG,
    _deep_merge,
    config_dir,
    default_config_path,
    dump_default_config,
    load_config,
)


@pytest.fixture(autouse=True)
def _isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    return home


class TestLoadConfigDefaults:
    def test_defaults_returned_when_no_file(self) -> None:
        cfg = load_config(None)
        assert cfg["refresh_ms"] == 1000
        assert cfg["history_size"] == 120
        assert cfg["panes"]["processes"] is True
        assert cfg["limits"]["max_processes"] == 4096

    def test_all_default_keys_present(self) -> None:
        cfg = load_config(None)
        assert set(cfg.keys()) == set(DEFAULT_CONFIG.keys())

    def test_default_location_is_read(self) -> None:
        path = default_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("refresh_ms = 250\n")
        assert load_config(None)["refresh_ms"] == 250

    def test_invalid_default_location_warns(self, capsys: pytest.CaptureFixture[str]) -> None:
        path = default_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("refresh_ms = = 1\n")
        cfg = load_config(None)
        assert cfg["refresh_ms"] == 1000
        assert "ignoring invalid TOML" in capsys.readouterr().err


class TestTomlOverlay:
    def test_overrides_pane_flag(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("[panes]\ndisk = false\n")
        cfg = load_config(toml_file)
        assert cfg["panes"]["disk"] is False
        # Other panes remain at defaults
        assert cfg["panes"]["cpu"] is True

    def test_overrides_limits(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("[limits]\nmax_disks = 8\n")
        cfg = load_config(toml_file)
        assert cfg["limits"]["max_disks"] == 8
        assert cfg["limits"]["max_cores"] == 256

    def test_replaces_exclude_list(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[disks]\nexclude_prefixes = ["loop"]\n')
        cfg = load_config(toml_file)
        assert cfg["disks"]["exclude_prefixes"] == ["loop"]

    def test_overrides_scalar(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('sort = "mem"\n')
        cfg = load_config(toml_file)
        assert cfg["sort"] == "mem"


class TestExplicitPath:
    def test_missing_explicit_path_errors(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            load_config(tmp_path / "nonexistent.toml")

    def test_invalid_toml_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)


class TestConfigDir:
    def test_xdg(self) -> None:
        assert config_dir({"XDG_CONFIG_HOME": "/x"}) == Path("/x/termtop")

    def test_home_fallback(self) -> None:
        assert config_dir({}) == Path.home() / ".config" / "termtop"


class TestDumpDefaultConfig:
    def test_roundtrips_defaults(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert parsed == DEFAULT_CONFIG

    def test_mentions_location(self) -> None:
        assert "~/.config/termtop/config.toml" in dump_default_config()


class TestDeepMerge:
    def test_scalar_overwrite(self) -> None:
        assert _deep_merge({"a": 1, "b": 2}, {"a": 10}) == {"a": 10, "b": 2}

    def test_nested_dict_merge(self) -> None:
        result = _deep_merge({"x": {"a": 1, "b": 2}}, {"x": {"b": 3, "c": 4}})
        assert result["x"] == {"a": 1, "b": 3, "c": 4}

    def test_base_not_mutated(self) -> None:
        base = {"x": {"a": 1}}
        _deep_merge(base, {"x": {"a": 2}})
        assert base == {"x": {"a": 1}}
