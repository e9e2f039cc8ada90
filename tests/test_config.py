from __future__ import annotations

from pathlib import Path

import pytest

from undotree_engine.runtime.config import EngineConfig, config_path, load_config


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path / "config.toml")

    assert config == EngineConfig()


def test_values_read_from_toml(tmp_path: Path) -> None:
    target = tmp_path / "config.toml"
    target.write_text(
        'undofile = true\ntab_width = 2\nhistory_file = "hist.json"\nunknown = 1\n',
        encoding="utf-8",
    )

    config = load_config(target)

    assert config.undofile is True
    assert config.tab_width == 2
    assert config.history_file == "hist.json"
    assert config.wrap is False


def test_invalid_toml_falls_back_to_defaults(tmp_path: Path) -> None:
    target = tmp_path / "config.toml"
    target.write_text("undofile = = nope", encoding="utf-8")

    assert load_config(target) == EngineConfig()


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNDOTREE_ENGINE_UNDOFILE", "yes")
    monkeypatch.setenv("UNDOTREE_ENGINE_HISTORY_FILE", "elsewhere")

    config = load_config(tmp_path / "config.toml")

    assert config.undofile is True
    assert config.history_file == "elsewhere"


def test_config_path_prefers_xdg(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", "/xdg")
    monkeypatch.setenv("HOME", "/home/user")

    assert config_path() == Path("/xdg/undotree/config.toml")

    monkeypatch.delenv("XDG_CONFIG_HOME")
    assert config_path() == Path("/home/user/.config/undotree/config.toml")
