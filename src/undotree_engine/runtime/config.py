"""Editor configuration loaded from ``config.toml`` with env overrides."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from . import telemetry

CONFIG_DIR_NAME = "undotree"
CONFIG_FILE_NAME = "config.toml"


@dataclass(slots=True)
class EngineConfig:
    logging: bool = True
    relative_number: bool = False
    wrap: bool = False
    tab_width: int = 4
    undofile: bool = False
    clipboard: bool = False
    history_file: str = "savefile"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from parsed TOML, ignoring unknown keys."""

        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        return cls(**values)

    def with_env_overrides(self) -> "EngineConfig":
        """Apply ``UNDOTREE_ENGINE_UNDOFILE`` and ``UNDOTREE_ENGINE_HISTORY_FILE``."""

        return replace(
            self,
            undofile=telemetry.env_flag("UNDOFILE", self.undofile),
            history_file=telemetry.env_value("HISTORY_FILE", self.history_file)
            or self.history_file,
        )


def config_path() -> Optional[Path]:
    """Resolve ``$XDG_CONFIG_HOME/undotree/config.toml`` (or ``~/.config``)."""

    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    home = os.getenv("HOME")
    if home:
        return Path(home) / ".config" / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    return None


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load the config file; any problem falls back to the defaults."""

    target = path or config_path()
    if target is None or not target.is_file():
        telemetry.record_event(
            "config.missing", level="debug", data={"path": str(target)}
        )
        return EngineConfig().with_env_overrides()

    try:
        with target.open("rb") as handle:
            data = tomllib.load(handle)
        config = EngineConfig.from_mapping(data)
    except (OSError, tomllib.TOMLDecodeError, TypeError) as exc:
        telemetry.record_event(
            "config.invalid",
            level="warning",
            data={"path": str(target), "error": str(exc)},
        )
        return EngineConfig().with_env_overrides()

    telemetry.record_event("config.loaded", data={"path": str(target)})
    return config.with_env_overrides()


__all__ = ["EngineConfig", "config_path", "load_config"]
