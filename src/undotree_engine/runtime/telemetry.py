"""Logging for the undo-tree engine, built on telelog.

Modules log through three calls:

``record_event(name, ...)`` -- one structured ``event::<name>`` line
``span(name, ...)`` -- profile a block, optionally tagged as a component
``configure(...)`` -- pick the telelog setup (env driven, or a preset)

Every event is also appended to an in-memory session log that a host can
dump when the editor exits (``session_log()``); the terminal is owned by the
UI while it runs, so console output is off in the ``editor`` preset.
"""

from __future__ import annotations

import os
from collections import deque
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "UNDOTREE_ENGINE_"
ROOT_LOGGER = "undotree_engine"
SESSION_LOG_LIMIT = 500

_loggers: Dict[str, Any] = {}
_config: Optional[Any] = None
_session: Deque[str] = deque(maxlen=SESSION_LOG_LIMIT)


def env_value(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean ``UNDOTREE_ENGINE_<name>`` switch."""

    raw = env_value(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, set)):
        return repr(value)
    return str(value)


def _pairs(data: Dict[str, Any]) -> List[Tuple[str, str]]:
    return [(str(key), _text(value)) for key, value in data.items()]


def _env_config() -> Any:
    config = tl.Config()
    config.with_min_level((env_value("LOG_LEVEL") or "INFO").upper())
    console = not env_flag("DISABLE_CONSOLE", False)
    config.with_console_output(console)
    if console:
        config.with_colored_output(not env_flag("NO_COLOR", False))
    config.with_json_format(env_flag("LOG_JSON", False))
    log_file = env_value("LOG_FILE")
    if log_file:
        config.with_file_output(log_file)
    config.with_profiling(True)
    return config


def _preset_config(preset: str) -> Any:
    config = tl.Config()
    name = preset.lower()
    if name == "debug":
        config.with_min_level("DEBUG")
        config.with_console_output(True)
        config.with_colored_output(True)
    elif name == "editor":
        config.with_min_level((env_value("LOG_LEVEL") or "WARNING").upper())
        config.with_console_output(False)
        log_file = env_value("LOG_FILE")
        if log_file:
            config.with_file_output(log_file)
            config.with_buffering(True)
    else:
        raise ValueError(f"Unknown telemetry preset '{preset}'.")
    config.with_profiling(True)
    return config


def configure(*, config: Optional[Any] = None, preset: Optional[str] = None) -> None:
    """Replace the telelog configuration used by new loggers.

    ``preset`` is ``"debug"`` (everything on the console) or ``"editor"``
    (console off while a UI draws). Without arguments the configuration is
    read from ``UNDOTREE_ENGINE_*`` variables.
    """

    global _config
    if config is not None and preset:
        raise ValueError("Pass either `config` or `preset`, not both.")
    if preset:
        config = _preset_config(preset)
    _config = config if config is not None else _env_config()
    _loggers.clear()


def get_logger(name: Optional[str] = None) -> Any:
    """Return the cached ``telelog.Logger`` for ``name``."""

    global _config
    key = name or ROOT_LOGGER
    if key not in _loggers:
        if _config is None:
            _config = _env_config()
        _loggers[key] = tl.Logger.with_config(key, _config)
    return _loggers[key]


def _emit(log: Any, level: str, message: str, payload: Dict[str, Any]) -> None:
    name = level.lower()
    structured = getattr(log, f"{name}_with", None)
    if structured is not None:
        structured(message, _pairs(payload))
        return
    plain = getattr(log, name, None)
    if plain is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    plain(f"{message} {payload}")


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    """Log ``event::<name>`` with ``data`` and keep it in the session log."""

    payload = dict(data or {})
    _emit(get_logger(logger_name), level, f"event::{name}", payload)
    details = " ".join(f"{key}={value}" for key, value in _pairs(payload))
    _session.append(f"[{level.upper()}] {name} {details}".rstrip())


def session_log() -> List[str]:
    """Events recorded since start-up (or the last ``clear_session_log``)."""

    return list(_session)


def clear_session_log() -> None:
    _session.clear()


@dataclass
class SpanHandle:
    logger: Any
    name: str
    component: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def fail(self, reason: str) -> None:
        payload: Dict[str, Any] = {"span": self.name, **self.metadata}
        if self.component:
            payload["component"] = self.component
        payload["reason"] = reason
        _emit(self.logger, "error", "span::fail", payload)
        _session.append(f"[ERROR] {self.name} failed: {reason}")


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str | bool] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Profile the block; ``metadata`` is logger context while it runs.

    ``component=True`` tracks the block under its own ``name``; a string
    tracks it under that component instead. An exception escaping the block
    is logged as ``span::fail`` and re-raised.
    """

    log = get_logger(logger_name)
    component_name = name if component is True else component or None
    context = {key: _text(value) for key, value in (metadata or {}).items()}
    for key, value in context.items():
        log.add_context(key, value)

    handle = SpanHandle(log, name, component_name, dict(context))
    with ExitStack() as stack:
        if component_name:
            stack.enter_context(log.track_component(component_name))
        stack.enter_context(log.profile(name))
        try:
            yield handle
        except Exception as exc:
            handle.fail(str(exc))
            raise
        finally:
            for key in context:
                log.remove_context(key)


__all__ = [
    "ENV_PREFIX",
    "SpanHandle",
    "clear_session_log",
    "configure",
    "env_flag",
    "env_value",
    "get_logger",
    "record_event",
    "session_log",
    "span",
]
