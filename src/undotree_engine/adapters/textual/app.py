"""Executable Textual app that edits one file with a history browser."""

from __future__ import annotations

import argparse
from typing import List, Optional, Sequence

try:  # pragma: no cover - imported only when the app is run
    from rich.text import Text
    from textual import events
    from textual.app import App, ComposeResult
    from textual.containers import Horizontal
    from textual.widgets import Footer, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use undotree_engine.adapters.textual.app"
    ) from exc

from undotree_engine.buffer import Buffer, BufferMirror, RegisterBank
from undotree_engine.runtime import telemetry
from undotree_engine.runtime.config import EngineConfig, load_config

from .controller import BufferController, EditorUIHooks

HISTORY_COLUMNS = 38


class HistoryPanel(Static):
    """History browser; clicks jump to the node drawn on that row."""

    def __init__(self, app_ref: "EditorApp", **kwargs) -> None:
        super().__init__("", **kwargs)
        self._app_ref = app_ref

    def on_click(self, event: events.Click) -> None:
        if self._app_ref.controller:
            self._app_ref.controller.click_history(event.y + 1)

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        if self._app_ref.controller:
            self._app_ref.controller.scroll_history(1)

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        if self._app_ref.controller:
            self._app_ref.controller.scroll_history(-1)


class EditorApp(App[None]):
    """Minimal Textual UI around a single Buffer."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#history-view {
		width: 40;
		border: round $accent;
		display: none;
	}

	#buffer-view {
		width: 1fr;
		border: round $accent;
		padding: 0 1;
		overflow: auto;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, path: str, *, config: Optional[EngineConfig] = None) -> None:
        super().__init__()
        self.path = path
        self.config = config or load_config()
        self.controller: BufferController | None = None
        self._buffer_widget: Static | None = None
        self._history_widget: HistoryPanel | None = None
        self._status_widget: Static | None = None
        self._position = ""
        self._last_status = ""

    def compose(self) -> ComposeResult:
        with Horizontal():
            self._history_widget = HistoryPanel(self, id="history-view")
            yield self._history_widget
            self._buffer_widget = Static("", id="buffer-view")
            yield self._buffer_widget
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    def on_mount(self) -> None:
        buffer = Buffer.open(self.path, config=self.config)
        if self.config.clipboard:
            buffer.registers = RegisterBank(clipboard_set=self.copy_to_clipboard)
        hooks = EditorUIHooks(
            update_buffer=self._update_buffer,
            update_history=self._update_history,
            update_status=self._update_status,
        )
        self.controller = BufferController(
            buffer,
            hooks,
            history_columns=HISTORY_COLUMNS,
            history_height=self.size.height,
        )

    def on_key(self, event: events.Key) -> None:
        if not self.controller:
            return
        key, text = self._normalize_key(event)
        if key is None:
            return
        self.controller.handle_key(key, text=text)
        if self._history_widget is not None:
            self._history_widget.display = self.controller.show_history
        if self.controller.quit_requested:
            self.exit()
        event.stop()

    def _update_buffer(self, mirror: BufferMirror) -> None:
        if self._buffer_widget is None:
            return
        lines = mirror.text.split("\n")
        gutter = len(str(len(lines)))
        row, col = mirror.cursor
        rendered = []
        for index, line in enumerate(lines, start=1):
            if index == row:
                line = line[: col - 1] + "▏" + line[col - 1 :]
            line = line.expandtabs(self.config.tab_width)
            number = index
            if self.config.relative_number and index != row:
                number = abs(index - row)
            rendered.append(f"{number:>{gutter}} {line}")
        self._buffer_widget.update(
            Text("\n".join(rendered), no_wrap=not self.config.wrap)
        )
        name = mirror.attributes.get("name", self.path)
        modified = " [+]" if mirror.dirty else ""
        node = "/".join(map(str, mirror.location)) or "root"
        self._position = (
            f"{name}{modified}  {mirror.mode.upper()}  {row}:{col}  node {node}"
        )
        self._show_status()

    def _update_history(self, lines: List[str]) -> None:
        if self._history_widget is not None:
            self._history_widget.update("\n".join(lines))

    def _update_status(self, status: str) -> None:
        self._last_status = status
        self._show_status()

    def _show_status(self) -> None:
        if self._status_widget is not None:
            self._status_widget.update(f"{self._position}  {self._last_status}")

    @staticmethod
    def _normalize_key(event: events.Key) -> tuple[Optional[str], Optional[str]]:
        key = event.key
        if key in {"ctrl+c", "ctrl+q"}:
            return None, None
        named = {
            "escape": "ESC",
            "enter": "ENTER",
            "backspace": "BACKSPACE",
            "delete": "DELETE",
            "up": "UP",
            "down": "DOWN",
            "left": "LEFT",
            "right": "RIGHT",
            "ctrl+r": "CTRL+R",
        }
        if key in named:
            return named[key], None
        if event.character and event.is_printable:
            return event.character, event.character
        return None, None


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Edit a file with a branching undo tree."
    )
    parser.add_argument("path", help="File to edit (created on first write)")
    parser.add_argument(
        "--undofile",
        action="store_true",
        help="Load and save the history snapshot regardless of config.toml",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    telemetry.configure(preset="editor")
    config = load_config()
    if args.undofile:
        config.undofile = True
    EditorApp(args.path, config=config).run()
    if config.logging:
        lines = telemetry.session_log()
        if lines:
            print("Logs:")
            print("\n".join(lines))


if __name__ == "__main__":  # pragma: no cover - manual run
    main()
