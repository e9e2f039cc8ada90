"""Key dispatch and UI callbacks for hosting a Buffer in a Textual app."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from undotree_engine.buffer import (
    Buffer,
    BufferMirror,
    BufferWriteError,
    EditorMode,
    HistoryPersistenceError,
)
from undotree_engine.runtime import telemetry

LOGGER_NAME = "undotree_engine.adapters"
LINE_BREAK = "\n"


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class EditorUIHooks:
    """Callbacks invoked by the controller to update host widgets."""

    update_buffer: Callable[[BufferMirror], None]
    update_history: Callable[[List[str]], None] = _noop
    update_status: Callable[[str], None] = _noop
    log: Callable[[str], None] = _noop


KeyHandler = Callable[["BufferController"], str]


class BufferController:
    """Translates normalized key names into Buffer operations.

    Keys are plain names: printable characters, ``ESC``, ``ENTER``,
    ``BACKSPACE``, ``DELETE``, ``UP``/``DOWN``/``LEFT``/``RIGHT`` and
    ``CTRL+R``.
    """

    def __init__(
        self,
        buffer: Buffer,
        hooks: EditorUIHooks,
        *,
        history_columns: int = 38,
        history_height: int = 20,
    ) -> None:
        self.buffer = buffer
        self.hooks = hooks
        self.history_columns = history_columns
        self.history_height = history_height
        self.show_history = False
        self.quit_requested = False
        self.refresh()

    def handle_key(self, key: str, *, text: Optional[str] = None) -> str:
        """Dispatch one key and return the resulting status string."""

        mode = self.buffer.mode
        self._log("key ->", key=key, text=text, mode=mode.value)
        with telemetry.span(
            f"controller::{mode.value}",
            component="controller",
            logger_name=LOGGER_NAME,
            metadata={"key": key, "mode": mode.value},
        ):
            if key == "ESC":
                self.buffer.set_mode(EditorMode.NORMAL)
                status = "normal"
            elif mode is EditorMode.INSERT:
                status = self._insert_key(key, text)
            elif mode.is_visual:
                status = _dispatch(_VISUAL_KEYS, self, key)
            else:
                status = _dispatch(_NORMAL_KEYS, self, key)
        self.hooks.update_status(status)
        self.refresh()
        return status

    def click_history(self, screen_row: int) -> bool:
        """Jump to the node under ``screen_row`` (1-based) of the browser."""

        row = screen_row + self.buffer.history.scroll - 1
        moved = self.buffer.goto_row(row)
        self._log("history click ->", row=row, moved=moved)
        self.refresh()
        return moved

    def scroll_history(self, delta: int) -> None:
        history = self.buffer.history
        history.scroll = max(1, history.scroll + delta)
        self.refresh()

    def pull_buffer(self) -> BufferMirror:
        return self.buffer.mirror(attributes={"name": self.buffer.name})

    def pull_history(self) -> List[str]:
        return self.buffer.navigator().visible_lines(
            self.history_columns, self.history_height
        )

    def refresh(self) -> None:
        self.hooks.update_buffer(self.pull_buffer())
        if self.show_history:
            self.hooks.update_history(self.pull_history())

    def _insert_key(self, key: str, text: Optional[str]) -> str:
        buffer = self.buffer
        arrows = {"UP": (-1, 0), "DOWN": (1, 0), "LEFT": (0, -1), "RIGHT": (0, 1)}
        if key in arrows:
            buffer.step_cursor(*arrows[key])
            return "move"
        if key == "ENTER":
            buffer.type_char(LINE_BREAK)
        elif key == "BACKSPACE":
            buffer.backspace()
        elif key == "DELETE":
            buffer.delete()
        elif text is not None and len(text) == 1:
            buffer.type_char(text)
        else:
            return "ignored"
        return "insert"

    def _log(self, prefix: str, **fields: object) -> None:
        parts = [prefix]
        parts.extend(f"{k}={v!r}" for k, v in fields.items() if v is not None)
        self.hooks.log(" ".join(parts))


def _dispatch(
    table: Dict[str, KeyHandler], controller: BufferController, key: str
) -> str:
    handler = table.get(key)
    if handler is None:
        return "ignored"
    return handler(controller)


def _move(d_row: int, d_col: int) -> KeyHandler:
    def handler(controller: BufferController) -> str:
        controller.buffer.step_cursor(d_row, d_col)
        return "move"

    return handler


def _switch(mode: EditorMode) -> KeyHandler:
    def handler(controller: BufferController) -> str:
        controller.buffer.set_mode(mode)
        return mode.value

    return handler


def _append(controller: BufferController) -> str:
    controller.buffer.set_mode(EditorMode.INSERT)
    controller.buffer.step_cursor(0, 1)
    return "insert"


def _open_below(controller: BufferController) -> str:
    controller.buffer.open_line(below=True)
    return "insert"


def _open_above(controller: BufferController) -> str:
    controller.buffer.open_line(below=False)
    return "insert"


def _undo(controller: BufferController) -> str:
    return "undo" if controller.buffer.undo() else "undo_none"


def _redo(controller: BufferController) -> str:
    return "redo" if controller.buffer.redo() else "redo_none"


def _remove_char(controller: BufferController) -> str:
    buffer = controller.buffer
    row, col = buffer.cursor
    if col > len(buffer.lines[row - 1]):
        return "ignored"
    buffer.remove_char((row, col))
    buffer.move_cursor(row, min(col, max(1, len(buffer.lines[row - 1]))))
    return "remove_char"


def _line_operator(*, delete: bool) -> KeyHandler:
    def handler(controller: BufferController) -> str:
        buffer = controller.buffer
        buffer.set_mode(EditorMode.VISUAL_LINE)
        buffer.yank_selected()
        if delete:
            buffer.remove_selected()
        buffer.set_mode(EditorMode.NORMAL)
        return "delete_line" if delete else "yank_line"

    return handler


def _paste(*, after: bool) -> KeyHandler:
    def handler(controller: BufferController) -> str:
        controller.buffer.paste(after=after)
        return "paste"

    return handler


def _toggle_history(controller: BufferController) -> str:
    controller.show_history = not controller.show_history
    return "history_on" if controller.show_history else "history_off"


def _write(controller: BufferController) -> str:
    try:
        controller.buffer.write()
    except (BufferWriteError, HistoryPersistenceError) as exc:
        telemetry.record_event(
            "controller.write_failed",
            level="error",
            data={"error": str(exc)},
            logger_name=LOGGER_NAME,
        )
        return f"write_failed: {exc}"
    return "written"


def _quit(controller: BufferController) -> str:
    controller.quit_requested = True
    return "quit"


def _visual_yank(controller: BufferController) -> str:
    buffer = controller.buffer
    start, _ = buffer.selected_bounds()
    buffer.yank_selected()
    buffer.set_mode(EditorMode.NORMAL)
    buffer.move_cursor(*start)
    return "yank"


def _visual_delete(controller: BufferController) -> str:
    buffer = controller.buffer
    buffer.yank_selected()
    buffer.remove_selected()
    buffer.set_mode(EditorMode.NORMAL)
    return "delete"


_MOVES: Dict[str, KeyHandler] = {
    "h": _move(0, -1),
    "l": _move(0, 1),
    "k": _move(-1, 0),
    "j": _move(1, 0),
    "LEFT": _move(0, -1),
    "RIGHT": _move(0, 1),
    "UP": _move(-1, 0),
    "DOWN": _move(1, 0),
}

_NORMAL_KEYS: Dict[str, KeyHandler] = {
    **_MOVES,
    "i": _switch(EditorMode.INSERT),
    "a": _append,
    "o": _open_below,
    "O": _open_above,
    "v": _switch(EditorMode.VISUAL),
    "V": _switch(EditorMode.VISUAL_LINE),
    "H": _toggle_history,
    "x": _remove_char,
    "d": _line_operator(delete=True),
    "y": _line_operator(delete=False),
    "p": _paste(after=True),
    "P": _paste(after=False),
    "u": _undo,
    "r": _redo,
    "CTRL+R": _redo,
    "w": _write,
    "q": _quit,
}

_VISUAL_KEYS: Dict[str, KeyHandler] = {
    **_MOVES,
    "y": _visual_yank,
    "d": _visual_delete,
}


__all__ = ["BufferController", "EditorUIHooks"]
