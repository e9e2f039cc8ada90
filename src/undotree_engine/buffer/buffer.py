"""High-level buffer façade combining document, state, registers, and history."""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import ContextManager, Iterator, Optional, Sequence, Tuple, Union

from undotree_engine.runtime import telemetry
from undotree_engine.runtime.config import EngineConfig

from .actions import (
    LINE_BREAK,
    Action,
    Composite,
    InsertChar,
    InsertLines,
    InsertText,
    Lines,
    NoAction,
    RemoveChar,
    RemoveLines,
    RemoveText,
    concat_lines,
)
from .document import BufferDocument
from .history import History
from .navigator import HistoryNavigator
from .persistence import load_history, save_history
from .registers import RegisterBank
from .state import BufferState, Cursor, EditorMode, Selection
from .sync import BufferMirror, BufferValidationError, BufferWriteError
from .validation import ensure_cursor, ensure_row

LOGGER_NAME = "undotree_engine.buffer"


@dataclass(slots=True)
class BufferView:
    version: int
    text: str
    cursor: Cursor
    selection: Optional[Selection]
    mode: EditorMode


class Buffer:
    """Line buffer whose every mutation is recorded in a branching history.

    Mutation methods take 1-based coordinates and return the action they
    performed. ``record=False`` applies the change without touching the
    history; ``apply`` uses it to replay undo/redo/goto results.
    """

    def __init__(
        self,
        *,
        name: str = "default",
        document: Optional[BufferDocument] = None,
        state: Optional[BufferState] = None,
        registers: Optional[RegisterBank] = None,
        history: Optional[History] = None,
        path: Optional[Path] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.name = name
        self.document = document or BufferDocument()
        self.state = state or BufferState()
        self.registers = registers or RegisterBank()
        self.history = history or History()
        self.path = path
        self.config = config or EngineConfig()

    @classmethod
    def from_text(cls, text: str, *, name: str = "default") -> "Buffer":
        return cls(name=name, document=BufferDocument.from_text(text))

    @classmethod
    def from_lines(cls, lines: Sequence[str], *, name: str = "default") -> "Buffer":
        return cls(name=name, document=BufferDocument.from_lines(lines))

    @classmethod
    def open(
        cls, path: Union[str, Path], *, config: Optional[EngineConfig] = None
    ) -> "Buffer":
        """Load ``path`` (a missing file is an empty buffer) and its history."""

        target = Path(path)
        config = config or EngineConfig()
        text = target.read_text(encoding="utf-8") if target.exists() else ""
        history = load_history(config.history_file) if config.undofile else History()
        telemetry.record_event(
            "buffer.open",
            data={"path": str(target), "undofile": config.undofile},
            logger_name=LOGGER_NAME,
        )
        return cls(
            name=target.name,
            document=BufferDocument.from_text(text),
            history=history,
            path=target,
            config=config,
        )

    # -- read access ----------------------------------------------------

    @property
    def lines(self) -> Sequence[str]:
        return self.document.snapshot()

    @property
    def cursor(self) -> Cursor:
        return self.state.cursor

    @property
    def mode(self) -> EditorMode:
        return self.state.mode

    def navigator(self) -> HistoryNavigator:
        return HistoryNavigator(self.history)

    def snapshot(self) -> BufferView:
        return BufferView(
            version=self.document.version,
            text=concat_lines(self.document.snapshot()),
            cursor=self.state.cursor,
            selection=self.state.selection,
            mode=self.state.mode,
        )

    def mirror(self, *, attributes: Optional[dict[str, str]] = None) -> BufferMirror:
        return BufferMirror(
            text=concat_lines(self.document.snapshot()),
            cursor=self.state.cursor,
            selection=self.state.selection,
            mode=self.state.mode.value,
            dirty=self.document.dirty,
            location=tuple(self.history.location),
            attributes=dict(attributes or {}),
        )

    def get_text(self, start: Cursor, stop: Cursor) -> Lines:
        """Return the half-open span ``[start, stop)`` as a list of lines."""

        start = ensure_cursor(self.document, start)
        stop = ensure_cursor(self.document, stop)
        if stop < start:
            raise BufferValidationError("Span stop precedes start", cursor=stop)
        first = self.document.get_line(start[0])
        if start[0] == stop[0]:
            return (first[start[1] - 1 : stop[1] - 1],)
        middle = tuple(
            self.document.get_line(row) for row in range(start[0] + 1, stop[0])
        )
        last = self.document.get_line(stop[0])
        return (first[start[1] - 1 :], *middle, last[: stop[1] - 1])

    def get_lines(self, start_row: int, stop_row: int) -> Lines:
        """Return whole lines ``start_row..stop_row`` inclusive."""

        ensure_row(self.document, start_row)
        ensure_row(self.document, stop_row)
        return tuple(self.lines[start_row - 1 : stop_row])

    # -- primitive mutations --------------------------------------------

    def insert_char(self, pos: Cursor, char: str, *, record: bool = True) -> InsertChar:
        """Insert one character; a line break splits the line at ``pos``."""

        if len(char) != 1:
            raise BufferValidationError("insert_char expects one character", cursor=pos)
        row, col = ensure_cursor(self.document, pos)
        with Transaction(self, "insert_char", record=record) as tx:
            line = self.document.get_line(row)
            head, tail = line[: col - 1], line[col - 1 :]
            if char == LINE_BREAK:
                self.document.replace_lines(row, row, [head, tail])
                self.state.set_cursor(row + 1, 1)
            else:
                self.document.set_line(row, head + char + tail)
                self.state.set_cursor(row, col + 1)
            action = InsertChar(pos=(row, col), char=char)
            tx.commit(action)
        return action

    def remove_char(self, pos: Cursor, *, record: bool = True) -> RemoveChar:
        """Delete the character at ``pos``; at end of line, join the next line."""

        row, col = ensure_cursor(self.document, pos)
        line = self.document.get_line(row)
        if col > len(line) and row >= self.document.line_count:
            raise BufferValidationError("Nothing to join after last line", cursor=pos)
        with Transaction(self, "remove_char", record=record) as tx:
            if col <= len(line):
                char = line[col - 1]
                self.document.set_line(row, line[: col - 1] + line[col:])
            else:
                char = LINE_BREAK
                following = self.document.get_line(row + 1)
                self.document.replace_lines(row, row + 1, [line + following])
            self.state.set_cursor(row, col)
            action = RemoveChar(pos=(row, col), char=char)
            tx.commit(action)
        return action

    def insert_text(
        self, text: Sequence[str], pos: Cursor, *, record: bool = True
    ) -> InsertText:
        """Splice ``text`` (a list of lines) in at ``pos``.

        The line at ``pos`` is split into head and tail: the first inserted
        line joins the head, the last joins the tail, and interior lines become
        whole lines. The cursor ends just past the inserted span.
        """

        if not text:
            raise BufferValidationError(
                "insert_text needs at least one line", cursor=pos
            )
        row, col = ensure_cursor(self.document, pos)
        lines = tuple(text)
        with Transaction(self, "insert_text", record=record) as tx:
            line = self.document.get_line(row)
            head, tail = line[: col - 1], line[col - 1 :]
            if len(lines) == 1:
                self.document.set_line(row, head + lines[0] + tail)
                stop = (row, col + len(lines[0]))
            else:
                spliced = [head + lines[0], *lines[1:-1], lines[-1] + tail]
                self.document.replace_lines(row, row, spliced)
                stop = (row + len(lines) - 1, len(lines[-1]) + 1)
            self.state.set_cursor(*stop)
            action = InsertText(start=(row, col), stop=stop, text=lines)
            tx.commit(action)
        return action

    def remove_text(
        self, start: Cursor, stop: Cursor, *, record: bool = True
    ) -> RemoveText:
        """Delete the half-open span ``[start, stop)``."""

        removed = self.get_text(start, stop)
        with Transaction(self, "remove_text", record=record) as tx:
            first = self.document.get_line(start[0])
            last = self.document.get_line(stop[0])
            joined = first[: start[1] - 1] + last[stop[1] - 1 :]
            self.document.replace_lines(start[0], stop[0], [joined])
            self.state.set_cursor(*start)
            action = RemoveText(start=tuple(start), stop=tuple(stop), text=removed)
            tx.commit(action)
        return action

    def insert_lines(
        self,
        lines: Sequence[str],
        at_row: int,
        *,
        placeholder: bool = False,
        record: bool = True,
    ) -> InsertLines:
        """Insert whole lines so the first one becomes line ``at_row``.

        With ``placeholder`` the buffer must be the single empty line left by
        removing everything; that line is replaced instead of kept.
        """

        if not lines:
            raise BufferValidationError("insert_lines needs at least one line")
        ensure_row(self.document, at_row, allow_append=True)
        new_lines = tuple(lines)
        if placeholder and (at_row != 1 or self.document.snapshot() != ("",)):
            raise BufferValidationError(
                "No placeholder line to replace", cursor=(at_row, 1)
            )
        with Transaction(self, "insert_lines", record=record) as tx:
            if placeholder:
                self.document.replace_lines(1, 1, new_lines)
            else:
                self.document.insert_lines(at_row, new_lines)
            self.state.set_cursor(at_row, 1)
            action = InsertLines(
                start=at_row,
                stop=at_row + len(new_lines) - 1,
                lines=new_lines,
                placeholder=placeholder,
            )
            tx.commit(action)
        return action

    def remove_lines(
        self, start_row: int, stop_row: int, *, record: bool = True
    ) -> RemoveLines:
        """Delete lines ``start_row..stop_row`` inclusive.

        Removing every line leaves one empty line behind.
        """

        removed = self.get_lines(start_row, stop_row)
        if stop_row < start_row:
            raise BufferValidationError("Line range is reversed", cursor=(stop_row, 1))
        placeholder = start_row == 1 and stop_row == self.document.line_count
        with Transaction(self, "remove_lines", record=record) as tx:
            self.document.delete_lines(start_row, stop_row)
            self.state.set_cursor(min(start_row, self.document.line_count), 1)
            action = RemoveLines(
                start=start_row, stop=stop_row, lines=removed, placeholder=placeholder
            )
            tx.commit(action)
        return action

    # -- replay ---------------------------------------------------------

    def apply(self, action: Action) -> None:
        """Replay ``action`` on the document without recording it.

        The history is locked for the duration, so nothing the replay
        triggers can add nodes or grow a running recording.
        """

        with self.history.suspended():
            self._dispatch(action)

    def _dispatch(self, action: Action) -> None:
        if isinstance(action, Composite):
            for child in action.actions:
                self._dispatch(child)
        elif isinstance(action, InsertChar):
            self.insert_char(action.pos, action.char, record=False)
        elif isinstance(action, RemoveChar):
            self.remove_char(action.pos, record=False)
        elif isinstance(action, InsertText):
            self.insert_text(action.text, action.start, record=False)
        elif isinstance(action, RemoveText):
            self.remove_text(action.start, action.stop, record=False)
        elif isinstance(action, InsertLines):
            self.insert_lines(
                action.lines, action.start, placeholder=action.placeholder, record=False
            )
        elif isinstance(action, RemoveLines):
            self.remove_lines(action.start, action.stop, record=False)
        elif not isinstance(action, NoAction):
            raise TypeError(f"Cannot apply {type(action).__name__}")

    def _replay(self, actions: Sequence[Action]) -> None:
        for action in actions:
            self.apply(action)

    def undo(self) -> bool:
        """Revert the current history node; ``False`` at the original state."""

        self._close_session()
        action = self.history.undo()
        if action is None:
            return False
        self.apply(action)
        self._clamp_cursor()
        return True

    def redo(self) -> bool:
        self._close_session()
        action = self.history.redo()
        if action is None:
            return False
        self.apply(action)
        self._clamp_cursor()
        return True

    def goto(self, path: Sequence[int]) -> bool:
        """Move the buffer to the state of the history node at ``path``."""

        if self.history.get_node(path) is None:
            return False
        if self.state.mode is EditorMode.INSERT:
            # appending the pending session keeps existing paths valid
            self.set_mode(EditorMode.NORMAL)
        actions = self.history.goto(path)
        if actions is None:  # pragma: no cover - path validated above
            return False
        self._replay(actions)
        self._clamp_cursor()
        return True

    def goto_row(self, row: int) -> bool:
        """Jump to the node drawn at ``row`` of the history browser."""

        path = self.navigator().row_to_path(row)
        if path is None:
            return False
        return self.goto(path)

    # -- modes and insert-mode keys -------------------------------------

    def set_mode(self, mode: EditorMode) -> None:
        """Switch modes, opening and closing recording sessions for insert."""

        previous = self.state.mode
        if previous is mode:
            return
        if previous is EditorMode.INSERT:
            if self.history.is_recording:
                self.history.stop_record()
            if mode is EditorMode.NORMAL:
                row, col = self.state.cursor
                goal = self.state.col_goal
                self.state.cursor = (row, max(1, col - 1))
                self.state.col_goal = max(1, goal - 1)
        elif previous is EditorMode.VISUAL and mode is EditorMode.NORMAL:
            row, col = self.state.cursor
            if col > len(self.document.get_line(row)) and col > 1:
                self.state.cursor = (row, col - 1)
        if mode.is_visual and previous in (EditorMode.NORMAL, EditorMode.INSERT):
            self.state.anchor_selection()
        if mode is EditorMode.INSERT:
            self.history.start_record()
        self.state.mode = mode
        telemetry.record_event(
            "buffer.mode",
            level="debug",
            data={"buffer": self.name, "mode": mode.value},
            logger_name=LOGGER_NAME,
        )

    def type_char(self, char: str) -> None:
        if char == LINE_BREAK:
            self._close_session()
        self.insert_char(self.state.cursor, char)

    def backspace(self) -> bool:
        row, col = self.state.cursor
        if (row, col) == (1, 1):
            return False
        if col == 1:
            pos = (row - 1, len(self.document.get_line(row - 1)) + 1)
        else:
            pos = (row, col - 1)
        self.remove_char(pos)
        return True

    def delete(self) -> bool:
        row, col = self.state.cursor
        if row >= self.document.line_count and col > len(self.document.get_line(row)):
            return False
        self.remove_char((row, col))
        return True

    def move_cursor(self, row: int, col: int) -> None:
        """Place the cursor, ending the current typing run."""

        self._close_session()
        self.state.set_cursor(*ensure_cursor(self.document, (row, col)))

    def step_cursor(self, d_row: int = 0, d_col: int = 0) -> bool:
        """Move by a row or column delta, keeping the column goal on rows."""

        row, col = self.state.cursor
        if d_row:
            target = min(max(1, row + d_row), self.document.line_count)
            if target == row:
                return False
            col = min(self.state.col_goal, self._max_col(target))
            self.state.cursor = (target, col)
        else:
            target = min(max(1, col + d_col), self._max_col(row))
            if target == col:
                return False
            self.state.set_cursor(row, target)
        self._close_session()
        return True

    def open_line(self, *, below: bool = True) -> None:
        """Insert an empty line next to the cursor and start typing on it."""

        row = self.state.cursor[0] + (1 if below else 0)
        self.insert_lines(("",), row)
        self.set_mode(EditorMode.INSERT)

    def _max_col(self, row: int) -> int:
        extra = 0 if self.state.mode is EditorMode.NORMAL else 1
        return max(1, len(self.document.get_line(row)) + extra)

    def _clamp_cursor(self) -> None:
        """Pull the cursor back inside the text, aiming for the column goal."""

        row = min(max(1, self.state.cursor[0]), self.document.line_count)
        self.state.cursor = (row, min(self.state.col_goal, self._max_col(row)))

    def _close_session(self) -> None:
        if self.history.is_recording:
            self.history.snip_record()

    @contextmanager
    def _session(self) -> Iterator[None]:
        """Group the enclosed edits into one history node."""

        if self.history.is_recording:
            self.history.snip_record()
            try:
                yield
            finally:
                self.history.snip_record()
            return
        self.history.start_record()
        try:
            yield
        finally:
            self.history.stop_record()

    # -- selections and registers ---------------------------------------

    def selected_bounds(self) -> Tuple[Cursor, Cursor]:
        anchor, cursor = self.state.selection_start, self.state.cursor
        return (anchor, cursor) if anchor <= cursor else (cursor, anchor)

    def _selection_span(self) -> Tuple[Cursor, Cursor]:
        """Half-open span covering the selection, cursor character included."""

        start, last = self.selected_bounds()
        row, col = last
        if col <= len(self.document.get_line(row)):
            return start, (row, col + 1)
        if row < self.document.line_count:
            return start, (row + 1, 1)
        return start, (row, col)

    def yank_selected(self) -> Lines:
        start, stop = self.selected_bounds()
        if self.state.mode is EditorMode.VISUAL_LINE:
            text = self.get_lines(start[0], stop[0])
            self.registers.yank_lines(text, linewise=True)
        else:
            text = self.get_text(*self._selection_span())
            self.registers.yank_lines(text, linewise=False)
        return text

    def remove_selected(self) -> Action:
        start, stop = self.selected_bounds()
        action: Action
        if self.state.mode is EditorMode.VISUAL_LINE:
            action = self.remove_lines(start[0], stop[0])
        else:
            action = self.remove_text(*self._selection_span())
        return action

    def replace_selected(self, text: Sequence[str]) -> None:
        """Swap the selection for ``text`` as a single history step."""

        start, _ = self.selected_bounds()
        with self._session():
            removed = self.remove_selected()
            if self.state.mode is EditorMode.VISUAL_LINE:
                placeholder = isinstance(removed, RemoveLines) and removed.placeholder
                self.insert_lines(text, start[0], placeholder=placeholder)
            else:
                self.insert_text(text, start)
        row = start[0] + len(text) - 1
        self.state.set_cursor(row, max(1, len(self.document.get_line(row))))

    def paste(self, *, after: bool = True) -> Action:
        """Insert the unnamed register next to the cursor."""

        value = self.registers.paste_value()
        text = value.lines()
        row, col = self.state.cursor
        if value.linewise:
            return self.insert_lines(text, row + (1 if after else 0))
        if after and self.document.get_line(row):
            col += 1
        return self.insert_text(text, (row, col))

    # -- files ----------------------------------------------------------

    def write(self) -> None:
        """Write the buffer to its file, then the history snapshot if enabled.

        Raises ``BufferWriteError`` or ``HistoryPersistenceError``; neither
        alters the in-memory buffer or history.
        """

        if self.path is None:
            raise BufferWriteError("Buffer has no file to write to")
        self._close_session()
        with telemetry.span(
            "buffer::write",
            component=True,
            logger_name=LOGGER_NAME,
            metadata={"buffer": self.name, "path": str(self.path)},
        ):
            try:
                self.path.write_text(self.document.to_text(), encoding="utf-8")
            except OSError as exc:
                raise BufferWriteError(
                    f"Could not write {self.path}: {exc}", path=self.path
                ) from exc
            self.document.mark_clean()
            if self.config.undofile:
                save_history(self.history, self.config.history_file)


class Transaction(AbstractContextManager["Transaction"]):
    """Telemetry span around one primitive edit; ``commit`` records its action."""

    def __init__(self, buffer: Buffer, label: str, *, record: bool = True) -> None:
        self.buffer = buffer
        self.label = label
        self.record = record
        self._span_cm: Optional[ContextManager[object]] = None

    def __enter__(self) -> "Transaction":
        self._span_cm = telemetry.span(
            name=f"buffer::{self.label}",
            component=True,
            logger_name=LOGGER_NAME,
            metadata={"buffer": self.buffer.name, "record": self.record},
        )
        self._span_cm.__enter__()
        return self

    def commit(self, action: Action) -> None:
        if self.record:
            self.buffer.history.add_node(action)

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc, tb)
        return False
