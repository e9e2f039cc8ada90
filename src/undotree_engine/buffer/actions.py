"""Invertible descriptions of buffer mutations.

Every action carries the data needed to compute its inverse (removed text,
inserted text, positions) so undoing never has to consult the buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Tuple, Type

from .state import Cursor

LINE_BREAK = "\n"

Lines = Tuple[str, ...]


def concat_lines(lines: Iterable[str]) -> str:
    return LINE_BREAK.join(lines)


def split_text(text: str) -> Lines:
    return tuple(text.split(LINE_BREAK))


def _cursor(value: Any) -> Cursor:
    row, col = value
    return (int(row), int(col))


class Action:
    """Base class for every recorded mutation."""

    kind: str = "action"

    def inverse(self) -> "Action":  # pragma: no cover - abstract override
        raise NotImplementedError

    def describe(self) -> str:  # pragma: no cover - abstract override
        raise NotImplementedError

    @property
    def anchor_row(self) -> int:
        """Row the action starts at, or ``-1`` when it has none."""

        return -1

    def payload(self) -> Dict[str, Any]:  # pragma: no cover - abstract override
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, **self.payload()}

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True, slots=True)
class NoAction(Action):
    """Sentinel stored at the root: the original, unedited file."""

    kind = "none"

    def inverse(self) -> Action:
        return self

    def describe(self) -> str:
        return "Original version"

    def payload(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True, slots=True)
class InsertChar(Action):
    pos: Cursor
    char: str

    kind = "insert_char"

    def inverse(self) -> Action:
        return RemoveChar(self.pos, self.char)

    def describe(self) -> str:
        shown = "line break" if self.char == LINE_BREAK else self.char
        return f"Insert {shown} at {self.pos}"

    @property
    def anchor_row(self) -> int:
        return self.pos[0]

    def payload(self) -> Dict[str, Any]:
        return {"pos": list(self.pos), "char": self.char}


@dataclass(frozen=True, slots=True)
class RemoveChar(Action):
    pos: Cursor
    char: str

    kind = "remove_char"

    def inverse(self) -> Action:
        return InsertChar(self.pos, self.char)

    def describe(self) -> str:
        return f"Remove character at {self.pos}"

    @property
    def anchor_row(self) -> int:
        return self.pos[0]

    def payload(self) -> Dict[str, Any]:
        return {"pos": list(self.pos), "char": self.char}


@dataclass(frozen=True, slots=True)
class InsertText(Action):
    """Span insertion; ``stop`` is the coordinate just past the new text."""

    start: Cursor
    stop: Cursor
    text: Lines

    kind = "insert_text"

    def inverse(self) -> Action:
        return RemoveText(self.start, self.stop, self.text)

    def describe(self) -> str:
        return f"Insert at {self.start}: {concat_lines(self.text)}"

    @property
    def anchor_row(self) -> int:
        return self.start[0]

    def payload(self) -> Dict[str, Any]:
        return {
            "start": list(self.start),
            "stop": list(self.stop),
            "text": list(self.text),
        }


@dataclass(frozen=True, slots=True)
class RemoveText(Action):
    """Removal of the half-open span ``[start, stop)``."""

    start: Cursor
    stop: Cursor
    text: Lines

    kind = "remove_text"

    def inverse(self) -> Action:
        return InsertText(self.start, self.stop, self.text)

    def describe(self) -> str:
        return f"Remove from {self.start} to {self.stop}"

    @property
    def anchor_row(self) -> int:
        return self.start[0]

    def payload(self) -> Dict[str, Any]:
        return {
            "start": list(self.start),
            "stop": list(self.stop),
            "text": list(self.text),
        }


@dataclass(frozen=True, slots=True)
class InsertLines(Action):
    """Whole lines inserted at rows ``start..stop`` (inclusive).

    ``placeholder`` marks a buffer that held only the empty line left behind
    by removing every line; that line is consumed by the insertion.
    """

    start: int
    stop: int
    lines: Lines
    placeholder: bool = False

    kind = "insert_lines"

    def inverse(self) -> Action:
        return RemoveLines(self.start, self.stop, self.lines, self.placeholder)

    def describe(self) -> str:
        return f"Insert at line {self.start}: {concat_lines(self.lines)}"

    @property
    def anchor_row(self) -> int:
        return self.start

    def payload(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "stop": self.stop,
            "lines": list(self.lines),
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True, slots=True)
class RemoveLines(Action):
    start: int
    stop: int
    lines: Lines
    placeholder: bool = False

    kind = "remove_lines"

    def inverse(self) -> Action:
        return InsertLines(self.start, self.stop, self.lines, self.placeholder)

    def describe(self) -> str:
        if self.start == self.stop:
            return f"Remove line {self.start}"
        return f"Remove lines {self.start} to {self.stop}"

    @property
    def anchor_row(self) -> int:
        return self.start

    def payload(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "stop": self.stop,
            "lines": list(self.lines),
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True, slots=True)
class Composite(Action):
    """Ordered group of actions undone and redone as one session."""

    actions: Tuple[Action, ...]
    name: str

    kind = "composite"

    def inverse(self) -> Action:
        return Composite(
            actions=tuple(action.inverse() for action in reversed(self.actions)),
            name=f"Undo {self.name}",
        )

    def describe(self) -> str:
        return self.name

    @property
    def anchor_row(self) -> int:
        if not self.actions:
            return -1
        return self.actions[0].anchor_row

    def payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "actions": [action.to_dict() for action in self.actions],
        }


def _lines(value: Any) -> Lines:
    return tuple(str(line) for line in value)


_DECODERS: Dict[str, Callable[[Mapping[str, Any]], Action]] = {
    NoAction.kind: lambda data: NoAction(),
    InsertChar.kind: lambda data: InsertChar(_cursor(data["pos"]), str(data["char"])),
    RemoveChar.kind: lambda data: RemoveChar(_cursor(data["pos"]), str(data["char"])),
    InsertText.kind: lambda data: InsertText(
        _cursor(data["start"]), _cursor(data["stop"]), _lines(data["text"])
    ),
    RemoveText.kind: lambda data: RemoveText(
        _cursor(data["start"]), _cursor(data["stop"]), _lines(data["text"])
    ),
    InsertLines.kind: lambda data: InsertLines(
        int(data["start"]),
        int(data["stop"]),
        _lines(data["lines"]),
        bool(data.get("placeholder", False)),
    ),
    RemoveLines.kind: lambda data: RemoveLines(
        int(data["start"]),
        int(data["stop"]),
        _lines(data["lines"]),
        bool(data.get("placeholder", False)),
    ),
    Composite.kind: lambda data: Composite(
        actions=tuple(action_from_dict(item) for item in data["actions"]),
        name=str(data["name"]),
    ),
}


def action_from_dict(data: Mapping[str, Any]) -> Action:
    """Rebuild an action from ``Action.to_dict`` output.

    Raises ``ValueError`` for unknown kinds and ``KeyError`` for missing
    fields.
    """

    kind = data.get("kind")
    decoder = _DECODERS.get(str(kind))
    if decoder is None:
        raise ValueError(f"Unknown action kind '{kind}'")
    return decoder(data)


ACTION_TYPES: Tuple[Type[Action], ...] = (
    NoAction,
    InsertChar,
    RemoveChar,
    InsertText,
    RemoveText,
    InsertLines,
    RemoveLines,
    Composite,
)

__all__ = [
    "ACTION_TYPES",
    "LINE_BREAK",
    "Action",
    "Composite",
    "InsertChar",
    "InsertLines",
    "InsertText",
    "Lines",
    "NoAction",
    "RemoveChar",
    "RemoveLines",
    "RemoveText",
    "action_from_dict",
    "concat_lines",
    "split_text",
]
