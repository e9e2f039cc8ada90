"""Line storage for buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence


@dataclass(slots=True)
class BufferDocument:
    """Mutable list-of-lines text model.

    Lines never contain ``"\\n"``; line breaks are implied between entries.
    The document always holds at least one line, the empty document being
    ``[""]``.
    """

    _lines: List[str] = field(default_factory=lambda: [""])
    version: int = 0
    dirty: bool = False

    def __post_init__(self) -> None:
        if not self._lines:
            self._lines = [""]

    @classmethod
    def from_text(cls, text: str) -> "BufferDocument":
        """Split file content on line breaks.

        A trailing line break terminates the last line rather than starting a
        new empty one, mirroring how ``to_text`` writes files.
        """

        lines = text.split("\n")
        if len(lines) > 1 and lines[-1] == "":
            lines.pop()
        return cls(_lines=lines)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "BufferDocument":
        return cls(_lines=list(lines))

    def to_text(self) -> str:
        return "".join(f"{line}\n" for line in self._lines)

    def snapshot(self) -> Sequence[str]:
        """Return the current lines without exposing internal mutability."""

        return tuple(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, row: int) -> str:
        return self._lines[row - 1]

    def set_line(self, row: int, text: str) -> None:
        self._lines[row - 1] = text
        self._touch()

    def replace_lines(
        self, start_row: int, stop_row: int, new_lines: Iterable[str]
    ) -> None:
        """Replace the inclusive range ``start_row..stop_row`` with ``new_lines``."""

        self._lines[start_row - 1 : stop_row] = list(new_lines)
        if not self._lines:
            self._lines.append("")
        self._touch()

    def insert_lines(self, row: int, lines: Iterable[str]) -> None:
        """Insert ``lines`` so that the first becomes line ``row``."""

        self._lines[row - 1 : row - 1] = list(lines)
        self._touch()

    def delete_lines(self, start_row: int, stop_row: int) -> List[str]:
        """Delete the inclusive range, returning the removed lines."""

        removed = self._lines[start_row - 1 : stop_row]
        del self._lines[start_row - 1 : stop_row]
        if not self._lines:
            self._lines.append("")
        self._touch()
        return removed

    def mark_clean(self) -> None:
        self.dirty = False

    def _touch(self) -> None:
        self.version += 1
        self.dirty = True
