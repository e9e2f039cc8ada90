"""Linearize the undo tree into rows for the history browser.

Nodes are expanded oldest-first from a frontier of unexpanded nodes. Each
expanded node takes one row. A childless node that is not the last frontier
entry is followed by one separator row; a node with ``k > 1`` children is
followed by ``k - 1`` branch rows. The same counting drives both drawing and
``row_to_path``, so a clicked row always resolves to the node drawn there.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from .actions import split_text
from .history import History, UndoNode

NODE_GLYPH = "▶"
TRUNK_GLYPH = "│"
FORK_GLYPH = "├"
LEAF_END_GLYPH = "\U0001fba3"
LAST_END_GLYPH = "\U0001fba0"
SHIFT_GLYPH = "\U0001fba8"
BRANCH_GLYPH = "\U0001fba2"
BRANCH_SHIFT_GLYPH = "\U0001fba9"


@dataclass(frozen=True, slots=True)
class HistoryRow:
    """A node placed on the browser, plus the filler rows that follow it."""

    row: int
    path: Tuple[int, ...]
    column: int
    width: int
    label: str
    current: bool
    separator: bool
    branches: int


def preview_lines(lines: Sequence[str], length: int) -> str:
    """Flatten ``lines`` with ``|`` separators, truncating with ``...``."""

    preview = "|".join(lines)
    if len(preview) > length:
        preview = preview[: max(0, length - 3)] + "..."
    return preview


class HistoryNavigator:
    """Read-only view mapping history tree nodes to display rows."""

    def __init__(self, history: History) -> None:
        self.history = history

    def _expand(self) -> Iterator[Tuple[HistoryRow, int]]:
        frontier: List[Tuple[UndoNode, Tuple[int, ...]]] = [(self.history.root, ())]
        location = tuple(self.history.location)
        row = 1
        while frontier:
            index = min(range(len(frontier)), key=lambda i: frontier[i][0].tick)
            node, path = frontier[index]
            children = node.children
            separator = not children and index != len(frontier) - 1
            branches = max(0, len(children) - 1)
            yield (
                HistoryRow(
                    row=row,
                    path=path,
                    column=index,
                    width=len(frontier),
                    label=node.action.describe(),
                    current=path == location,
                    separator=separator,
                    branches=branches,
                ),
                row + 1 + int(separator) + branches,
            )
            row += 1 + int(separator) + branches
            frontier[index : index + 1] = [
                (child, path + (i,)) for i, child in enumerate(children)
            ]

    def rows(self) -> List[HistoryRow]:
        return [entry for entry, _ in self._expand()]

    def total_rows(self) -> int:
        next_row = 1
        for _, next_row in self._expand():
            pass
        return next_row - 1

    def row_to_path(self, row: int) -> Optional[List[int]]:
        """Return the path of the node drawn at ``row``.

        Separator rows and rows past the end of the tree map to ``None``.
        """

        for entry, next_row in self._expand():
            if entry.row == row:
                return list(entry.path)
            if next_row > row:
                return None
        return None

    def render_lines(self, columns: int) -> List[str]:
        """Draw every row as text at most ``columns`` characters wide."""

        lines: List[str] = []
        for entry in self.rows():
            glyphs = "".join(
                NODE_GLYPH if i == entry.column else TRUNK_GLYPH
                for i in range(entry.width)
            )
            room = max(0, columns - entry.width - 1)
            label = preview_lines(split_text(entry.label), room)
            lines.append(f"{glyphs} {label}")
            if entry.separator:
                lines.append(_separator_glyphs(entry.column, entry.width))
            for j in range(1, entry.branches + 1):
                lines.append(_branch_glyphs(entry.column, entry.width, j))
        return lines

    def visible_lines(self, columns: int, height: int) -> List[str]:
        """Slice ``render_lines`` to the window starting at ``history.scroll``."""

        start = max(0, self.history.scroll - 1)
        return self.render_lines(columns)[start : start + height]


def _separator_glyphs(column: int, width: int) -> str:
    glyphs = []
    for i in range(width):
        if i == column:
            glyphs.append(LEAF_END_GLYPH)
        elif i == width - 1:
            glyphs.append(LAST_END_GLYPH)
        elif i > column:
            glyphs.append(SHIFT_GLYPH)
        else:
            glyphs.append(TRUNK_GLYPH)
    return "".join(glyphs)


def _branch_glyphs(column: int, width: int, branch: int) -> str:
    glyphs = []
    span = width + branch
    for i in range(span):
        if i == span - 1:
            glyphs.append(BRANCH_GLYPH)
        elif i > column:
            glyphs.append(BRANCH_SHIFT_GLYPH)
        elif i == column:
            glyphs.append(FORK_GLYPH)
        else:
            glyphs.append(TRUNK_GLYPH)
    return "".join(glyphs)


__all__ = ["HistoryNavigator", "HistoryRow", "preview_lines"]
