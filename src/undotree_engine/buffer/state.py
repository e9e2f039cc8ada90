"""Cursor, selection, and mode state for buffers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

Cursor = Tuple[int, int]  # (row, column), both 1-based
Selection = Tuple[Cursor, Cursor]


class EditorMode(str, Enum):
    NORMAL = "normal"
    INSERT = "insert"
    VISUAL = "visual"
    VISUAL_LINE = "visual_line"

    @property
    def is_visual(self) -> bool:
        return self in (EditorMode.VISUAL, EditorMode.VISUAL_LINE)


@dataclass(slots=True)
class BufferState:
    """Mutable cursor + selection info for a single buffer."""

    cursor: Cursor = (1, 1)
    col_goal: int = 1
    selection_start: Cursor = (1, 1)
    mode: EditorMode = EditorMode.NORMAL

    def set_cursor(self, row: int, col: int) -> None:
        """Move the cursor and remember ``col`` as the column goal."""

        self.cursor = (row, col)
        self.col_goal = col

    def anchor_selection(self) -> None:
        self.selection_start = self.cursor

    @property
    def selection(self) -> Optional[Selection]:
        if not self.mode.is_visual:
            return None
        return (self.selection_start, self.cursor)
