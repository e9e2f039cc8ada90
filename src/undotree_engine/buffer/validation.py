"""Validation helpers shared across buffer services."""

from __future__ import annotations

from .document import BufferDocument
from .state import Cursor
from .sync import BufferValidationError


def ensure_row(
    document: BufferDocument, row: int, *, allow_append: bool = False
) -> int:
    limit = document.line_count + (1 if allow_append else 0)
    if row < 1 or row > limit:
        raise BufferValidationError("Row out of range", cursor=(row, 1))
    return row


def ensure_cursor(document: BufferDocument, cursor: Cursor) -> Cursor:
    row, col = cursor
    if row < 1 or row > document.line_count:
        raise BufferValidationError("Row out of range", cursor=cursor)
    line = document.get_line(row)
    if col < 1 or col > len(line) + 1:
        raise BufferValidationError("Column out of range", cursor=cursor)
    return cursor
