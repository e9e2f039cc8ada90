"""Text buffer, invertible actions, and the branching undo history."""

from .actions import (
    Action,
    Composite,
    InsertChar,
    InsertLines,
    InsertText,
    NoAction,
    RemoveChar,
    RemoveLines,
    RemoveText,
    action_from_dict,
)
from .buffer import Buffer, BufferView, Transaction
from .document import BufferDocument
from .history import History, HistoryError, RecordingError, UndoNode
from .navigator import HistoryNavigator, HistoryRow
from .persistence import HistoryPersistenceError, load_history, save_history
from .registers import RegisterBank, RegisterValue
from .state import BufferState, Cursor, EditorMode
from .sync import BufferMirror, BufferSync, BufferValidationError, BufferWriteError
from .validation import ensure_cursor, ensure_row

__all__ = [
    "Action",
    "Composite",
    "InsertChar",
    "InsertLines",
    "InsertText",
    "NoAction",
    "RemoveChar",
    "RemoveLines",
    "RemoveText",
    "action_from_dict",
    "Buffer",
    "BufferView",
    "Transaction",
    "BufferDocument",
    "History",
    "HistoryError",
    "RecordingError",
    "UndoNode",
    "HistoryNavigator",
    "HistoryRow",
    "HistoryPersistenceError",
    "load_history",
    "save_history",
    "RegisterBank",
    "RegisterValue",
    "BufferState",
    "Cursor",
    "EditorMode",
    "BufferMirror",
    "BufferSync",
    "BufferValidationError",
    "BufferWriteError",
    "ensure_cursor",
    "ensure_row",
]
