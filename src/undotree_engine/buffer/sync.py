"""What hosts read from a buffer, and the errors buffer services raise."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from .state import Cursor, Selection


@dataclass(slots=True)
class BufferMirror:
    """Snapshot a host renders: text, cursor, mode and history position."""

    text: str
    cursor: Cursor
    selection: Optional[Selection]
    mode: str = "normal"
    dirty: bool = False
    location: Tuple[int, ...] = ()
    attributes: dict[str, str] = field(default_factory=dict)


class BufferSync(Protocol):
    def pull_buffer(self) -> BufferMirror:
        ...

    def pull_history(self) -> List[str]:
        """Rendered history browser rows currently scrolled into view."""
        ...


class BufferValidationError(RuntimeError):
    """Raised for coordinates or ranges outside the buffer."""

    def __init__(self, message: str, *, cursor: Cursor | None = None) -> None:
        super().__init__(message)
        self.cursor = cursor


class BufferWriteError(RuntimeError):
    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path
