"""Yank/paste register storage and clipboard hand-off."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .actions import concat_lines, split_text

LINEWISE = "line"
CHARWISE = "character"


@dataclass(frozen=True, slots=True)
class RegisterValue:
    text: str
    type: str = CHARWISE

    @property
    def linewise(self) -> bool:
        return self.type == LINEWISE

    def lines(self) -> Tuple[str, ...]:
        return split_text(self.text)


class RegisterBank:
    """Tracks the unnamed register plus any named registers.

    ``clipboard_get``/``clipboard_set`` connect the unnamed register to a
    system clipboard when a host supplies them; the blobs exchanged are flat
    ``"\\n"``-joined text.
    """

    def __init__(
        self,
        *,
        clipboard_get: Optional[Callable[[], Optional[str]]] = None,
        clipboard_set: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._registers: Dict[str, RegisterValue] = {'"': RegisterValue(text="")}
        self._clipboard_get = clipboard_get
        self._clipboard_set = clipboard_set

    def get(self, name: str = '"') -> RegisterValue:
        return self._registers.get(name, RegisterValue(text=""))

    def set(self, name: str, value: RegisterValue) -> None:
        self._registers[name] = value
        if name != '"':
            self._registers['"'] = value

    def yank_lines(
        self, lines: Tuple[str, ...], *, linewise: bool, name: str = '"'
    ) -> None:
        kind = LINEWISE if linewise else CHARWISE
        value = RegisterValue(text=concat_lines(lines), type=kind)
        self.set(name, value)
        if self._clipboard_set is not None:
            self._clipboard_set(value.text)

    def paste_value(self, name: str = '"') -> RegisterValue:
        """Return the register to paste, preferring a changed system clipboard.

        Text that arrives from the clipboard is always pasted character-wise.
        """

        value = self.get(name)
        if self._clipboard_get is None:
            return value
        external = self._clipboard_get()
        if external is not None and external != value.text:
            value = RegisterValue(text=external)
            self.set(name, value)
        return value


__all__ = ["CHARWISE", "LINEWISE", "RegisterBank", "RegisterValue"]
