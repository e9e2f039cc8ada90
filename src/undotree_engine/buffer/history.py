"""Branching undo/redo history.

Edits are appended as children of the node for the current buffer state, so
undoing and then editing again starts a new branch instead of discarding the
old future. ``location`` is the child-index path from the root to the node
that matches the buffer; nodes hold no parent references.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from undotree_engine.runtime import telemetry

from .actions import Action, Composite, NoAction

Path = List[int]

LOGGER_NAME = "undotree_engine.history"


class HistoryError(RuntimeError):
    """Base class for recoverable history failures."""


class RecordingError(HistoryError):
    """Raised on ``start_record``/``stop_record`` calls out of protocol."""


@dataclass(slots=True)
class UndoNode:
    """One applied action plus the branches recorded after it."""

    action: Action
    tick: int
    children: List["UndoNode"] = field(default_factory=list)

    def walk(self) -> Iterator["UndoNode"]:
        """Yield this node and its descendants in pre-order."""

        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class History:
    """Undo tree with the session state used to navigate it."""

    def __init__(
        self,
        *,
        root: Optional[UndoNode] = None,
        location: Sequence[int] = (),
        latest_leaf: Optional[Sequence[int]] = None,
        scroll: int = 1,
    ) -> None:
        self.root = root or UndoNode(action=NoAction(), tick=0)
        self.location: Path = list(location)
        self.latest_leaf: Optional[Path] = (
            list(latest_leaf) if latest_leaf is not None else None
        )
        self.scroll = scroll
        self.locked = False
        self._recording: Optional[List[Action]] = None
        self._clock = max(node.tick for node in self.root.walk()) + 1

    # -- lookup ---------------------------------------------------------

    def get_node(self, path: Sequence[int]) -> Optional[UndoNode]:
        """Return the node at ``path`` or ``None`` when the path is stale."""

        node = self.root
        for index in path:
            if index < 0 or index >= len(node.children):
                return None
            node = node.children[index]
        return node

    @property
    def current_node(self) -> UndoNode:
        node = self.get_node(self.location)
        if node is None:  # pragma: no cover - location is kept valid
            raise HistoryError(f"location {self.location} is not in the tree")
        return node

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.root.walk())

    def can_undo(self) -> bool:
        return bool(self.location)

    def can_redo(self) -> bool:
        return self._redo_target() is not None

    # -- recording ------------------------------------------------------

    def add_node(self, action: Action) -> None:
        if self.locked:
            return
        if self._recording is not None:
            self._recording.append(action)
            return
        parent = self.current_node
        parent.children.append(UndoNode(action=action, tick=self._next_tick()))
        self.location.append(len(parent.children) - 1)
        self.latest_leaf = None
        telemetry.record_event(
            "history.add",
            level="debug",
            data={"location": self.location, "action": action.kind},
            logger_name=LOGGER_NAME,
        )

    @property
    def is_recording(self) -> bool:
        return self._recording is not None

    @property
    def pending(self) -> Sequence[Action]:
        return tuple(self._recording or ())

    def start_record(self) -> None:
        if self._recording is not None:
            raise RecordingError("start_record called while already recording")
        self._recording = []

    def stop_record(self) -> Optional[Composite]:
        """Close the session, appending its actions as one composite node.

        Returns the composite, or ``None`` when nothing was recorded.
        """

        if self._recording is None:
            raise RecordingError("stop_record called while not recording")
        records, self._recording = self._recording, None
        if not records:
            return None
        action = Composite(
            actions=tuple(records),
            name=f"Edit text at line {records[0].anchor_row}",
        )
        self.add_node(action)
        return action

    def snip_record(self) -> Optional[Composite]:
        """Cut the running session in two without leaving recording state."""

        action = self.stop_record()
        self.start_record()
        return action

    @contextmanager
    def suspended(self) -> Iterator["History"]:
        """Ignore every ``add_node`` call inside the block."""

        previous = self.locked
        self.locked = True
        try:
            yield self
        finally:
            self.locked = previous

    # -- navigation -----------------------------------------------------

    def undo(self) -> Optional[Action]:
        """Step to the parent, returning the action that reverts the buffer."""

        if not self.location:
            return None
        if self.latest_leaf is None:
            self.latest_leaf = list(self.location)
        action = self.current_node.action.inverse()
        self.location.pop()
        telemetry.record_event(
            "history.undo",
            level="debug",
            data={"location": self.location},
            logger_name=LOGGER_NAME,
        )
        return action

    def _redo_target(self) -> Optional[int]:
        leaf = self.latest_leaf
        depth = len(self.location)
        if leaf is None or len(leaf) <= depth or leaf[:depth] != self.location:
            return None
        return leaf[depth]

    def redo(self) -> Optional[Action]:
        """Step back towards the remembered leaf, returning its action."""

        index = self._redo_target()
        if index is None:
            return None
        action = self._goto_child(index)
        if action is not None:
            telemetry.record_event(
                "history.redo",
                level="debug",
                data={"location": self.location},
                logger_name=LOGGER_NAME,
            )
        return action

    def _goto_child(self, index: int) -> Optional[Action]:
        node = self.current_node
        if index < 0 or index >= len(node.children):
            return None
        self.location.append(index)
        return node.children[index].action

    def goto(self, target: Sequence[int]) -> Optional[List[Action]]:
        """Move to ``target``, returning the actions to replay in order.

        The walk undoes up to the deepest common ancestor of the current
        location and ``target``, then descends. Returns ``None`` without
        changing state if ``target`` is not a node of the tree.
        """

        target = list(target)
        if self.get_node(target) is None:
            return None
        actions: List[Action] = []
        while self.location != target[: len(self.location)]:
            undone = self.undo()
            if undone is None:  # pragma: no cover - the root prefixes everything
                break
            actions.append(undone)
        while len(self.location) < len(target):
            forward = self._goto_child(target[len(self.location)])
            if forward is None:  # pragma: no cover - target was validated
                break
            actions.append(forward)
        self.latest_leaf = None
        telemetry.record_event(
            "history.goto",
            data={"location": self.location, "steps": len(actions)},
            logger_name=LOGGER_NAME,
        )
        return actions

    def _next_tick(self) -> int:
        tick = self._clock
        self._clock += 1
        return tick


__all__ = ["History", "HistoryError", "Path", "RecordingError", "UndoNode"]
