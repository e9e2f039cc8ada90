"""JSON snapshots of the undo tree.

A snapshot stores the tree as a flat pre-order node table (each node lists
its children by index, so file nesting does not grow with history depth),
plus ``location``, ``latest_leaf`` and ``scroll``.
Pending recordings and the ``locked`` flag are session-only and are never
written; ``Buffer.write`` closes a running session before saving so its
edits are part of the tree. The saved ``location`` is kept on load because it
matches the file content written alongside the snapshot.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Set, Union

from undotree_engine.runtime import telemetry

from .actions import action_from_dict
from .history import History, UndoNode

LOGGER_NAME = "undotree_engine.persistence"
SNAPSHOT_VERSION = 2

PathLike = Union[str, Path]


class HistoryPersistenceError(RuntimeError):
    """Raised when a snapshot cannot be written."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def _nodes_to_list(root: UndoNode) -> List[Dict[str, Any]]:
    """Flatten the tree in pre-order; children are referenced by index."""

    nodes = list(root.walk())
    index = {id(node): position for position, node in enumerate(nodes)}
    return [
        {
            "action": node.action.to_dict(),
            "tick": node.tick,
            "children": [index[id(child)] for child in node.children],
        }
        for node in nodes
    ]


def _nodes_from_list(entries: Sequence[Mapping[str, Any]]) -> UndoNode:
    """Relink a flattened tree, rejecting cycles, shared and orphan nodes."""

    if not entries:
        raise ValueError("snapshot has no nodes")
    nodes = [
        UndoNode(action=action_from_dict(entry["action"]), tick=int(entry["tick"]))
        for entry in entries
    ]
    claimed: Set[int] = set()
    for position, entry in enumerate(entries):
        for raw in entry["children"]:
            child = int(raw)
            # pre-order puts every child after its parent
            if child <= position or child >= len(nodes) or child in claimed:
                raise ValueError(f"node {position} has invalid child {raw!r}")
            claimed.add(child)
            nodes[position].children.append(nodes[child])
    if len(claimed) != len(nodes) - 1:
        raise ValueError("snapshot contains unreachable nodes")
    return nodes[0]


def history_to_dict(history: History) -> Dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "nodes": _nodes_to_list(history.root),
        "location": list(history.location),
        "latest_leaf": (
            list(history.latest_leaf) if history.latest_leaf is not None else None
        ),
        "scroll": history.scroll,
    }


def history_from_dict(data: Mapping[str, Any]) -> History:
    """Rebuild a history, raising ``ValueError`` on inconsistent snapshots."""

    leaf = data.get("latest_leaf")
    history = History(
        root=_nodes_from_list(data["nodes"]),
        location=[int(index) for index in data["location"]],
        latest_leaf=[int(index) for index in leaf] if leaf is not None else None,
        scroll=int(data.get("scroll", 1)),
    )
    if history.get_node(history.location) is None:
        raise ValueError(f"location {history.location} is not in the tree")
    leaf = history.latest_leaf
    if leaf is not None and history.get_node(leaf) is None:
        raise ValueError(f"latest_leaf {history.latest_leaf} is not in the tree")
    return history


def save_history(history: History, path: PathLike) -> None:
    """Overwrite ``path`` with a snapshot of ``history``."""

    target = Path(path)
    with telemetry.span(
        "history::save",
        component="persistence",
        logger_name=LOGGER_NAME,
        metadata={"path": str(target)},
    ):
        try:
            payload = json.dumps(history_to_dict(history))
            target.write_text(payload, encoding="utf-8")
        except (OSError, ValueError, TypeError, RecursionError) as exc:
            raise HistoryPersistenceError(
                f"Could not save history to {target}: {exc}", path=target
            ) from exc
    telemetry.record_event(
        "history.saved",
        data={"path": str(target), "nodes": history.node_count},
        logger_name=LOGGER_NAME,
    )


def load_history(path: PathLike) -> History:
    """Read a snapshot, returning an empty history if it is absent or broken."""

    target = Path(path)
    try:
        raw = target.read_text(encoding="utf-8")
    except FileNotFoundError:
        telemetry.record_event(
            "history.missing",
            level="debug",
            data={"path": str(target)},
            logger_name=LOGGER_NAME,
        )
        return History()
    except (OSError, UnicodeDecodeError) as exc:
        return _fallback(target, exc)

    try:
        history = history_from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as exc:
        return _fallback(target, exc)

    telemetry.record_event(
        "history.loaded",
        data={"path": str(target), "nodes": history.node_count},
        logger_name=LOGGER_NAME,
    )
    return history


def _fallback(target: Path, exc: Exception) -> History:
    telemetry.record_event(
        "history.unreadable",
        level="warning",
        data={"path": str(target), "error": str(exc)},
        logger_name=LOGGER_NAME,
    )
    return History()


__all__ = [
    "HistoryPersistenceError",
    "history_from_dict",
    "history_to_dict",
    "load_history",
    "save_history",
]
