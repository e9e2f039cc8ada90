from __future__ import annotations

import json
from pathlib import Path

import pytest

from undotree_engine.buffer import (
    Buffer,
    BufferWriteError,
    History,
    HistoryPersistenceError,
    InsertChar,
    InsertText,
    load_history,
    save_history,
)
from undotree_engine.buffer.persistence import history_to_dict
from undotree_engine.runtime.config import EngineConfig


def two_branch_history() -> History:
    history = History()
    history.add_node(InsertChar((1, 1), "a"))
    history.undo()
    history.add_node(InsertText((1, 1), (2, 2), ("x", "y")))
    history.undo()
    history.scroll = 3
    return history


def test_saved_tree_reloads_identically(tmp_path: Path) -> None:
    history = two_branch_history()
    snapshot = tmp_path / "savefile"

    save_history(history, snapshot)
    restored = load_history(snapshot)

    assert restored.location == history.location == []
    assert restored.latest_leaf == history.latest_leaf == [1]
    assert restored.scroll == 3
    assert history_to_dict(restored) == history_to_dict(history)
    assert len(restored.root.children) == 2


def test_reloaded_history_keeps_navigating(tmp_path: Path) -> None:
    snapshot = tmp_path / "savefile"
    save_history(two_branch_history(), snapshot)
    restored = load_history(snapshot)

    assert restored.redo() == InsertText((1, 1), (2, 2), ("x", "y"))
    restored.add_node(InsertChar((2, 2), "z"))
    ticks = [node.tick for node in restored.root.walk()]
    assert len(set(ticks)) == len(ticks)


def test_missing_snapshot_gives_empty_history(tmp_path: Path) -> None:
    history = load_history(tmp_path / "nope")

    assert history.node_count == 1
    assert history.location == []


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"nodes": [{"action": {"kind": "none"}}]}),
        json.dumps(
            {
                "nodes": [{"action": {"kind": "none"}, "tick": 0, "children": []}],
                "location": [4],
            }
        ),
        json.dumps(
            {
                "nodes": [
                    {"action": {"kind": "none"}, "tick": 0, "children": [1]},
                    {"action": {"kind": "none"}, "tick": 1, "children": [1]},
                ],
                "location": [],
            }
        ),
        json.dumps(
            {
                "nodes": [
                    {"action": {"kind": "none"}, "tick": 0, "children": []},
                    {"action": {"kind": "none"}, "tick": 1, "children": []},
                ],
                "location": [],
            }
        ),
        "[" * 100_000 + "]" * 100_000,
    ],
    ids=["text", "list", "no-tick", "stale-location", "cycle", "orphan", "deep"],
)
def test_malformed_snapshot_falls_back_to_empty(tmp_path: Path, content: str) -> None:
    snapshot = tmp_path / "savefile"
    snapshot.write_text(content, encoding="utf-8")

    history = load_history(snapshot)

    assert history.node_count == 1
    assert history.location == []
    assert history.latest_leaf is None


def test_save_failure_raises_persistence_error(tmp_path: Path) -> None:
    target = tmp_path / "missing-dir" / "savefile"

    with pytest.raises(HistoryPersistenceError) as info:
        save_history(History(), target)

    assert info.value.path == target


def test_open_edit_write_and_reopen_with_undofile(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("abc\ndef\n", encoding="utf-8")
    config = EngineConfig(undofile=True, history_file=str(tmp_path / "savefile"))

    buffer = Buffer.open(path, config=config)
    assert buffer.lines == ("abc", "def")
    buffer.remove_text((1, 2), (2, 2))
    buffer.write()

    assert path.read_text(encoding="utf-8") == "aef\n"
    reopened = Buffer.open(path, config=config)
    assert reopened.lines == ("aef",)
    assert reopened.history.location == [0]
    assert reopened.undo() is True
    assert reopened.lines == ("abc", "def")


def test_write_closes_running_session_before_saving(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    config = EngineConfig(undofile=True, history_file=str(tmp_path / "savefile"))
    buffer = Buffer.open(path, config=config)
    buffer.history.start_record()
    buffer.insert_char((1, 1), "q")

    buffer.write()

    restored = load_history(config.history_file)
    assert restored.location == [0]
    assert buffer.history.is_recording is True


def test_write_failure_leaves_buffer_untouched(tmp_path: Path) -> None:
    buffer = Buffer.from_lines(["keep"])
    buffer.insert_char((1, 5), "!")
    buffer.path = tmp_path  # a directory cannot be written as a file

    with pytest.raises(BufferWriteError):
        buffer.write()

    assert buffer.lines == ("keep!",)
    assert buffer.history.location == [0]
    assert buffer.document.dirty is True


def test_buffer_without_path_cannot_be_written() -> None:
    with pytest.raises(BufferWriteError):
        Buffer().write()


def test_long_linear_history_survives_save_and_load(tmp_path: Path) -> None:
    history = History()
    for col in range(1, 2501):
        history.add_node(InsertChar((1, col), "a"))
    snapshot = tmp_path / "savefile"

    save_history(history, snapshot)
    restored = load_history(snapshot)

    assert restored.node_count == 2501
    assert len(restored.location) == 2500
    assert restored.current_node.action == InsertChar((1, 2500), "a")
    assert restored.undo() == InsertChar((1, 2500), "a").inverse()
