from __future__ import annotations

from pathlib import Path
from typing import List

from undotree_engine.adapters.textual import BufferController, EditorUIHooks
from undotree_engine.buffer import Buffer, BufferMirror, EditorMode


def make_controller(buffer: Buffer | None = None):
    mirrors: List[BufferMirror] = []
    statuses: List[str] = []
    history: List[List[str]] = []
    logs: List[str] = []
    hooks = EditorUIHooks(
        update_buffer=mirrors.append,
        update_history=history.append,
        update_status=statuses.append,
        log=logs.append,
    )
    controller = BufferController(buffer or Buffer(), hooks)
    return controller, mirrors, statuses, history, logs


def type_text(controller: BufferController, text: str) -> None:
    for char in text:
        if char == "\n":
            controller.handle_key("ENTER")
        else:
            controller.handle_key(char, text=char)


def test_insert_session_undo_and_redo() -> None:
    controller, mirrors, statuses, _, logs = make_controller()

    controller.handle_key("i")
    type_text(controller, "hi")
    controller.handle_key("ESC")

    assert mirrors[-1].text == "hi"
    assert mirrors[-1].mode == "normal"
    assert controller.handle_key("u") == "undo"
    assert mirrors[-1].text == ""
    assert controller.handle_key("CTRL+R") == "redo"
    assert mirrors[-1].text == "hi"
    assert controller.handle_key("r") == "redo_none"
    assert any(line.startswith("key ->") for line in logs)
    assert "insert" in statuses


def test_backspace_joins_lines_in_insert_mode() -> None:
    controller, mirrors, _, _, _ = make_controller()

    controller.handle_key("i")
    type_text(controller, "ab\ncd")
    controller.handle_key("LEFT")
    controller.handle_key("LEFT")
    controller.handle_key("BACKSPACE")

    assert mirrors[-1].text == "abcd"
    assert controller.buffer.cursor == (1, 3)


def test_line_delete_and_paste() -> None:
    buffer = Buffer.from_lines(["one", "two", "three"])
    controller, mirrors, _, _, _ = make_controller(buffer)

    controller.handle_key("j")
    controller.handle_key("d")

    assert buffer.lines == ("one", "three")
    controller.handle_key("p")
    assert buffer.lines == ("one", "three", "two")
    assert buffer.registers.get().linewise is True


def test_visual_yank_and_character_paste() -> None:
    buffer = Buffer.from_lines(["abcd"])
    controller, _, _, _, _ = make_controller(buffer)

    controller.handle_key("v")
    controller.handle_key("l")
    controller.handle_key("y")

    assert buffer.mode is EditorMode.NORMAL
    assert buffer.registers.get().text == "ab"
    controller.handle_key("P")
    assert buffer.lines == ("ababcd",)


def test_history_browser_click_jumps_to_original() -> None:
    controller, mirrors, statuses, history, _ = make_controller()
    controller.handle_key("i")
    type_text(controller, "xyz")
    controller.handle_key("ESC")

    controller.handle_key("H")
    assert statuses[-1] == "history_on"
    assert history[-1][0].endswith("Original version")

    assert controller.click_history(1) is True
    assert mirrors[-1].text == ""
    assert controller.click_history(50) is False


def test_write_failure_reports_status(tmp_path: Path) -> None:
    buffer = Buffer.from_lines(["x"])
    buffer.path = tmp_path
    controller, _, statuses, _, _ = make_controller(buffer)

    status = controller.handle_key("w")

    assert status.startswith("write_failed")
    assert statuses[-1] == status


def test_open_line_is_recorded() -> None:
    buffer = Buffer.from_lines(["a"])
    controller, _, _, _, _ = make_controller(buffer)

    controller.handle_key("o")
    type_text(controller, "b")
    controller.handle_key("ESC")

    assert buffer.lines == ("a", "b")
    controller.handle_key("u")
    controller.handle_key("u")
    assert buffer.lines == ("a",)


def test_undo_then_redo_keeps_normal_cursor_on_text() -> None:
    buffer = Buffer.from_lines(["", "def"])
    controller, _, _, _, _ = make_controller(buffer)

    controller.handle_key("i")
    type_text(controller, "abc")
    controller.handle_key("ESC")
    controller.handle_key("u")
    controller.handle_key("r")

    assert buffer.cursor == (1, 3)
    controller.handle_key("x")
    assert buffer.lines == ("ab", "def")
    controller.handle_key("x")
    assert buffer.lines == ("a", "def")


def test_history_click_while_typing_commits_session() -> None:
    controller, _, _, _, _ = make_controller()
    buffer = controller.buffer
    controller.handle_key("i")
    type_text(controller, "ab")
    controller.handle_key("ESC")
    controller.handle_key("i")
    type_text(controller, "cd")

    assert controller.click_history(1) is True

    assert buffer.lines == ("",)
    assert buffer.mode is EditorMode.NORMAL
    assert buffer.history.node_count == 3
    assert controller.click_history(3) is True
    assert buffer.lines == ("acdb",)
    assert buffer.history.location == [0, 0]
