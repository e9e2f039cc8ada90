from __future__ import annotations

import pytest

from undotree_engine.buffer import (
    Buffer,
    BufferValidationError,
    EditorMode,
    InsertText,
    RemoveChar,
    RemoveLines,
)


def make_buffer(*lines: str) -> Buffer:
    return Buffer.from_lines(list(lines) or [""])


def test_typing_characters_then_undoing_each() -> None:
    buffer = make_buffer()

    for char in "abc":
        buffer.insert_char(buffer.cursor, char)

    assert buffer.lines == ("abc",)
    assert buffer.cursor == (1, 4)
    for _ in range(3):
        assert buffer.undo() is True
    assert buffer.lines == ("",)
    assert buffer.undo() is False


def test_line_break_at_end_of_line_splits_and_undoes() -> None:
    buffer = make_buffer("ab")
    buffer.move_cursor(1, 3)

    buffer.insert_char(buffer.cursor, "\n")

    assert buffer.lines == ("ab", "")
    assert buffer.cursor == (2, 1)
    buffer.undo()
    assert buffer.lines == ("ab",)


def test_line_break_mid_line_moves_tail_down() -> None:
    buffer = make_buffer("abcd")

    buffer.insert_char((1, 3), "\n")

    assert buffer.lines == ("ab", "cd")


def test_remove_text_half_open_span_and_undo() -> None:
    buffer = make_buffer("abc", "def")

    action = buffer.remove_text((1, 2), (2, 2))

    assert buffer.lines == ("aef",)
    assert action.text == ("bc", "d")
    assert buffer.cursor == (1, 2)
    buffer.undo()
    assert buffer.lines == ("abc", "def")


def test_remove_text_single_line() -> None:
    buffer = make_buffer("hello")

    buffer.remove_text((1, 2), (1, 4))

    assert buffer.lines == ("hlo",)


def test_insert_text_multi_line_splices_head_and_tail() -> None:
    buffer = make_buffer("hello")

    action = buffer.insert_text(("X", "Y", "Z"), (1, 3))

    assert buffer.lines == ("heX", "Y", "Zllo")
    assert isinstance(action, InsertText)
    assert action.stop == (3, 2)
    assert buffer.cursor == (3, 2)
    assert buffer.state.col_goal == 2


def test_insert_text_single_line_cursor_after_span() -> None:
    buffer = make_buffer("ad")

    buffer.insert_text(("bc",), (1, 2))

    assert buffer.lines == ("abcd",)
    assert buffer.cursor == (1, 4)


def test_remove_char_at_end_of_line_joins_next_line() -> None:
    buffer = make_buffer("ab", "cd")

    action = buffer.remove_char((1, 3))

    assert buffer.lines == ("abcd",)
    assert action == RemoveChar((1, 3), "\n")
    buffer.undo()
    assert buffer.lines == ("ab", "cd")


def test_insert_and_remove_whole_lines() -> None:
    buffer = make_buffer("a", "d")

    buffer.insert_lines(("b", "c"), 2)

    assert buffer.lines == ("a", "b", "c", "d")
    buffer.remove_lines(2, 3)
    assert buffer.lines == ("a", "d")
    buffer.undo()
    assert buffer.lines == ("a", "b", "c", "d")


def test_removing_every_line_leaves_one_empty_line() -> None:
    buffer = make_buffer("a", "b")

    action = buffer.remove_lines(1, 2)

    assert buffer.lines == ("",)
    assert isinstance(action, RemoveLines)
    assert action.placeholder is True
    buffer.undo()
    assert buffer.lines == ("a", "b")
    buffer.redo()
    assert buffer.lines == ("",)


def test_get_text_and_get_lines() -> None:
    buffer = make_buffer("abc", "def", "ghi")

    assert buffer.get_text((1, 2), (3, 2)) == ("bc", "def", "g")
    assert buffer.get_text((2, 4), (3, 1)) == ("", "")
    assert buffer.get_lines(2, 3) == ("def", "ghi")


@pytest.mark.parametrize(
    "call",
    [
        lambda b: b.insert_char((2, 1), "x"),
        lambda b: b.insert_char((1, 5), "x"),
        lambda b: b.remove_char((1, 4)),
        lambda b: b.remove_text((1, 3), (1, 2)),
        lambda b: b.remove_lines(1, 3),
        lambda b: b.insert_lines(("x",), 0),
    ],
)
def test_out_of_range_coordinates_raise(call) -> None:
    buffer = make_buffer("abc")

    with pytest.raises(BufferValidationError):
        call(buffer)
    assert buffer.lines == ("abc",)
    assert buffer.history.node_count == 1


def test_undo_redo_restores_content_and_cursor() -> None:
    buffer = make_buffer("hello")
    buffer.insert_text(("X", "Y"), (1, 3))
    before = (buffer.lines, buffer.cursor)

    buffer.undo()
    buffer.redo()

    assert (buffer.lines, buffer.cursor) == before


def test_round_trip_of_mixed_edits() -> None:
    original = ("first", "second", "third")
    buffer = make_buffer(*original)

    buffer.insert_char((1, 6), "!")
    buffer.remove_text((1, 3), (2, 4))
    buffer.insert_lines(("new",), 1)
    buffer.remove_char((2, 1))
    buffer.insert_text(("a", "b"), (3, 2))
    buffer.remove_lines(1, 2)
    for _ in range(6):
        buffer.undo()

    assert buffer.lines == original


def test_replace_character_selection_is_one_undo_step() -> None:
    buffer = make_buffer("hello world")
    buffer.set_mode(EditorMode.VISUAL)
    buffer.move_cursor(1, 5)

    buffer.replace_selected(("HEY",))

    assert buffer.lines == ("HEY world",)
    assert buffer.history.node_count == 2
    buffer.set_mode(EditorMode.NORMAL)
    assert buffer.undo() is True
    assert buffer.lines == ("hello world",)
    assert buffer.history.location == []


def test_replace_every_line_restores_on_single_undo() -> None:
    buffer = make_buffer("a", "b")
    buffer.set_mode(EditorMode.VISUAL_LINE)
    buffer.move_cursor(2, 1)

    buffer.replace_selected(("x", "y", "z"))

    assert buffer.lines == ("x", "y", "z")
    assert buffer.history.node_count == 2
    buffer.set_mode(EditorMode.NORMAL)
    buffer.undo()
    assert buffer.lines == ("a", "b")
    buffer.redo()
    assert buffer.lines == ("x", "y", "z")


def test_replay_runs_with_history_locked() -> None:
    seen = []

    class WatchedBuffer(Buffer):
        def insert_char(self, pos, char, *, record=True):
            seen.append(self.history.locked)
            return super().insert_char(pos, char, record=record)

    buffer = WatchedBuffer()
    buffer.insert_char((1, 1), "a")
    buffer.undo()
    buffer.redo()

    assert seen == [False, True]
    assert buffer.history.locked is False
    assert buffer.lines == ("a",)
