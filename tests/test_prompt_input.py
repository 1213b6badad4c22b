"""Tests for the PromptInput component."""

from __future__ import annotations

from typing import Callable

import pytest

from promptline.components import PromptInput, PromptInputTheme
from promptline.config import PromptInputOptions
from promptline.controller import TextValue
from promptline.keys import KeyEvent
from promptline.stdin_buffer import BRACKETED_PASTE_END, BRACKETED_PASTE_START

# Raw escape codes for key sequences
KEY_UP = "\x1b[A"
KEY_DOWN = "\x1b[B"
KEY_LEFT = "\x1b[D"
KEY_HOME = "\x1b[H"
KEY_END = "\x1b[F"
KEY_ENTER = "\r"
KEY_SHIFT_ENTER = "\x1b[13;2u"
KEY_BACKSPACE = "\x7f"
KEY_CTRL_U = "\x15"

CARET = "▍"
REV_ON, REV_OFF = "\x1b[7m", "\x1b[27m"
DIM_ON, DIM_OFF = "\x1b[2m", "\x1b[22m"


class FakeHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    def __init__(self) -> None:
        self.time = 0.0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(self.time + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.time + seconds
        while True:
            due = sorted((h for h in self.pending if h.when <= target + 1e-9), key=lambda h: h.when)
            if not due:
                break
            handle = due[0]
            self.handles.remove(handle)
            self.time = handle.when
            handle.callback()
        self.time = target


def make_input(text: str = "", cursor: int | None = None, **options) -> PromptInput:
    value = TextValue(text, len(text) if cursor is None else cursor)
    return PromptInput(PromptInputOptions(**options), value=value)


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


class TestUncontrolledEditing:
    """Without on_change the component applies its own proposals."""

    def test_typing(self) -> None:
        inp = PromptInput()
        inp.handle_input("h")
        inp.handle_input("i")
        assert inp.value == TextValue("hi", 2)

    def test_burst_inserted_whole(self) -> None:
        inp = PromptInput()
        inp.handle_input("hello")
        assert inp.value == TextValue("hello", 5)

    def test_backspace(self) -> None:
        inp = make_input("abc")
        inp.handle_input(KEY_BACKSPACE)
        assert inp.value == TextValue("ab", 2)

    def test_shift_enter_inserts_newline(self) -> None:
        inp = make_input("ab", 1)
        inp.handle_input(KEY_SHIFT_ENTER)
        assert inp.value == TextValue("a\nb", 2)

    def test_backslash_enter_becomes_newline(self) -> None:
        submits: list[bool] = []
        inp = make_input("ab\\")
        inp.on_submit = lambda: submits.append(True)
        inp.handle_input(KEY_ENTER)
        assert inp.value == TextValue("ab\n", 3)
        assert submits == []

    def test_home_end_and_kill_line(self) -> None:
        inp = make_input("ab\ncd", 4)
        inp.handle_input(KEY_HOME)
        assert inp.value.cursor_position == 3
        inp.handle_input(KEY_END)
        assert inp.value.cursor_position == 5
        inp.handle_input(KEY_CTRL_U)
        assert inp.value == TextValue("ab\n", 3)
        inp.handle_input(KEY_BACKSPACE)
        assert inp.value == TextValue("ab", 2)


class TestControlledEditing:
    def test_change_is_proposed_not_applied(self) -> None:
        proposals: list[TextValue] = []
        inp = make_input("ab")
        inp.on_change = proposals.append
        inp.handle_input("c")
        assert proposals == [TextValue("abc", 3)]
        assert inp.value == TextValue("ab", 2)

    def test_host_applies_proposal(self) -> None:
        inp = make_input("ab")
        inp.on_change = inp.set_value
        inp.handle_input("c")
        assert inp.value == TextValue("abc", 3)

    def test_no_op_moves_not_proposed(self) -> None:
        proposals: list[TextValue] = []
        inp = make_input("ab", 0)
        inp.on_change = proposals.append
        inp.handle_input(KEY_LEFT)
        assert proposals == []

    def test_submit_calls_on_submit_once(self) -> None:
        proposals: list[TextValue] = []
        submits: list[bool] = []
        inp = make_input("do it")
        inp.on_change = proposals.append
        inp.on_submit = lambda: submits.append(True)
        inp.handle_input(KEY_ENTER)
        assert submits == [True]
        assert proposals == []


class TestHandleKey:
    def test_handled_key_prevents_default(self) -> None:
        prevented: list[bool] = []
        inp = PromptInput()
        key = KeyEvent(name="a", sequence="a", on_prevent_default=lambda: prevented.append(True))
        assert inp.handle_key(key) is True
        assert prevented == [True]

    def test_unhandled_key_left_alone(self) -> None:
        prevented: list[bool] = []
        inp = make_input("abc")
        key = KeyEvent(
            name="pageup", sequence="\x1b[5~", on_prevent_default=lambda: prevented.append(True)
        )
        assert inp.handle_key(key) is False
        assert prevented == []
        assert inp.value == TextValue("abc", 3)

    def test_interceptor_consumes_key(self) -> None:
        seen: list[str] = []
        inp = make_input("abc")

        def intercept(key: KeyEvent) -> bool:
            seen.append(key.name)
            return key.name == "x"

        inp.on_key_intercept = intercept
        assert inp.handle_key(KeyEvent(name="x", sequence="x")) is True
        assert inp.text == "abc"
        assert inp.handle_key(KeyEvent(name="y", sequence="y")) is True
        assert inp.text == "abcy"
        assert seen == ["x", "y"]

    def test_unfocused_ignores_keys(self) -> None:
        proposals: list[TextValue] = []
        inp = PromptInput(focused=False)
        inp.on_change = proposals.append
        assert inp.handle_key(KeyEvent(name="a", sequence="a")) is False
        inp.handle_input("b")
        assert proposals == []


class TestStickyColumn:
    TEXT = "abcdef\nab\nabcdef"

    def test_column_survives_short_line(self) -> None:
        inp = make_input(self.TEXT, 5)
        inp.handle_input(KEY_DOWN)
        assert inp.value.cursor_position == 9
        inp.handle_input(KEY_DOWN)
        assert inp.value.cursor_position == 15

    def test_horizontal_move_resets_column(self) -> None:
        inp = make_input(self.TEXT, 5)
        inp.handle_input(KEY_DOWN)
        inp.handle_input(KEY_LEFT)
        assert inp.value.cursor_position == 8
        inp.handle_input(KEY_DOWN)
        assert inp.value.cursor_position == 11

    def test_blur_resets_column(self) -> None:
        inp = make_input(self.TEXT, 5)
        inp.handle_input(KEY_DOWN)
        inp.focused = False
        inp.focused = True
        inp.handle_input(KEY_DOWN)
        assert inp.value.cursor_position == 12

    def test_up_from_first_line(self) -> None:
        inp = make_input(self.TEXT, 3)
        inp.handle_input(KEY_UP)
        assert inp.value.cursor_position == 0


# ---------------------------------------------------------------------------
# Paste and mouse
# ---------------------------------------------------------------------------


class TestPaste:
    def test_bracketed_paste_inserted_with_normalized_newlines(self) -> None:
        inp = PromptInput()
        inp.handle_input(f"{BRACKETED_PASTE_START}a\r\nb\rc{BRACKETED_PASTE_END}")
        assert inp.value == TextValue("a\nb\nc", 5)

    def test_paste_split_across_chunks(self) -> None:
        inp = make_input("[]", 1)
        inp.handle_input(f"{BRACKETED_PASTE_START}he")
        assert inp.text == "[]"
        inp.handle_input(f"llo{BRACKETED_PASTE_END}")
        assert inp.value == TextValue("[hello]", 6)

    def test_keys_after_paste_processed(self) -> None:
        inp = PromptInput()
        inp.handle_input(f"{BRACKETED_PASTE_START}ab{BRACKETED_PASTE_END}c")
        assert inp.text == "abc"

    def test_on_paste_receives_text(self) -> None:
        pasted: list[str] = []
        inp = make_input("x")
        inp.on_paste = pasted.append
        inp.handle_paste("1\r\n2")
        assert pasted == ["1\n2"]
        assert inp.text == "x"

    def test_unfocused_ignores_paste(self) -> None:
        inp = PromptInput(focused=False)
        inp.handle_paste("hello")
        assert inp.text == ""

    def test_control_characters_stripped(self) -> None:
        inp = PromptInput()
        inp.handle_input(f"{BRACKETED_PASTE_START}hi\x1b[2Jthere\x07{BRACKETED_PASTE_END}")
        assert inp.value == TextValue("hi[2Jthere", 10)
        assert not any("\x1b[2J" in row for row in inp.render(40))

    def test_c1_controls_and_del_stripped(self) -> None:
        inp = PromptInput()
        inp.handle_paste("a\x9b31mb\x7fc")
        assert inp.text == "a31mbc"

    def test_newlines_and_tabs_kept(self) -> None:
        inp = PromptInput()
        inp.handle_paste("a\tb\r\nc\x00")
        assert inp.text == "a\tb\nc"

    def test_on_paste_receives_filtered_text(self) -> None:
        pasted: list[str] = []
        inp = PromptInput()
        inp.on_paste = pasted.append
        inp.handle_paste("x\x1b]0;title\x07y")
        assert pasted == ["x]0;titley"]

    def test_paste_of_only_controls_changes_nothing(self) -> None:
        changes: list[TextValue] = []
        inp = make_input("ab", 1)
        inp.on_change = changes.append
        inp.handle_paste("\x1b\x07")
        assert changes == []
        assert inp.value == TextValue("ab", 1)


class TestMouse:
    def test_click_moves_cursor(self) -> None:
        inp = make_input("hello\nworld", 0)
        inp.origin = (0, 2)
        inp.render(20)
        # x=3, y=3 on screen: row 1 of the input, column 2 after padding
        inp.handle_input("\x1b[<0;4;4M")
        assert inp.value.cursor_position == 8

    def test_click_below_text_clamps_to_last_line(self) -> None:
        inp = make_input("hello\nworld", 0)
        inp.render(20)
        inp.handle_mouse_down(40, 9)
        assert inp.value.cursor_position == 11

    def test_click_in_padding_goes_to_line_start(self) -> None:
        inp = make_input("hello\nworld")
        inp.render(20)
        inp.handle_mouse_down(0, 0)
        assert inp.value.cursor_position == 0

    def test_release_and_other_buttons_ignored(self) -> None:
        inp = make_input("hello", 5)
        inp.handle_input("\x1b[<0;2;1m")
        inp.handle_input("\x1b[<2;2;1M")
        assert inp.value.cursor_position == 5

    def test_unfocused_ignores_clicks(self) -> None:
        inp = PromptInput(value=TextValue("hello", 5), focused=False)
        inp.handle_mouse_down(1, 0)
        assert inp.value.cursor_position == 5


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRender:
    def test_empty_shows_caret(self) -> None:
        assert PromptInput().render(12) == [" " + CARET + " " * 10]

    def test_lines_fill_width(self) -> None:
        for line in make_input("hello world", 3).render(12):
            plain = line.replace(REV_ON, "").replace(REV_OFF, "")
            assert len(plain) == 12

    def test_placeholder_is_dim_after_caret(self) -> None:
        inp = PromptInput(PromptInputOptions(placeholder="Ask"))
        assert inp.render(12) == [" " + CARET + DIM_ON + "Ask" + DIM_OFF + " " * 7]

    def test_block_cursor_on_character(self) -> None:
        inp = make_input("abc", 1)
        assert inp.render(12) == [" a" + REV_ON + "b" + REV_OFF + "c" + " " * 8]

    def test_caret_at_end(self) -> None:
        assert make_input("abc").render(12) == [" abc" + CARET + " " * 7]

    def test_tabs_expanded(self) -> None:
        inp = make_input("a\tb", 0)
        assert inp.render(12) == [" " + REV_ON + "a" + REV_OFF + "    b" + " " * 5]

    def test_unfocused_has_no_cursor(self) -> None:
        inp = PromptInput(value=TextValue("abc", 1), focused=False)
        assert inp.render(12) == [" abc" + " " * 8]

    def test_unfocused_placeholder(self) -> None:
        inp = PromptInput(PromptInputOptions(placeholder="Ask"), focused=False)
        assert inp.render(12) == [" " + DIM_ON + "Ask" + DIM_OFF + " " * 8]

    def test_gutter_on_second_line(self) -> None:
        lines = make_input("a\nb").render(12)
        assert lines == [" a" + " " * 10, " b" + CARET + " " * 9, " " * 12]

    def test_no_gutter_on_first_line(self) -> None:
        lines = make_input("a\nb", 0).render(12)
        assert len(lines) == 2

    def test_min_height_pads(self) -> None:
        inp = PromptInput(PromptInputOptions(min_height=3))
        assert len(inp.render(12)) == 3

    def test_scrolls_to_cursor(self) -> None:
        inp = make_input("1\n2\n3\n4", max_height=2)
        assert inp.render(12) == [" 3" + " " * 10, " 4" + CARET + " " * 9]

    def test_wraps_at_width(self) -> None:
        inp = make_input("hello world", 0)
        inp.render(9)
        assert inp.line_starts() == [0, 6]

    def test_invalidate_recomputes_line_starts(self) -> None:
        inp = make_input("hello world", 0)
        inp.render(9)
        cached = inp.line_starts()
        assert inp.line_starts() is cached
        inp.invalidate()
        fresh = inp.line_starts()
        assert fresh == cached
        assert fresh is not cached

    def test_custom_theme(self) -> None:
        theme = PromptInputTheme(caret=lambda s: f"<{s}>")
        inp = PromptInput(theme=theme)
        assert inp.render(12)[0].startswith(" <" + CARET + ">")

    def test_custom_cursor_char(self) -> None:
        inp = PromptInput(PromptInputOptions(cursor_char="|"))
        assert inp.render(12) == [" |" + " " * 10]


class TestBlink:
    def make(self, **options) -> tuple[PromptInput, FakeLoop, list[bool]]:
        loop = FakeLoop()
        redraws: list[bool] = []
        inp = PromptInput(PromptInputOptions(**options), loop=loop)  # type: ignore[arg-type]
        inp.on_redraw = lambda: redraws.append(inp.caret_visible)
        return inp, loop, redraws

    def test_caret_blinks_after_idle(self) -> None:
        inp, loop, redraws = self.make(blink_delay=0.5, blink_interval=0.5)
        loop.advance(0.5)
        assert inp.caret_visible
        loop.advance(0.5)
        assert redraws == [False]
        assert inp.render(12) == [" " * 12]

    def test_typing_shows_caret(self) -> None:
        inp, loop, redraws = self.make(blink_delay=0.5, blink_interval=0.5)
        loop.advance(1.0)
        inp.handle_input("a")
        assert inp.caret_visible
        assert redraws == [False, True]

    def test_disabled(self) -> None:
        inp, loop, redraws = self.make(should_blink_cursor=False)
        loop.advance(10.0)
        assert redraws == []
        assert loop.pending == []

    def test_blur_stops_blinking(self) -> None:
        inp, loop, _ = self.make()
        inp.focused = False
        assert loop.pending == []
        assert inp.caret_visible

    def test_hidden_stops_blinking(self) -> None:
        inp, loop, _ = self.make()
        inp.set_visible(False)
        assert loop.pending == []

    def test_dispose_cancels_timers(self) -> None:
        inp, loop, redraws = self.make()
        inp.dispose()
        loop.advance(10.0)
        assert loop.pending == []
        assert redraws == []
        assert inp.on_redraw is None

    @pytest.mark.asyncio
    async def test_no_loop_argument_uses_running_loop(self) -> None:
        inp = PromptInput(PromptInputOptions(blink_delay=10.0))
        inp.focus()
        assert inp.caret_visible
        inp.dispose()
