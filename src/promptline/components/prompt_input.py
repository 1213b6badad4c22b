"""PromptInput component - multi-line prompt editor with a blinking caret."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from promptline.classifier import EditContext, interpret
from promptline.config import PromptInputOptions
from promptline.controller import StickyColumn, TextValue, insert_at, move_cursor
from promptline.keys import KeyEvent, parse_key_event, parse_mouse_event
from promptline.layout import (
    Viewport,
    char_width,
    compute_line_starts,
    expand_tabs,
    offset_at_point,
    scroll_to_cursor,
    viewport_metrics,
    visual_line_index,
)
from promptline.render import (
    CursorBlink,
    CursorSegments,
    compute_segments,
    cursor_on_char,
)
from promptline.stdin_buffer import BRACKETED_PASTE_END, BRACKETED_PASTE_START

logger = logging.getLogger(__name__)


def _plain(text: str) -> str:
    return text


def _dim(text: str) -> str:
    return f"\x1b[2m{text}\x1b[22m"


def _reverse(text: str) -> str:
    return f"\x1b[7m{text}\x1b[27m"


@dataclass
class PromptInputTheme:
    """ANSI styling applied to the pieces of a rendered row."""

    text: Callable[[str], str] = _plain
    placeholder: Callable[[str], str] = _dim
    highlight: Callable[[str], str] = _reverse
    caret: Callable[[str], str] = _plain


def _width(text: str) -> int:
    return sum(char_width(ch) for ch in text)


def _printable(ch: str) -> bool:
    # C0, DEL and C1 controls would reach the terminal raw when rendered
    if ch in "\n\t":
        return True
    code = ord(ch)
    return code >= 32 and not 0x7F <= code < 0xA0


class PromptInput:
    """Multi-line text input for a terminal prompt.

    The value is controlled: every edit or cursor move is proposed to
    ``on_change`` and only takes effect once the host calls
    :meth:`set_value`. Without an ``on_change`` the component applies its
    own proposals.
    """

    def __init__(
        self,
        options: PromptInputOptions | None = None,
        theme: PromptInputTheme | None = None,
        *,
        value: TextValue | None = None,
        focused: bool = True,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._options = options or PromptInputOptions()
        self._theme = theme or PromptInputTheme()
        self._value = value or TextValue()

        self.on_change: Callable[[TextValue], None] | None = None
        self.on_submit: Callable[[], None] | None = None
        self.on_paste: Callable[[str], None] | None = None
        self.on_key_intercept: Callable[[KeyEvent], bool] | None = None
        # Called when the display changes without input (caret blink)
        self.on_redraw: Callable[[], None] | None = None

        # Screen cell of the component's top-left corner, set by the host
        self.origin: tuple[int, int] = (0, 0)

        self._focused = focused
        self._visible = True
        self._sticky = StickyColumn()

        # Wrap width from the last render; 0 means logical lines only
        self._layout_width = 0
        self._padding_x = self._options.padding_x
        self._scroll = 0
        self._line_cache: tuple[str, int, list[int]] | None = None

        self._is_in_paste = False
        self._paste_buffer = ""

        self._blink = CursorBlink(
            self._on_blink_toggle,
            delay=self._options.blink_delay,
            interval=self._options.blink_interval,
            enabled=self._options.should_blink_cursor,
            loop=loop,
        )
        self._blink.update(focused=focused, visible=True)

    # -- value --------------------------------------------------------------

    @property
    def value(self) -> TextValue:
        return self._value

    @property
    def text(self) -> str:
        return self._value.text

    def set_value(self, value: TextValue) -> None:
        if value == self._value:
            return
        self._value = value
        self._blink.reset()

    def line_starts(self) -> list[int]:
        """Visual line starts of the current text at the last rendered width."""
        text = self._value.text
        cache = self._line_cache
        if cache is not None and cache[0] == text and cache[1] == self._layout_width:
            return cache[2]
        starts = compute_line_starts(text, self._layout_width)
        self._line_cache = (text, self._layout_width, starts)
        return starts

    def invalidate(self) -> None:
        """Drop cached layout so the next render recomputes it."""
        self._line_cache = None

    # -- focus / visibility -------------------------------------------------

    @property
    def focused(self) -> bool:
        return self._focused

    @focused.setter
    def focused(self, focused: bool) -> None:
        self.set_focused(focused)

    def set_focused(self, focused: bool) -> None:
        if not focused:
            self._sticky.clear()
        self._focused = focused
        self._blink.update(focused=focused)

    def focus(self) -> None:
        self.set_focused(True)

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        self._blink.update(visible=visible)

    @property
    def caret_visible(self) -> bool:
        return self._blink.visible

    def dispose(self) -> None:
        """Cancel the caret timer; the component must not be used afterwards."""
        self._blink.update(focused=False, visible=False)
        self._sticky.clear()
        self.on_redraw = None

    # -- input --------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        """Entry point for one chunk of raw terminal input."""
        if BRACKETED_PASTE_START in data:
            self._is_in_paste = True
            self._paste_buffer = ""
            data = data.replace(BRACKETED_PASTE_START, "")

        if self._is_in_paste:
            self._paste_buffer += data
            end_index = self._paste_buffer.find(BRACKETED_PASTE_END)
            if end_index == -1:
                return
            content = self._paste_buffer[:end_index]
            remaining = self._paste_buffer[end_index + len(BRACKETED_PASTE_END) :]
            self._is_in_paste = False
            self._paste_buffer = ""
            if content:
                self.handle_paste(content)
            if remaining:
                self.handle_input(remaining)
            return

        mouse = parse_mouse_event(data)
        if mouse is not None:
            if mouse.action == "down" and mouse.button == 0:
                self.handle_mouse_down(mouse.x, mouse.y)
            return

        key = parse_key_event(data)
        if key is not None:
            self.handle_key(key)

    def handle_key(self, key: KeyEvent) -> bool:
        """Process one key event; returns whether it was handled."""
        if not self._focused:
            return False

        if self.on_key_intercept is not None and self.on_key_intercept(key):
            logger.debug("key %r intercepted by host", key.name)
            return True

        if key.name not in ("up", "down"):
            self._sticky.clear()

        intent = interpret(key, self._edit_context())
        if intent is None:
            return False

        key.prevent_default()

        if intent.kind == "submit":
            if self.on_submit is not None:
                self.on_submit()
            return True

        self._propose(intent.value)
        return True

    def handle_paste(self, text: str) -> None:
        if not self._focused:
            return
        self._sticky.clear()
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = "".join(ch for ch in text if _printable(ch))
        logger.debug("paste of %d chars", len(text))

        if self.on_paste is not None:
            self.on_paste(text)
            return
        self._propose(insert_at(self._value, self._value.cursor_position, text))

    def handle_mouse_down(self, x: int, y: int, viewport: Viewport | None = None) -> None:
        """Move the cursor to the character under screen cell ``(x, y)``."""
        if not self._focused:
            return
        self._sticky.clear()

        if viewport is None:
            left, top = self.origin
            viewport = Viewport(left=left + self._padding_x, top=top, scroll=self._scroll)

        offset = offset_at_point(self._value.text, self.line_starts(), viewport, x, y)
        logger.debug("click at (%d, %d) -> offset %d", x, y, offset)
        self._propose(move_cursor(self._value, offset))

    def _edit_context(self) -> EditContext:
        text, cursor = self._value.text, self._value.cursor_position
        return EditContext(
            value=self._value,
            line_starts=self.line_starts(),
            cursor_on_char=cursor_on_char(text, cursor),
            sticky=self._sticky,
        )

    def _propose(self, value: TextValue) -> None:
        if value == self._value:
            return
        if self.on_change is not None:
            self.on_change(value)
        else:
            self.set_value(value)

    def _on_blink_toggle(self) -> None:
        if self.on_redraw is not None:
            self.on_redraw()

    # -- rendering ----------------------------------------------------------

    def render(self, width: int) -> list[str]:
        opts = self._options
        max_padding = max(0, (width - 1) // 2)
        padding_x = min(opts.padding_x, max_padding)
        content_width = max(1, width - padding_x * 2)
        # One column stays free so a caret at the end of a full row fits
        layout_width = max(1, content_width - 1)

        self._padding_x = padding_x
        self._layout_width = layout_width

        text, cursor = self._value.text, self._value.cursor_position
        segments = compute_segments(text, cursor, opts.placeholder, self._focused)
        display = opts.placeholder if segments.is_placeholder else text
        if segments.is_placeholder:
            cursor = 0

        starts = compute_line_starts(display, layout_width)
        cursor_row = visual_line_index(starts, cursor)

        rows: list[str] = []
        for i, start in enumerate(starts):
            end = starts[i + 1] if i + 1 < len(starts) else len(display)
            chunk = display[start:end]
            if chunk.endswith("\n"):
                chunk = chunk[:-1]

            if segments.show_cursor and i == cursor_row:
                body, used = self._render_cursor_row(chunk, cursor - start, segments)
            else:
                body, used = self._style(chunk, segments.is_placeholder), _width(chunk)
            rows.append(body + " " * max(0, content_width - used))

        metrics = viewport_metrics(len(starts), cursor_row, opts.min_height, opts.max_height)
        if metrics.gutter_enabled:
            rows.append(" " * content_width)

        height = metrics.height_lines
        if self._focused:
            self._scroll = scroll_to_cursor(self._scroll, cursor_row, height, len(rows))
        self._scroll = max(0, min(self._scroll, max(0, len(rows) - height)))

        visible = rows[self._scroll : self._scroll + height]
        while len(visible) < height:
            visible.append(" " * content_width)

        pad = " " * padding_x
        return [f"{pad}{row}{pad}" for row in visible]

    def _render_cursor_row(
        self, chunk: str, column: int, segments: CursorSegments
    ) -> tuple[str, int]:
        theme = self._theme
        before, rest = chunk[:column], chunk[column:]

        if segments.highlight:
            active = segments.active_char
            after = rest[len(active) :]
            cursor = theme.highlight(active)
            used = _width(before) + _width(active) + _width(after)
        else:
            glyph = self._options.cursor_char if self._blink.visible else " "
            after = rest
            cursor = theme.caret(glyph)
            used = _width(before) + 1 + _width(after)

        is_placeholder = segments.is_placeholder
        body = self._style(before, is_placeholder) + cursor + self._style(after, is_placeholder)
        return body, used

    def _style(self, text: str, is_placeholder: bool) -> str:
        if not text:
            return ""
        expanded = expand_tabs(text)
        if is_placeholder:
            return self._theme.placeholder(expanded)
        return self._theme.text(expanded)
