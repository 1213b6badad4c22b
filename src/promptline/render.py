"""Cursor presentation: display segments and the blinking caret timer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

import grapheme

from promptline.layout import expand_tabs, render_column

logger = logging.getLogger(__name__)

CURSOR_CHAR = "▍"


@dataclass(frozen=True)
class CursorSegments:
    """Display text split around the cursor.

    When ``highlight`` is set the cursor is a block over ``active_char`` and
    ``after`` holds what follows it. Otherwise a caret glyph goes between
    ``before`` and ``after``, and ``active_char`` is unused.
    """

    before: str
    active_char: str
    after: str
    highlight: bool
    is_placeholder: bool
    show_cursor: bool
    cursor_column: int


def cursor_on_char(text: str, cursor: int) -> bool:
    """Whether the cursor is drawn as a block over the character at *cursor*.

    Newlines and tabs have no glyph to cover, so the cursor sits before
    them as a caret, as it does at the end of the text.
    """
    return 0 <= cursor < len(text) and text[cursor] not in ("\n", "\t")


def compute_segments(
    text: str, cursor: int, placeholder: str = "", focused: bool = True
) -> CursorSegments:
    is_placeholder = not text and bool(placeholder)
    display = placeholder if is_placeholder else text

    if not focused:
        return CursorSegments(
            before=expand_tabs(display),
            active_char="",
            after="",
            highlight=False,
            is_placeholder=is_placeholder,
            show_cursor=False,
            cursor_column=0,
        )

    cursor = 0 if is_placeholder else max(0, min(cursor, len(display)))
    rest = display[cursor:]
    highlight = not is_placeholder and cursor_on_char(display, cursor)

    if highlight:
        active_char = next(iter(grapheme.graphemes(rest)), rest[0])
        after = expand_tabs(rest[len(active_char) :])
    else:
        active_char = rest[:1] if rest and rest[0] not in ("\n", "\t") else " "
        after = expand_tabs(rest)

    return CursorSegments(
        before=expand_tabs(display[:cursor]),
        active_char=active_char,
        after=after,
        highlight=highlight,
        is_placeholder=is_placeholder,
        show_cursor=True,
        cursor_column=render_column(display, cursor),
    )


class CursorBlink:
    """Toggles caret visibility while the input is focused and on screen.

    Blinking starts after an idle delay and runs on a fixed interval. Any
    change of focus, visibility, or configuration, and any call to
    :meth:`reset`, cancels every pending timer before scheduling new ones.
    Without a running event loop the caret just stays visible.
    """

    def __init__(
        self,
        on_toggle: Callable[[], None] | None = None,
        *,
        delay: float = 0.5,
        interval: float = 0.5,
        enabled: bool = True,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.visible: bool = True
        self._on_toggle = on_toggle
        self._delay = delay
        self._interval = interval
        self._enabled = enabled
        self._focused = False
        self._shown = True
        self._loop = loop
        self._idle_handle: asyncio.TimerHandle | None = None
        self._interval_handle: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._focused and self._shown and self._enabled

    @property
    def pending(self) -> bool:
        return self._idle_handle is not None or self._interval_handle is not None

    def update(
        self,
        *,
        focused: bool | None = None,
        visible: bool | None = None,
        enabled: bool | None = None,
        delay: float | None = None,
        interval: float | None = None,
    ) -> None:
        if focused is not None:
            self._focused = focused
        if visible is not None:
            self._shown = visible
        if enabled is not None:
            self._enabled = enabled
        if delay is not None:
            self._delay = delay
        if interval is not None:
            self._interval = interval
        self.reset()

    def reset(self) -> None:
        """Show the caret and restart the idle delay."""
        self._cancel()
        self._set_visible(True)
        if not self.active:
            return
        loop = self._get_loop()
        if loop is None:
            return
        self._idle_handle = loop.call_later(self._delay, self._start_blinking)

    def stop(self) -> None:
        self._cancel()
        self._set_visible(True)

    def _start_blinking(self) -> None:
        self._idle_handle = None
        logger.debug("caret idle, blinking every %.3fs", self._interval)
        self._schedule_tick()

    def _schedule_tick(self) -> None:
        loop = self._get_loop()
        if loop is not None:
            self._interval_handle = loop.call_later(self._interval, self._tick)

    def _tick(self) -> None:
        self._interval_handle = None
        self._set_visible(not self.visible)
        self._schedule_tick()

    def _cancel(self) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
            self._idle_handle = None
        if self._interval_handle is not None:
            self._interval_handle.cancel()
            self._interval_handle = None

    def _set_visible(self, visible: bool) -> None:
        if visible == self.visible:
            return
        self.visible = visible
        if self._on_toggle is not None:
            self._on_toggle()

    def _get_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None
