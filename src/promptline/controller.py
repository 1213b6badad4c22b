"""The authoritative ``(text, cursor)`` pair and the operations on it.

Every operation returns a new :class:`TextValue`; nothing is mutated in
place. Out-of-range positions clamp instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from promptline.layout import (
    compute_line_starts,
    offset_at_column,
    render_column,
    visual_line_bounds,
    visual_line_index,
)

Direction = Literal["up", "down"]


@dataclass(frozen=True)
class TextValue:
    """Prompt text plus cursor offset, with the cursor clamped on creation."""

    text: str = ""
    cursor_position: int = 0

    def __post_init__(self) -> None:
        clamped = max(0, min(self.cursor_position, len(self.text)))
        if clamped != self.cursor_position:
            object.__setattr__(self, "cursor_position", clamped)


def _clamp(value: TextValue, pos: int) -> int:
    return max(0, min(pos, len(value.text)))


def insert_at(value: TextValue, pos: int, s: str) -> TextValue:
    """Splice *s* in at *pos*; the cursor ends up right after it."""
    if not s:
        return value
    pos = _clamp(value, pos)
    text = value.text
    return TextValue(text=text[:pos] + s + text[pos:], cursor_position=pos + len(s))


def delete_range(value: TextValue, start: int, end: int) -> TextValue:
    """Remove ``text[start:end]`` and put the cursor at *start*."""
    start = _clamp(value, start)
    end = _clamp(value, end)
    if start > end:
        start, end = end, start
    if start == end:
        return move_cursor(value, start)
    text = value.text
    return TextValue(text=text[:start] + text[end:], cursor_position=start)


def move_cursor(value: TextValue, new_pos: int) -> TextValue:
    """Move the cursor; returns *value* itself when nothing changes."""
    clamped = _clamp(value, new_pos)
    if clamped == value.cursor_position:
        return value
    return TextValue(text=value.text, cursor_position=clamped)


def vertical_move(
    text: str,
    cursor: int,
    line_starts: Sequence[int],
    cursor_on_char: bool,
    direction: Direction,
    desired_column: int,
) -> int:
    """Offset one visual line up or down, as close to *desired_column* as fits.

    Moving up from the first visual line goes to the start of the text and
    moving down from the last goes to its end.
    """
    cursor = max(0, min(cursor, len(text)))
    starts = list(line_starts) or compute_line_starts(text, 0)

    current = visual_line_index(starts, cursor)
    target = current - 1 if direction == "up" else current + 1

    if target < 0:
        return 0
    if target >= len(starts):
        return len(text)

    start = starts[target]
    limit = starts[target + 1] - 1 if target + 1 < len(starts) else len(text)
    return offset_at_column(text, start, limit, desired_column, on_char=cursor_on_char)


class StickyColumn:
    """Render column preserved across a run of consecutive Up/Down moves.

    The column is captured on the first vertical move and reused until
    :meth:`clear` is called, so passing through a short line does not pull
    the cursor left for the rest of the run.
    """

    def __init__(self) -> None:
        self.column: int | None = None

    def resolve(self, text: str, cursor: int, line_starts: Sequence[int]) -> int:
        if self.column is None:
            start, _ = visual_line_bounds(text, line_starts, cursor)
            self.column = render_column(text, cursor, start)
        return self.column

    def clear(self) -> None:
        self.column = None

    @property
    def active(self) -> bool:
        return self.column is not None
