"""Visual layout of prompt text: tab expansion, wrapping, and offset mapping.

Offsets always index the original text. Render columns count terminal
cells after tab expansion: a tab is a fixed ``TAB_WIDTH`` stride (not a tab
stop), wide characters take two cells, and combining marks take none.
Tabs are expanded for display only and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import grapheme
import wcwidth as _wcwidth

from promptline.boundaries import line_end, line_start

TAB_WIDTH = 4


# ---------------------------------------------------------------------------
# Widths
# ---------------------------------------------------------------------------


def char_width(ch: str) -> int:
    """Terminal cells taken by a single character of prompt text."""
    if ch == "\t":
        return TAB_WIDTH
    if ch == "\n":
        # Occupies one slot of the flat expanded text.
        return 1
    return max(_wcwidth.wcwidth(ch), 0)


def _grapheme_width(g: str) -> int:
    return sum(char_width(ch) for ch in g)


def expand_tabs(text: str) -> str:
    return text.replace("\t", " " * TAB_WIDTH)


# ---------------------------------------------------------------------------
# Offset <-> render column
# ---------------------------------------------------------------------------


def render_column(text: str, offset: int, start: int = 0) -> int:
    """Expanded width of ``text[start:offset]``."""
    offset = max(0, min(offset, len(text)))
    start = max(0, min(start, offset))
    return sum(char_width(ch) for ch in text[start:offset])


def render_to_original(text: str, render_col: int) -> int:
    """Map a column of the tab-expanded text back to an original offset.

    Walks whole grapheme clusters, so the result never separates a base
    character from the combining or joining marks that follow it.
    """
    original_pos = 0
    current_col = 0

    for g in grapheme.graphemes(text):
        if current_col >= render_col:
            break
        current_col += _grapheme_width(g)
        original_pos += len(g)

    return original_pos


def click_to_offset(
    line_start_char: int, line_end_char: int, click_col: int, text: str
) -> int:
    """Offset hit by a pointer at *click_col* on one visual line.

    Walks the line a grapheme cluster at a time, accumulating expanded width
    until the width reaches *click_col* or the line ends. A newline always
    stops the walk.
    """
    visual_col = 0
    char_index = max(0, line_start_char)
    end = min(line_end_char, len(text))

    for g in grapheme.graphemes(text[char_index:]):
        if visual_col >= click_col or g == "\n" or char_index + len(g) > end:
            break
        visual_col += _grapheme_width(g)
        char_index += len(g)

    return min(char_index, len(text))


def offset_at_column(
    text: str,
    line_start_char: int,
    limit: int,
    column: int,
    *,
    on_char: bool,
) -> int:
    """Offset on one visual line matching a target render column.

    With ``on_char=False`` the cursor is a caret between characters and this
    behaves like :func:`click_to_offset`: the first boundary at or past
    *column*. With ``on_char=True`` the cursor is a block over a character,
    so it lands on the character whose cell span covers *column*. The two
    only differ where a tab or wide character straddles the column.

    *limit* is the last offset the result may take on this line. Results
    always fall on grapheme cluster boundaries.
    """
    visual_col = 0
    char_index = max(0, line_start_char)
    limit = min(limit, len(text))

    for g in grapheme.graphemes(text[char_index:]):
        if g == "\n" or char_index + len(g) > limit:
            break
        width = _grapheme_width(g)
        if on_char:
            if visual_col + width > column:
                break
        elif visual_col >= column:
            break
        visual_col += width
        char_index += len(g)

    return char_index


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


def _wrap_line(line: str, width: int) -> list[int]:
    """Start indices of the visual chunks of one logical line.

    Wraps after the last whitespace run that fits, falling back to a hard
    break for words wider than *width*. Grapheme clusters are never split.
    """
    if not line or width <= 0:
        return [0]

    segments: list[tuple[str, int]] = []
    idx = 0
    for g in grapheme.graphemes(line):
        segments.append((g, idx))
        idx += len(g)

    starts = [0]
    current_width = 0
    chunk_start = 0

    # Position after the last whitespace that precedes a non-whitespace grapheme
    wrap_opp_index = -1
    wrap_opp_width = 0

    for i, (g, char_index) in enumerate(segments):
        g_width = _grapheme_width(g)

        if current_width + g_width > width:
            if wrap_opp_index > chunk_start:
                starts.append(wrap_opp_index)
                chunk_start = wrap_opp_index
                current_width -= wrap_opp_width
            if current_width + g_width > width and chunk_start < char_index:
                starts.append(char_index)
                chunk_start = char_index
                current_width = 0
            wrap_opp_index = -1

        current_width += g_width

        if g.isspace() and i + 1 < len(segments):
            next_g, next_index = segments[i + 1]
            if not next_g.isspace():
                wrap_opp_index = next_index
                wrap_opp_width = current_width

    return starts


def compute_line_starts(text: str, width: int) -> list[int]:
    """Offsets where each visual line begins when *text* wraps at *width*."""
    starts: list[int] = []
    offset = 0
    for line in text.split("\n"):
        starts.extend(offset + s for s in _wrap_line(line, width))
        offset += len(line) + 1
    return starts


def visual_line_index(line_starts: Sequence[int], offset: int) -> int:
    """Index of the last visual line starting at or before *offset*."""
    index = 0
    for i, start in enumerate(line_starts):
        if start > offset:
            break
        index = i
    return index


def visual_line_bounds(
    text: str, line_starts: Sequence[int], offset: int
) -> tuple[int, int]:
    """``(start, end)`` of the visual line holding *offset*.

    For every line but the last, *end* is one before the next line start:
    the ``\\n`` of a logical line, or the last character of a soft-wrapped
    chunk. The last line ends at its logical line end.
    """
    offset = max(0, min(offset, len(text)))
    if not line_starts:
        return line_start(text, offset), line_end(text, offset)

    index = visual_line_index(line_starts, offset)
    start = min(line_starts[index], len(text))
    if index + 1 < len(line_starts):
        return start, min(line_starts[index + 1] - 1, len(text))
    return start, line_end(text, offset)


# ---------------------------------------------------------------------------
# Viewport geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Viewport:
    """Host-owned placement of the text area on screen."""

    left: int = 0
    top: int = 0
    scroll: int = 0


@dataclass(frozen=True)
class ViewportMetrics:
    height_lines: int
    gutter_enabled: bool


def offset_at_point(
    text: str, line_starts: Sequence[int], viewport: Viewport, x: int, y: int
) -> int:
    """Text offset under the screen cell ``(x, y)``."""
    starts = list(line_starts) or [0]
    click_row = y - viewport.top + viewport.scroll
    line_index = min(max(0, click_row), len(starts) - 1)

    line_start_char = starts[line_index]
    line_end_char = starts[line_index + 1] if line_index + 1 < len(starts) else len(text)
    click_col = max(0, x - viewport.left)

    return click_to_offset(line_start_char, line_end_char, click_col, text)


def viewport_metrics(
    total_lines: int, cursor_row: int, min_height: int, max_height: int
) -> ViewportMetrics:
    """Height of the input area in lines.

    When the text spans exactly two lines and the cursor sits on the second,
    one blank gutter line is added below (if it fits) so the input does not
    look glued to whatever follows it.
    """
    safe_max_height = max(1, max_height)
    effective_min_height = max(1, min(min_height, safe_max_height))

    gutter_enabled = (
        total_lines == 2 and cursor_row == 1 and total_lines + 1 <= safe_max_height
    )
    raw_height = min(total_lines + (1 if gutter_enabled else 0), safe_max_height)

    return ViewportMetrics(
        height_lines=max(effective_min_height, raw_height),
        gutter_enabled=gutter_enabled,
    )


def scroll_to_cursor(
    scroll: int, cursor_row: int, viewport_height: int, total_lines: int
) -> int:
    """Smallest change to *scroll* that keeps *cursor_row* on screen."""
    viewport_height = max(1, viewport_height)
    lowest = max(0, cursor_row - viewport_height + 1)
    highest = max(lowest, min(total_lines - viewport_height, cursor_row))
    return max(lowest, min(scroll, highest))
