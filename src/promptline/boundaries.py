"""Pure offset computations over prompt text.

Lines are logical lines delimited by ``\\n``. Words are maximal runs of
non-whitespace, the way a shell treats them, not Unicode word segments.
Every function clamps *pos* into the text first, so all of them are total.
"""

from __future__ import annotations


def _clamp(text: str, pos: int) -> int:
    return max(0, min(pos, len(text)))


def line_start(text: str, pos: int) -> int:
    """Offset of the first character of the logical line holding *pos*."""
    pos = _clamp(text, pos)
    while pos > 0 and text[pos - 1] != "\n":
        pos -= 1
    return pos


def line_end(text: str, pos: int) -> int:
    """Offset of the ``\\n`` ending the logical line, or ``len(text)``."""
    pos = _clamp(text, pos)
    while pos < len(text) and text[pos] != "\n":
        pos += 1
    return pos


def prev_word_boundary(text: str, pos: int) -> int:
    """Start of the word before *pos*, skipping whitespace in between."""
    pos = _clamp(text, pos)

    while pos > 0 and text[pos - 1].isspace():
        pos -= 1

    while pos > 0 and not text[pos - 1].isspace():
        pos -= 1

    return pos


def next_word_boundary(text: str, pos: int) -> int:
    """Start of the next word after *pos*, past the current word's trailing space."""
    pos = _clamp(text, pos)

    while pos < len(text) and not text[pos].isspace():
        pos += 1

    while pos < len(text) and text[pos].isspace():
        pos += 1

    return pos
