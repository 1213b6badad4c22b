"""Key classification: an ordered table of key rules for the prompt editor.

Every rule pairs a predicate over ``(KeyEvent, EditContext)`` with a pure
function producing the next :class:`TextValue`. Rules are tried in order and
the first match wins, so modifier precedence is exactly the table order:

1. Enter family (backslash-Enter, newline, submit)
2. Deletion family
3. Navigation family
4. Character input

Rules never perform I/O and never mutate the key event.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Literal, Sequence

from promptline.boundaries import (
    line_end,
    line_start,
    next_word_boundary,
    prev_word_boundary,
)
from promptline.controller import (
    StickyColumn,
    TextValue,
    delete_range,
    insert_at,
    move_cursor,
    vertical_move,
)
from promptline.keys import ESC, KeyEvent
from promptline.layout import visual_line_bounds

logger = logging.getLogger(__name__)

IntentKind = Literal["submit", "insert-newline", "delete", "navigate", "insert-character"]

KeyAction = Literal[
    # Enter family
    "backslashNewLine",
    "newLine",
    "submit",
    # Deletion
    "deleteToVisualLineStart",
    "deleteWordBackward",
    "deleteToLineStart",
    "deleteWordForward",
    "deleteToLineEnd",
    "deleteCharBackward",
    "deleteCharForward",
    # Cursor movement
    "cursorWordLeft",
    "cursorWordRight",
    "cursorLineStart",
    "cursorLineEnd",
    "cursorBufferStart",
    "cursorBufferEnd",
    "cursorLeft",
    "cursorRight",
    "cursorUp",
    "cursorDown",
    # Text input
    "insertText",
]

CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


# ---------------------------------------------------------------------------
# Context and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EditContext:
    """Everything a rule may read besides the key itself.

    ``cursor_on_char`` is true when the cursor is drawn as a block over a
    character rather than as a caret between two characters; vertical moves
    place the cursor accordingly. ``sticky`` belongs to the editing surface
    and outlives a single key.
    """

    value: TextValue
    line_starts: Sequence[int] = ()
    cursor_on_char: bool = False
    sticky: StickyColumn = field(default_factory=StickyColumn)

    @property
    def text(self) -> str:
        return self.value.text

    @property
    def cursor(self) -> int:
        return self.value.cursor_position


@dataclass(frozen=True)
class KeyRule:
    action: KeyAction
    kind: IntentKind
    matches: Callable[[KeyEvent, EditContext], bool]
    apply: Callable[[KeyEvent, EditContext], TextValue]


@dataclass(frozen=True)
class Intent:
    """Outcome of a matched key: what it means and the value it proposes."""

    action: KeyAction
    kind: IntentKind
    value: TextValue


# ---------------------------------------------------------------------------
# Key predicates
# ---------------------------------------------------------------------------


def is_alt_modifier(key: KeyEvent) -> bool:
    """Option held, or an ESC-prefixed two-character sequence that is not CSI."""
    seq = key.sequence
    return key.option or (len(seq) == 2 and seq[0] == ESC and seq[1] != "[")


def _name(key: KeyEvent) -> str:
    return (key.name or "").lower()


def _unmodified(key: KeyEvent) -> bool:
    return not key.ctrl and not key.meta and not key.option


def _ctrl_letter(key: KeyEvent, letter: str) -> bool:
    return key.ctrl and not key.meta and not key.option and _name(key) == letter


def _is_enter(key: KeyEvent) -> bool:
    return key.name in ("return", "enter")


def _has_escape_prefix(key: KeyEvent) -> bool:
    return key.sequence.startswith(ESC)


def _backslash_before_cursor(ctx: EditContext) -> bool:
    return ctx.cursor > 0 and ctx.text[ctx.cursor - 1] == "\\"


def _is_printable_key(key: KeyEvent) -> bool:
    name = key.name
    # No name means a multi-byte chunk of text
    return not name or len(name) == 1 or name == "space"


# ---------------------------------------------------------------------------
# Enter family
# ---------------------------------------------------------------------------


def _match_backslash_enter(key: KeyEvent, ctx: EditContext) -> bool:
    return _is_enter(key) and _backslash_before_cursor(ctx)


def _apply_backslash_enter(key: KeyEvent, ctx: EditContext) -> TextValue:
    # The backslash becomes the newline; the cursor stays where it was.
    text, cursor = ctx.text, ctx.cursor
    return TextValue(text=text[: cursor - 1] + "\n" + text[cursor:], cursor_position=cursor)


def _match_newline(key: KeyEvent, ctx: EditContext) -> bool:
    if _ctrl_letter(key, "j"):
        return True
    if not _is_enter(key):
        return False
    shift_enter = key.shift or key.sequence == "\n"
    option_enter = is_alt_modifier(key) or _has_escape_prefix(key)
    ctrl_enter = key.ctrl and not key.meta and not key.option
    return shift_enter or option_enter or ctrl_enter


def _apply_newline(key: KeyEvent, ctx: EditContext) -> TextValue:
    return insert_at(ctx.value, ctx.cursor, "\n")


def _match_submit(key: KeyEvent, ctx: EditContext) -> bool:
    return (
        _is_enter(key)
        and not key.shift
        and _unmodified(key)
        and not is_alt_modifier(key)
        and not _has_escape_prefix(key)
        and key.sequence == "\r"
        and not _backslash_before_cursor(ctx)
    )


def _unchanged(key: KeyEvent, ctx: EditContext) -> TextValue:
    return ctx.value


# ---------------------------------------------------------------------------
# Deletion family
# ---------------------------------------------------------------------------


def _backspace(ctx: EditContext) -> TextValue:
    if ctx.cursor == 0:
        return ctx.value
    return delete_range(ctx.value, ctx.cursor - 1, ctx.cursor)


def _forward_delete(ctx: EditContext) -> TextValue:
    if ctx.cursor >= len(ctx.text):
        return ctx.value
    return delete_range(ctx.value, ctx.cursor, ctx.cursor + 1)


def _apply_kill_visual_line(key: KeyEvent, ctx: EditContext) -> TextValue:
    start, _ = visual_line_bounds(ctx.text, ctx.line_starts, ctx.cursor)
    if ctx.cursor > start:
        return delete_range(ctx.value, start, ctx.cursor)
    return _backspace(ctx)


def _match_delete_word_backward(key: KeyEvent, ctx: EditContext) -> bool:
    return (key.name == "backspace" and is_alt_modifier(key)) or (
        key.ctrl and _name(key) == "w"
    )


def _apply_delete_word_backward(key: KeyEvent, ctx: EditContext) -> TextValue:
    return delete_range(ctx.value, prev_word_boundary(ctx.text, ctx.cursor), ctx.cursor)


def _match_delete_to_line_start(key: KeyEvent, ctx: EditContext) -> bool:
    return key.name == "delete" and key.meta and not is_alt_modifier(key)


def _apply_delete_to_line_start(key: KeyEvent, ctx: EditContext) -> TextValue:
    text, cursor = ctx.text, ctx.cursor
    if cursor == 0:
        return ctx.value
    start = line_start(text, cursor)
    if cursor == start and text[cursor - 1] == "\n":
        # Already at the start of a line: join it with the previous one
        return delete_range(ctx.value, cursor - 1, cursor)
    return delete_range(ctx.value, start, cursor)


def _match_delete_word_forward(key: KeyEvent, ctx: EditContext) -> bool:
    return key.name == "delete" and is_alt_modifier(key)


def _apply_delete_word_forward(key: KeyEvent, ctx: EditContext) -> TextValue:
    return delete_range(ctx.value, ctx.cursor, next_word_boundary(ctx.text, ctx.cursor))


def _apply_delete_to_line_end(key: KeyEvent, ctx: EditContext) -> TextValue:
    return delete_range(ctx.value, ctx.cursor, line_end(ctx.text, ctx.cursor))


# ---------------------------------------------------------------------------
# Navigation family
# ---------------------------------------------------------------------------


def _move_to(pos_fn: Callable[[EditContext], int]) -> Callable[[KeyEvent, EditContext], TextValue]:
    def apply(key: KeyEvent, ctx: EditContext) -> TextValue:
        return move_cursor(ctx.value, pos_fn(ctx))

    return apply


def _match_line_start(key: KeyEvent, ctx: EditContext) -> bool:
    return (
        (key.meta and key.name == "left" and not is_alt_modifier(key))
        or _ctrl_letter(key, "a")
        or (key.name == "home" and not key.ctrl and not key.meta)
    )


def _match_line_end(key: KeyEvent, ctx: EditContext) -> bool:
    return (
        (key.meta and key.name == "right" and not is_alt_modifier(key))
        or _ctrl_letter(key, "e")
        or (key.name == "end" and not key.ctrl and not key.meta)
    )


def _vertical(direction: Literal["up", "down"]) -> Callable[[KeyEvent, EditContext], TextValue]:
    def apply(key: KeyEvent, ctx: EditContext) -> TextValue:
        column = ctx.sticky.resolve(ctx.text, ctx.cursor, ctx.line_starts)
        target = vertical_move(
            ctx.text,
            ctx.cursor,
            ctx.line_starts,
            ctx.cursor_on_char,
            direction,
            column,
        )
        return move_cursor(ctx.value, target)

    return apply


# ---------------------------------------------------------------------------
# Character input
# ---------------------------------------------------------------------------


def _is_unhandled_tab(key: KeyEvent) -> bool:
    return key.name == "tab" and bool(key.sequence) and not key.shift and _unmodified(key)


def _match_insert_text(key: KeyEvent, ctx: EditContext) -> bool:
    if _is_unhandled_tab(key):
        return False
    return (
        bool(key.sequence)
        and _unmodified(key)
        and CONTROL_CHAR_RE.search(key.sequence) is None
        and _is_printable_key(key)
    )


def _apply_insert_text(key: KeyEvent, ctx: EditContext) -> TextValue:
    return insert_at(ctx.value, ctx.cursor, key.sequence)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

RULES: tuple[KeyRule, ...] = (
    # Enter family
    KeyRule("backslashNewLine", "insert-newline", _match_backslash_enter, _apply_backslash_enter),
    KeyRule("newLine", "insert-newline", _match_newline, _apply_newline),
    KeyRule("submit", "submit", _match_submit, _unchanged),
    # Deletion
    KeyRule(
        "deleteToVisualLineStart",
        "delete",
        lambda key, ctx: _ctrl_letter(key, "u"),
        _apply_kill_visual_line,
    ),
    KeyRule("deleteWordBackward", "delete", _match_delete_word_backward, _apply_delete_word_backward),
    KeyRule("deleteToLineStart", "delete", _match_delete_to_line_start, _apply_delete_to_line_start),
    KeyRule("deleteWordForward", "delete", _match_delete_word_forward, _apply_delete_word_forward),
    KeyRule(
        "deleteToLineEnd",
        "delete",
        lambda key, ctx: _ctrl_letter(key, "k"),
        _apply_delete_to_line_end,
    ),
    KeyRule(
        "deleteCharBackward",
        "delete",
        lambda key, ctx: _ctrl_letter(key, "h"),
        lambda key, ctx: _backspace(ctx),
    ),
    KeyRule(
        "deleteCharForward",
        "delete",
        lambda key, ctx: _ctrl_letter(key, "d"),
        lambda key, ctx: _forward_delete(ctx),
    ),
    KeyRule(
        "deleteCharBackward",
        "delete",
        lambda key, ctx: key.name == "backspace" and _unmodified(key),
        lambda key, ctx: _backspace(ctx),
    ),
    KeyRule(
        "deleteCharForward",
        "delete",
        lambda key, ctx: key.name == "delete" and _unmodified(key),
        lambda key, ctx: _forward_delete(ctx),
    ),
    # Cursor movement
    KeyRule(
        "cursorWordLeft",
        "navigate",
        lambda key, ctx: is_alt_modifier(key) and (key.name == "left" or _name(key) == "b"),
        _move_to(lambda ctx: prev_word_boundary(ctx.text, ctx.cursor)),
    ),
    KeyRule(
        "cursorWordRight",
        "navigate",
        lambda key, ctx: is_alt_modifier(key) and (key.name == "right" or _name(key) == "f"),
        _move_to(lambda ctx: next_word_boundary(ctx.text, ctx.cursor)),
    ),
    KeyRule(
        "cursorLineStart",
        "navigate",
        _match_line_start,
        _move_to(lambda ctx: visual_line_bounds(ctx.text, ctx.line_starts, ctx.cursor)[0]),
    ),
    KeyRule(
        "cursorLineEnd",
        "navigate",
        _match_line_end,
        _move_to(lambda ctx: visual_line_bounds(ctx.text, ctx.line_starts, ctx.cursor)[1]),
    ),
    KeyRule(
        "cursorBufferStart",
        "navigate",
        lambda key, ctx: (key.meta and key.name == "up") or (key.ctrl and key.name == "home"),
        _move_to(lambda ctx: 0),
    ),
    KeyRule(
        "cursorBufferEnd",
        "navigate",
        lambda key, ctx: (key.meta and key.name == "down") or (key.ctrl and key.name == "end"),
        _move_to(lambda ctx: len(ctx.text)),
    ),
    KeyRule(
        "cursorLeft",
        "navigate",
        lambda key, ctx: _ctrl_letter(key, "b"),
        _move_to(lambda ctx: ctx.cursor - 1),
    ),
    KeyRule(
        "cursorRight",
        "navigate",
        lambda key, ctx: _ctrl_letter(key, "f"),
        _move_to(lambda ctx: ctx.cursor + 1),
    ),
    KeyRule(
        "cursorLeft",
        "navigate",
        lambda key, ctx: key.name == "left" and _unmodified(key),
        _move_to(lambda ctx: ctx.cursor - 1),
    ),
    KeyRule(
        "cursorRight",
        "navigate",
        lambda key, ctx: key.name == "right" and _unmodified(key),
        _move_to(lambda ctx: ctx.cursor + 1),
    ),
    KeyRule(
        "cursorUp",
        "navigate",
        lambda key, ctx: key.name == "up" and _unmodified(key),
        _vertical("up"),
    ),
    KeyRule(
        "cursorDown",
        "navigate",
        lambda key, ctx: key.name == "down" and _unmodified(key),
        _vertical("down"),
    ),
    # Text input
    KeyRule("insertText", "insert-character", _match_insert_text, _apply_insert_text),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def classify(key: KeyEvent, ctx: EditContext) -> KeyRule | None:
    """First rule in :data:`RULES` matching *key*, or ``None``."""
    for rule in RULES:
        if rule.matches(key, ctx):
            return rule
    return None


def interpret(key: KeyEvent, ctx: EditContext) -> Intent | None:
    """Classify *key* and compute the value it proposes.

    Returns ``None`` for keys no rule handles; those are left to whatever
    default handling the host has.
    """
    rule = classify(key, ctx)
    if rule is None:
        return None
    logger.debug("key %r (%r) -> %s", key.name, key.sequence, rule.action)
    return Intent(action=rule.action, kind=rule.kind, value=rule.apply(key, ctx))
