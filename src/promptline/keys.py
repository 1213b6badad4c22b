"""Key and mouse events, and decoding of raw terminal input into them.

Understands legacy VT sequences, xterm modified sequences
(``CSI 1;<mod> X`` and ``CSI <n>;<mod> ~``), modifyOtherKeys
(``CSI 27;<mod>;<key> ~``), the kitty keyboard protocol (``CSI <cp>;<mod> u``)
and SGR mouse reports. Modifier parameters are decoded as
shift=1, alt=2, ctrl=4, super/meta=8 (kitty meta=32).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Callable, Literal

ESC = "\x1b"

# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyEvent:
    """One key press.

    ``option`` is the Alt/Option key; ``meta`` is Cmd/Super. The optional
    ``on_prevent_default`` hook lets whoever handles the event tell the
    producer to skip its default behavior without mutating the event.
    """

    name: str = ""
    sequence: str = ""
    ctrl: bool = False
    meta: bool = False
    option: bool = False
    shift: bool = False
    on_prevent_default: Callable[[], None] | None = field(
        default=None, compare=False, repr=False
    )

    def prevent_default(self) -> None:
        if self.on_prevent_default is not None:
            self.on_prevent_default()


MouseAction = Literal["down", "up", "drag", "scroll"]


@dataclass(frozen=True)
class MouseEvent:
    """Pointer report in 0-based terminal cells."""

    x: int
    y: int
    button: int = 0
    action: MouseAction = "down"


# ---------------------------------------------------------------------------
# Sequence tables
# ---------------------------------------------------------------------------

LOCK_MASK = 64 + 128

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[4~": "end",
    "\x1b[5~": "pageup",
    "\x1b[6~": "pagedown",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
}

_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_TILDE_KEYS: dict[int, str] = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageup",
    6: "pagedown",
    7: "home",
    8: "end",
    13: "return",
}

_CODEPOINT_KEYS: dict[int, str] = {
    8: "backspace",
    9: "tab",
    13: "return",
    27: "escape",
    32: "space",
    127: "backspace",
    57414: "return",  # keypad enter
}

_CTRL_SYMBOLS: dict[str, str] = {
    "\x1c": "\\",
    "\x1d": "]",
    "\x1e": "^",
    "\x1f": "_",
}

_MODIFIED_LETTER_RE = re.compile(r"^\x1b\[1;(\d+)(?::\d+)?([ABCDHF])$")
_MODIFIED_TILDE_RE = re.compile(r"^\x1b\[(\d+);(\d+)(?::\d+)?~$")
_MODIFY_OTHER_KEYS_RE = re.compile(r"^\x1b\[27;(\d+);(\d+)~$")
_KITTY_CSI_U_RE = re.compile(
    r"^\x1b\[(\d+)(?::(\d*))?(?::\d*)?(?:;(\d+)(?::(\d+))?)?(?:;[\d:]*)?u$"
)
_SGR_MOUSE_RE = re.compile(r"^\x1b\[<(\d+);(\d+);(\d+)([Mm])$")

_KITTY_RELEASE = 3


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _modifier_flags(raw: int) -> dict[str, bool]:
    mod = (raw - 1) & ~LOCK_MASK
    return {
        "shift": bool(mod & 1),
        "option": bool(mod & 2),
        "ctrl": bool(mod & 4),
        "meta": bool(mod & (8 | 32)),
    }


def _from_codepoint(
    data: str, codepoint: int, modifier: int, shifted: int | None = None
) -> KeyEvent | None:
    flags = _modifier_flags(modifier)
    name = _CODEPOINT_KEYS.get(codepoint)
    if name is not None:
        return KeyEvent(name=name, sequence=data, **flags)

    try:
        ch = chr(codepoint)
    except (ValueError, OverflowError):
        return None
    if not ch.isprintable():
        return None

    sequence = data
    if not (flags["ctrl"] or flags["option"] or flags["meta"]):
        # Plain or shifted printable: carry the text itself
        sequence = chr(shifted) if flags["shift"] and shifted else ch
        if flags["shift"] and not shifted:
            sequence = ch.upper()
    return KeyEvent(name=ch.lower(), sequence=sequence, **flags)


def _parse_single(ch: str) -> KeyEvent:
    if ch == "\r":
        return KeyEvent(name="return", sequence=ch)
    if ch == "\n":
        # Line feed: Ctrl-J, or Shift-Enter on terminals that remap it
        return KeyEvent(name="enter", sequence=ch)
    if ch == "\t":
        return KeyEvent(name="tab", sequence=ch)
    if ch == "\x7f":
        return KeyEvent(name="backspace", sequence=ch)
    if ch == ESC:
        return KeyEvent(name="escape", sequence=ch)
    if ch == " ":
        return KeyEvent(name="space", sequence=ch)
    if ch == "\x00":
        return KeyEvent(name="space", sequence=ch, ctrl=True)

    code = ord(ch)
    if 1 <= code <= 26:
        return KeyEvent(name=chr(code + ord("a") - 1), sequence=ch, ctrl=True)
    if ch in _CTRL_SYMBOLS:
        return KeyEvent(name=_CTRL_SYMBOLS[ch], sequence=ch, ctrl=True)

    if ch.isalpha():
        return KeyEvent(name=ch.lower(), sequence=ch, shift=ch.isupper())
    return KeyEvent(name=ch, sequence=ch)


def parse_key_event(data: str) -> KeyEvent | None:  # noqa: C901
    """Decode one complete chunk of terminal input, or ``None`` if unknown.

    A chunk of several plain characters (a fast burst or an IME commit) is
    returned as a nameless event whose sequence is the whole chunk.
    """
    if not data:
        return None

    if len(data) == 1:
        return _parse_single(data)

    if data in LEGACY_KEY_SEQUENCES:
        return KeyEvent(name=LEGACY_KEY_SEQUENCES[data], sequence=data)

    if data == "\x1b[Z":
        return KeyEvent(name="tab", sequence=data, shift=True)

    m = _MODIFIED_LETTER_RE.match(data)
    if m:
        return KeyEvent(
            name=_LETTER_KEYS[m.group(2)], sequence=data, **_modifier_flags(int(m.group(1)))
        )

    m = _MODIFY_OTHER_KEYS_RE.match(data)
    if m:
        return _from_codepoint(data, int(m.group(2)), int(m.group(1)))

    m = _MODIFIED_TILDE_RE.match(data)
    if m:
        name = _TILDE_KEYS.get(int(m.group(1)))
        if name is None:
            return None
        return KeyEvent(name=name, sequence=data, **_modifier_flags(int(m.group(2))))

    m = _KITTY_CSI_U_RE.match(data)
    if m:
        event_type = int(m.group(4)) if m.group(4) else 1
        if event_type == _KITTY_RELEASE:
            return None
        shifted = int(m.group(2)) if m.group(2) else None
        modifier = int(m.group(3)) if m.group(3) else 1
        return _from_codepoint(data, int(m.group(1)), modifier, shifted)

    if data[0] == ESC:
        if len(data) == 2 and data[1] != "[":
            # ESC prefix is how terminals send Alt+key
            inner = _parse_single(data[1])
            return replace(inner, sequence=data, option=True)
        return None

    if any(ord(ch) < 32 or ord(ch) == 127 for ch in data):
        return None
    return KeyEvent(name="", sequence=data)


def parse_mouse_event(data: str) -> MouseEvent | None:
    """Decode an SGR (``CSI < b;x;y M/m``) mouse report."""
    m = _SGR_MOUSE_RE.match(data)
    if not m:
        return None

    code = int(m.group(1))
    x = max(0, int(m.group(2)) - 1)
    y = max(0, int(m.group(3)) - 1)
    released = m.group(4) == "m"

    action: MouseAction
    if code & 64:
        action = "scroll"
    elif code & 32:
        action = "drag"
    elif released:
        action = "up"
    else:
        action = "down"

    return MouseEvent(x=x, y=y, button=code & 3, action=action)
