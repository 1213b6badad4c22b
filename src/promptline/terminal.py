"""Raw-mode terminal I/O for running a prompt on the controlling tty.

``ProcessTerminal`` puts stdin in raw mode, turns on bracketed paste, SGR
mouse reporting and (when the terminal answers the query) the kitty keyboard
protocol, and feeds stdin through a :class:`StdinBuffer` from an asyncio
reader. Everything is restored by :meth:`ProcessTerminal.stop`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import signal
import sys
import termios
import tty
from typing import Callable, Protocol, runtime_checkable

from promptline.stdin_buffer import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    StdinBuffer,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
_BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

_MOUSE_ENABLE = "\x1b[?1000h\x1b[?1006h"
_MOUSE_DISABLE = "\x1b[?1006l\x1b[?1000l"

_KITTY_QUERY = "\x1b[?u"
_KITTY_ENABLE = "\x1b[>1u"
_KITTY_DISABLE = "\x1b[<u"
_KITTY_RESPONSE_RE = re.compile(r"^\x1b\[\?(\d+)u$")

_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Terminal(Protocol):
    """What a prompt host needs from a terminal."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by ``sys.stdin``/``sys.stdout``.

    Input reaches ``on_input`` one complete sequence at a time. Pastes are
    re-wrapped in bracketed paste markers so the consumer sees them as a
    single chunk.
    """

    def __init__(self, *, mouse: bool = True) -> None:
        self._mouse = mouse
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._kitty_protocol_active = False
        self._stdin_buffer: StdinBuffer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Enter raw mode and start reading stdin on the running loop."""
        self._input_handler = on_input
        self._resize_handler = on_resize

        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        self._raw_write(_BRACKETED_PASTE_ENABLE)
        if self._mouse:
            self._raw_write(_MOUSE_ENABLE)

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._stdin_buffer = StdinBuffer(timeout=0.01)
        self._stdin_buffer.on_data = self._on_buffer_data
        self._stdin_buffer.on_paste = self._on_buffer_paste

        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(fd, self._on_stdin_readable)

        self._raw_write(_KITTY_QUERY)
        logger.debug("terminal started (%dx%d)", self.columns, self.rows)

    def stop(self) -> None:
        """Restore the terminal to the state :meth:`start` found it in."""
        self._raw_write(_BRACKETED_PASTE_DISABLE)
        if self._mouse:
            self._raw_write(_MOUSE_DISABLE)

        if self._kitty_protocol_active:
            self._raw_write(_KITTY_DISABLE)
            self._kitty_protocol_active = False

        if self._stdin_buffer is not None:
            self._stdin_buffer.clear()
            self._stdin_buffer = None

        fd = sys.stdin.fileno()
        if self._loop is not None:
            self._loop.remove_reader(fd)
            self._loop = None

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        if self._original_termios is not None:
            termios.tcsetattr(fd, termios.TCSADRAIN, self._original_termios)
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None
        logger.debug("terminal restored")

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        self._raw_write(data)

    # -- cursor --------------------------------------------------------------

    def hide_cursor(self) -> None:
        self._raw_write(_HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._raw_write(_SHOW_CURSOR)

    # -- private: input -----------------------------------------------------

    def _on_stdin_readable(self) -> None:
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError:
            logger.exception("stdin read failed")
            return
        if not raw or self._stdin_buffer is None:
            return
        self._stdin_buffer.process(raw.decode("utf-8", errors="replace"))

    def _on_buffer_data(self, data: str) -> None:
        if _KITTY_RESPONSE_RE.match(data):
            # Terminal answered the query: flags mode 1 disambiguates keys
            self._kitty_protocol_active = True
            self._raw_write(_KITTY_ENABLE)
            logger.debug("kitty keyboard protocol enabled")
            return
        if self._input_handler is not None:
            self._input_handler(data)

    def _on_buffer_paste(self, data: str) -> None:
        if self._input_handler is not None:
            self._input_handler(BRACKETED_PASTE_START + data + BRACKETED_PASTE_END)

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        if self._resize_handler is not None:
            self._resize_handler()

    def _raw_write(self, data: str) -> None:
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError:
            pass
