"""Reassembly of chunked stdin into complete key sequences and pastes.

Terminals deliver input in arbitrary chunks: an escape sequence can be split
across reads, and several keys can share one read. :class:`StdinBuffer`
accumulates the raw text and hands out one complete sequence at a time.
Bracketed pastes are delivered whole through a separate callback. A lone
ESC that is not followed by anything within a short timeout is flushed as
the Escape key.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, Literal

logger = logging.getLogger(__name__)

ESC = "\x1b"
BEL = "\x07"
ST = "\x1b\\"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

SequenceStatus = Literal["complete", "incomplete", "not-escape"]

_SGR_MOUSE_PAYLOAD_RE = re.compile(r"^<\d+;\d+;\d+[Mm]$")


def sequence_status(data: str) -> SequenceStatus:
    """Whether *data* is a complete escape sequence or needs more input."""
    if not data.startswith(ESC):
        return "not-escape"
    if len(data) == 1:
        return "incomplete"

    introducer = data[1]

    if introducer == "[":
        return _csi_status(data)
    if introducer == "O":
        # SS3: exactly one final character
        return "complete" if len(data) >= 3 else "incomplete"
    if introducer in ("]", "P", "_"):
        # OSC, DCS, APC: string terminated by ST (OSC also accepts BEL)
        if data.endswith(ST) or (introducer == "]" and data.endswith(BEL)):
            return "complete"
        return "incomplete"

    # ESC + one character: an Alt combination
    return "complete"


def _csi_status(data: str) -> SequenceStatus:
    if len(data) < 3:
        return "incomplete"

    payload = data[2:]
    if payload.startswith("M"):
        # X10 mouse: ESC [ M followed by three raw bytes
        return "complete" if len(payload) >= 4 else "incomplete"

    if not 0x40 <= ord(payload[-1]) <= 0x7E:
        return "incomplete"
    if payload.startswith("<") and not _SGR_MOUSE_PAYLOAD_RE.match(payload):
        return "incomplete"
    return "complete"


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences plus an unfinished remainder."""
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue

        end = pos + 1
        while True:
            candidate = buffer[pos:end]
            if sequence_status(candidate) != "incomplete":
                sequences.append(candidate)
                pos = end
                break
            if end >= len(buffer):
                return sequences, buffer[pos:]
            # A new ESC inside an unfinished CSI/SS3 starts a new sequence
            if buffer[end] == ESC and candidate[1:2] not in ("]", "P", "_"):
                sequences.append(candidate)
                pos = end
                break
            end += 1

    return sequences, ""


class StdinBuffer:
    """Accumulates raw stdin text and emits complete sequences.

    Set ``on_data`` to receive each key sequence and ``on_paste`` to receive
    bracketed paste contents.
    """

    def __init__(self, *, timeout: float = 0.01) -> None:
        self.on_data: Callable[[str], None] | None = None
        self.on_paste: Callable[[str], None] | None = None
        self._timeout = timeout
        self._buffer = ""
        self._paste: str | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> str:
        return self._buffer

    @property
    def in_paste(self) -> bool:
        return self._paste is not None

    def process(self, data: str) -> None:
        """Feed one chunk of stdin."""
        self._cancel_timeout()
        if not data:
            return

        if self._paste is not None:
            self._paste += data
            self._finish_paste()
            return

        self._buffer += data

        start = self._buffer.find(BRACKETED_PASTE_START)
        if start != -1:
            before = self._buffer[:start]
            self._paste = self._buffer[start + len(BRACKETED_PASTE_START) :]
            self._buffer = ""
            sequences, remainder = split_sequences(before)
            self._emit_all(sequences)
            if remainder:
                self._emit_all([remainder])
            self._finish_paste()
            return

        sequences, self._buffer = split_sequences(self._buffer)
        self._emit_all(sequences)

        if self._buffer:
            self._schedule_timeout()

    def flush(self) -> list[str]:
        """Drop and return whatever partial sequence is buffered."""
        self._cancel_timeout()
        if not self._buffer:
            return []
        flushed = [self._buffer]
        self._buffer = ""
        return flushed

    def clear(self) -> None:
        self._cancel_timeout()
        self._buffer = ""
        self._paste = None

    def _finish_paste(self) -> None:
        # A callback fired for keys ahead of the paste may have cleared us
        if self._paste is None:
            return
        end = self._paste.find(BRACKETED_PASTE_END)
        if end == -1:
            return

        content = self._paste[:end]
        rest = self._paste[end + len(BRACKETED_PASTE_END) :]
        self._paste = None

        logger.debug("bracketed paste of %d chars", len(content))
        if self.on_paste is not None:
            self.on_paste(content)

        if rest:
            self.process(rest)

    def _emit_all(self, sequences: list[str]) -> None:
        if self.on_data is None:
            return
        for sequence in sequences:
            self.on_data(sequence)

    def _schedule_timeout(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Nobody will ever call back: flush now
            self._emit_all(self.flush())
            return
        self._timeout_handle = loop.call_later(self._timeout, self._on_timeout)

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        self._emit_all(self.flush())

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
