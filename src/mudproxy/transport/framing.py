# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Telnet IAC framing.

The framer is a pure byte scanner: it never touches a socket. Callers feed it
whatever the network produced and get back the game text with telnet commands
removed plus the negotiation replies that must be written back before the text
is handled.

Every option is refused. ``WILL`` is answered with ``DONT`` and ``DO`` with
``WONT``; ``WONT``/``DONT`` are acknowledgements and get no reply. This is
enough for the legacy game servers the proxy talks to and is not a general
telnet option negotiator.

A sequence cut off by the end of a read (``IAC`` alone, ``IAC WILL`` without
its option byte, an unterminated ``IAC SB ...``) is held back and completed by
the next call to :meth:`TelnetFramer.feed`. A subnegotiation that grows past
``MAX_SUBNEGOTIATION_BYTES`` without ``IAC SE`` is abandoned and its bytes are
scanned as ordinary input.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mudproxy.logging import get_logger

logger = get_logger(__name__)

# Telnet protocol constants
IAC = 255  # Interpret As Command
DONT = 254
DO = 253
WONT = 252
WILL = 251
SB = 250  # Subnegotiation Begin
SE = 240  # Subnegotiation End

NEGOTIATION_COMMANDS = (WILL, WONT, DO, DONT)

# Longest subnegotiation held back while waiting for IAC SE
MAX_SUBNEGOTIATION_BYTES = 4096


@dataclass
class FrameResult:
    """Output of one :meth:`TelnetFramer.feed` call."""

    text: bytes = b""
    replies: list[bytes] = field(default_factory=list)


def refusal_for(cmd: int, opt: int) -> bytes | None:
    """Reply that refuses a negotiation request, or None when no reply is due."""
    if cmd == WILL:
        return bytes([IAC, DONT, opt])
    if cmd == DO:
        return bytes([IAC, WONT, opt])
    return None


def escape_iac(data: bytes) -> bytes:
    """Double IAC bytes per RFC 854 so data is not read as commands."""
    return data.replace(b"\xff", b"\xff\xff")


class TelnetFramer:
    """Incremental telnet command stripper that refuses every option."""

    def __init__(self) -> None:
        self._pending = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes of an incomplete sequence waiting for the next read."""
        return bytes(self._pending)

    def reset(self) -> None:
        self._pending.clear()

    def feed(self, data: bytes) -> FrameResult:
        """Strip telnet commands from ``data``.

        Args:
            data: Raw bytes as read from the network

        Returns:
            FrameResult with clean text and negotiation replies in arrival order
        """
        buf = bytes(self._pending) + data
        self._pending.clear()

        result = FrameResult()
        text = bytearray()
        i = 0
        n = len(buf)
        while i < n:
            byte = buf[i]
            if byte != IAC:
                text.append(byte)
                i += 1
                continue

            if i + 1 >= n:
                self._pending.extend(buf[i:])
                break

            cmd = buf[i + 1]
            if cmd == IAC:
                # Escaped IAC (0xFF 0xFF) -> single 0xFF
                text.append(IAC)
                i += 2
                continue

            if cmd in NEGOTIATION_COMMANDS:
                if i + 2 >= n:
                    self._pending.extend(buf[i:])
                    break
                reply = refusal_for(cmd, buf[i + 2])
                if reply is not None:
                    result.replies.append(reply)
                i += 3
                continue

            if cmd == SB:
                end = _find_subnegotiation_end(buf, i + 2)
                if end == -1:
                    if n - i > MAX_SUBNEGOTIATION_BYTES:
                        # Never terminated: skip IAC SB and read the rest as text
                        logger.warning("subnegotiation_overflow", held_bytes=n - i, option=buf[i + 2])
                        i += 2
                        continue
                    self._pending.extend(buf[i:])
                    break
                i = end + 2
                continue

            # NOP, GA, AYT and friends carry no payload
            i += 2

        result.text = bytes(text)
        return result


def _find_subnegotiation_end(buf: bytes, start: int) -> int:
    """Index of the IAC that starts ``IAC SE``, skipping escaped IACs."""
    j = start
    n = len(buf)
    while j < n - 1:
        if buf[j] == IAC:
            if buf[j + 1] == SE:
                return j
            if buf[j + 1] == IAC:
                j += 2
                continue
        j += 1
    return -1
