# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Telnet transport for the upstream game server."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog

from mudproxy.constants import COMMAND_EOL, CP437, DEFAULT_CONNECT_TIMEOUT_S
from mudproxy.errors import TransportError
from mudproxy.transport.base import ConnectionTransport
from mudproxy.transport.framing import TelnetFramer, escape_iac

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

log = structlog.get_logger()


class TelnetTransport(ConnectionTransport):
    """Telnet connection that refuses all options and yields clean game bytes."""

    def __init__(self, reader: StreamReader | None = None, writer: StreamWriter | None = None) -> None:
        """Initialize telnet transport.

        Args:
            reader: Pre-opened server stream, used instead of ``connect``
            writer: Pre-opened stream paired with ``reader``
        """
        self._reader = reader
        self._writer = writer
        self._framer = TelnetFramer()

    async def connect(
        self,
        host: str,
        port: int,
        timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        **kwargs: Any,
    ) -> None:
        """Open a TCP connection to the game server.

        Args:
            host: Remote hostname or IP address
            port: Remote port number
            timeout: Connection timeout in seconds
            **kwargs: Unused, for compatibility

        Raises:
            TransportError: If connection fails or times out
        """
        if self._writer:
            await self.disconnect()

        try:
            self._reader, self._writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
        except (OSError, TimeoutError) as e:
            raise TransportError(f"Failed to connect to {host}:{port}") from e

        log.info("telnet_connected", host=host, port=port)

    async def disconnect(self) -> None:
        """Close connection and cleanup resources."""
        if not self._writer:
            return

        try:
            self._writer.close()
            await self._writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError, RuntimeError):
            pass
        finally:
            self._writer = None
            self._reader = None
            self._framer.reset()

        log.info("telnet_disconnected")

    async def send(self, data: bytes) -> None:
        """Send raw bytes with IAC escaping per RFC 854.

        Args:
            data: Raw bytes to send

        Raises:
            TransportError: If not connected or send fails
        """
        await self._write(escape_iac(data))

    async def send_command(self, command: str) -> None:
        """Send one game command terminated with CRLF in the game's code page."""
        await self.send((command + COMMAND_EOL).encode(CP437, errors="replace"))

    async def receive(self, max_bytes: int, timeout_ms: int) -> bytes:
        """Receive game bytes with telnet commands stripped.

        Negotiation replies are written before the clean bytes are returned.

        Args:
            max_bytes: Maximum bytes to read
            timeout_ms: Read timeout in milliseconds

        Returns:
            Clean bytes (may be empty on timeout or when a read held only commands)

        Raises:
            TransportError: If not connected or connection lost
        """
        if not self._reader:
            raise TransportError("Not connected")

        try:
            chunk = await asyncio.wait_for(self._reader.read(max_bytes), timeout=timeout_ms / 1000)
        except TimeoutError:
            return b""
        except (ConnectionResetError, BrokenPipeError) as e:
            await self.disconnect()
            raise TransportError("Connection lost") from e

        if not chunk:
            await self.disconnect()
            raise TransportError("Connection closed by remote")

        frame = self._framer.feed(chunk)
        for reply in frame.replies:
            log.debug("telnet_refused_option", reply=reply.hex())
            with contextlib.suppress(TransportError):
                await self._write(reply)
        return frame.text

    def is_connected(self) -> bool:
        """Check if connection is active."""
        return self._writer is not None and not self._writer.is_closing()

    async def _write(self, data: bytes) -> None:
        if not self._writer:
            raise TransportError("Not connected")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionResetError, BrokenPipeError) as e:
            await self.disconnect()
            raise TransportError("Send failed") from e
