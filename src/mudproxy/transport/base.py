# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Abstract base class for game server connections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ConnectionTransport(ABC):
    """Abstract base for the upstream game connection."""

    @abstractmethod
    async def connect(self, host: str, port: int, **kwargs: Any) -> None:
        """Open the connection to the game server.

        Args:
            host: Remote hostname or IP address
            port: Remote port number
            **kwargs: Protocol-specific connection options

        Raises:
            ConnectionError: If connection fails
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection. Safe to call more than once."""

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """Send raw bytes with protocol escaping applied.

        Raises:
            ConnectionError: If not connected or send fails
        """

    @abstractmethod
    async def receive(self, max_bytes: int, timeout_ms: int) -> bytes:
        """Receive clean game bytes.

        Args:
            max_bytes: Maximum bytes to read
            timeout_ms: Read timeout in milliseconds

        Returns:
            Bytes read from connection (empty on timeout)

        Raises:
            ConnectionError: If not connected or the peer closed the connection
        """

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if connection is active."""
