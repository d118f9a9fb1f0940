# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Listening side of the proxy: one upstream session per game client."""

from __future__ import annotations

import asyncio

from mudproxy.engine.rules import ProfileProvider
from mudproxy.errors import MudProxyError, TransportError
from mudproxy.logging import get_logger
from mudproxy.proxy.session import ClientLink, ProxySession
from mudproxy.settings import Settings
from mudproxy.transport.telnet import TelnetTransport

logger = get_logger(__name__)


class ProxyServer:
    """Accept game clients and relay each one to the configured server."""

    def __init__(self, settings: Settings, profile_provider: ProfileProvider) -> None:
        self.settings = settings
        self._profile_provider = profile_provider
        self._server: asyncio.Server | None = None
        self.sessions: set[ProxySession] = set()

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await asyncio.start_server(
            self._on_client, host=self.settings.listen_host, port=self.settings.listen_port
        )
        logger.info(
            "proxy_listening",
            host=self.settings.listen_host,
            port=self.port,
            upstream=f"{self.settings.upstream_host}:{self.settings.upstream_port}",
        )

    @property
    def port(self) -> int:
        """Bound listening port, useful when configured as 0."""
        return self._listening().sockets[0].getsockname()[1]

    def _listening(self) -> asyncio.Server:
        if self._server is None:
            raise MudProxyError("Proxy server is not listening")
        return self._server

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        for session in list(self.sessions):
            session.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("proxy_stopped")

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await self._listening().serve_forever()
        finally:
            await self.stop()

    async def _on_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        logger.info("client_connected", peer=str(peer))
        client = ClientLink(reader, writer)

        upstream = TelnetTransport()
        try:
            await upstream.connect(self.settings.upstream_host, self.settings.upstream_port)
        except TransportError as e:
            logger.error("upstream_connect_failed", peer=str(peer), error=str(e))
            await client.write(f"Unable to reach {self.settings.upstream_host}:{self.settings.upstream_port}\r\n".encode())
            await client.close()
            return

        session = ProxySession(upstream, self._profile_provider, client=client)
        self.sessions.add(session)
        try:
            await session.run()
        finally:
            self.sessions.discard(session)
            logger.info("client_disconnected", peer=str(peer))
