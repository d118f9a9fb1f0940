# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""One proxied game connection.

A session is an actor: reader tasks and timers only post messages to its
inbox, and a single task applies them to the engine. Every decision therefore
sees a consistent snapshot of HP, mana, party, buffs and ailments without any
locking.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mudproxy.constants import CP437, DEFAULT_MAX_BYTES, DEFAULT_READ_TIMEOUT_MS
from mudproxy.engine import events as ev
from mudproxy.engine.events import EventBus
from mudproxy.engine.lifecycle import BuffLifecycle
from mudproxy.engine.party import PartyAutomation
from mudproxy.engine.router import MessageRouter, RouteResult
from mudproxy.engine.rules import ProfileProvider
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator
from mudproxy.logging import get_logger
from mudproxy.transport.framing import TelnetFramer

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

    from mudproxy.transport.telnet import TelnetTransport

logger = get_logger(__name__)

STAT_COMMAND = "stat"

# Inbox message kinds
SERVER_TEXT = "server_text"
TIMER = "timer"
TICK_RECAST = "tick_recast"
SEND = "send"
CLOSE = "close"

# Timer names
TICK_DISPLAY = "tick_display"
BUFF_SWEEP = "buff_sweep"
RECAST_CHECK = "recast_check"
PARTY_CHECK = "party_check"


@dataclass
class _Message:
    kind: str
    payload: Any = None


class ClientLink:
    """Downstream game client connection.

    The client's own telnet negotiation is refused locally; only its typed
    input is forwarded upstream.
    """

    def __init__(self, reader: StreamReader, writer: StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._framer = TelnetFramer()

    async def read(self, max_bytes: int = DEFAULT_MAX_BYTES) -> bytes | None:
        """Next chunk of client input, or None once the client is gone."""
        try:
            chunk = await self._reader.read(max_bytes)
        except (ConnectionResetError, BrokenPipeError):
            return None
        if not chunk:
            return None
        frame = self._framer.feed(chunk)
        for reply in frame.replies:
            await self.write(reply)
        return frame.text

    async def write(self, data: bytes) -> bool:
        if self._writer.is_closing():
            return False
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionResetError, BrokenPipeError):
            return False
        return True

    async def close(self) -> None:
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError, RuntimeError):
            pass


class ProxySession:
    """Engine plus relay tasks for one upstream connection."""

    def __init__(
        self,
        upstream: TelnetTransport,
        profile_provider: ProfileProvider,
        *,
        client: ClientLink | None = None,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
        read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self.upstream = upstream
        self.client = client
        self.events = events or EventBus()
        self._profile_provider = profile_provider
        self._clock = clock
        self._read_timeout_ms = read_timeout_ms
        self._max_bytes = max_bytes

        self.state = StateTracker(self.events, clock=clock)
        self.tick = TickEstimator(lambda: profile_provider().timing, clock=clock)
        self.lifecycle = BuffLifecycle(
            self.state,
            self.tick,
            profile_provider,
            send_command=self.send_command,
            events=self.events,
            clock=clock,
        )
        self.party = PartyAutomation(
            self.state,
            profile_provider,
            send_command=self.send_command,
            is_paused=lambda: self.lifecycle.commands_paused,
            clock=clock,
        )
        self.router = MessageRouter(self.state, self.tick, self.lifecycle, self.party, profile_provider)

        self._inbox: asyncio.Queue[_Message] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Command sink
    # ------------------------------------------------------------------

    def send_command(self, command: str) -> None:
        """Queue an automation command for the server. Fire-and-forget."""
        if self._closed:
            logger.debug("command_dropped_closed", command=command)
            return
        self._inbox.put_nowait(_Message(SEND, command))

    async def _write_command(self, command: str) -> None:
        try:
            await self.upstream.send_command(command)
        except ConnectionError as e:
            logger.warning("command_send_failed", command=command, error=str(e))
            self.close()
            return
        logger.debug("command_sent", command=command)
        self.events.emit(ev.COMMAND_SENT, command=command)

    # ------------------------------------------------------------------
    # Message handlers (run on the actor task only)
    # ------------------------------------------------------------------

    def handle_server_text(self, text: str) -> RouteResult:
        result = self.router.feed(text)
        if result.login_completed:
            self._post_later(self._profile_provider().timing.login_stat_delay_ms, _Message(SEND, STAT_COMMAND))
        if result.ticks:
            self.party.on_tick()
            # Let the round's messages land before casting into it; the
            # settle message is the only recast for a tick
            self._post_later(self._profile_provider().timing.post_tick_settle_ms, _Message(TICK_RECAST))
        else:
            self.lifecycle.check_out_of_combat(self.upstream.is_connected())
        return result

    def handle_timer(self, name: str) -> None:
        connected = self.upstream.is_connected()
        if name == TICK_DISPLAY:
            self.lifecycle.poll_tick_rollover()
        elif name == BUFF_SWEEP:
            self.state.sweep_expired_buffs()
        elif name == RECAST_CHECK:
            self.lifecycle.check_out_of_combat(connected)
        elif name == PARTY_CHECK:
            if connected and not self.lifecycle.commands_paused:
                self.party.check_par()
                self.party.check_health_requests()

    async def _dispatch(self, message: _Message) -> None:
        try:
            if message.kind == SERVER_TEXT:
                self.handle_server_text(message.payload)
            elif message.kind == TIMER:
                self.handle_timer(message.payload)
            elif message.kind == TICK_RECAST:
                self.lifecycle.check_auto_recast()
            elif message.kind == SEND:
                await self._write_command(message.payload)
        except Exception:
            # Protocol and rule anomalies must not end the session
            logger.exception("session_message_failed", kind=message.kind)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _post(self, message: _Message) -> None:
        if not self._closed:
            self._inbox.put_nowait(message)

    def _post_later(self, delay_ms: int, message: _Message) -> None:
        asyncio.get_running_loop().call_later(delay_ms / 1000, self._post, message)

    async def _upstream_loop(self) -> None:
        while self.upstream.is_connected():
            try:
                data = await self.upstream.receive(self._max_bytes, self._read_timeout_ms)
            except ConnectionError as e:
                logger.info("upstream_closed", reason=str(e))
                break
            if not data:
                continue
            if self.client is not None and not await self.client.write(data):
                logger.info("client_write_failed")
                break
            self._post(_Message(SERVER_TEXT, data.decode(CP437, errors="replace")))
        self.close()

    async def _client_loop(self, client: ClientLink) -> None:
        while True:
            data = await client.read(self._max_bytes)
            if data is None:
                logger.info("client_closed")
                break
            if not data:
                continue
            try:
                await self.upstream.send(data)
            except ConnectionError as e:
                logger.info("upstream_send_failed", error=str(e))
                break
        self.close()

    async def _timer_loop(self, name: str, setting: str) -> None:
        """Post ``name`` every ``timing.<setting>`` ms, re-read each round."""
        while not self._closed:
            interval_ms = getattr(self._profile_provider().timing, setting)
            await asyncio.sleep(interval_ms / 1000)
            self._post(_Message(TIMER, name))

    def _start_tasks(self) -> None:
        self._tasks = [
            asyncio.create_task(self._upstream_loop()),
            asyncio.create_task(self._timer_loop(TICK_DISPLAY, "tick_display_interval_ms")),
            asyncio.create_task(self._timer_loop(BUFF_SWEEP, "buff_sweep_interval_ms")),
            asyncio.create_task(self._timer_loop(RECAST_CHECK, "recast_check_interval_ms")),
            asyncio.create_task(self._timer_loop(PARTY_CHECK, "party_check_interval_ms")),
        ]
        if self.client is not None:
            self._tasks.append(asyncio.create_task(self._client_loop(self.client)))

    async def run(self) -> None:
        """Process the session until either side disconnects or ``close`` is called."""
        logger.info("session_started")
        self._start_tasks()
        try:
            while True:
                message = await self._inbox.get()
                if message.kind == CLOSE:
                    break
                await self._dispatch(message)
        finally:
            await self._shutdown()

    def close(self) -> None:
        """Ask the actor to stop. Safe from any task, more than once."""
        if self._closed:
            return
        self._inbox.put_nowait(_Message(CLOSE))
        self._closed = True

    async def _shutdown(self) -> None:
        self._closed = True
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            if not task.done():
                task.cancel()
        for outcome in await asyncio.gather(*tasks, return_exceptions=True):
            if isinstance(outcome, Exception):
                logger.error("session_task_failed", error=repr(outcome))
        await self.upstream.disconnect()
        if self.client is not None:
            await self.client.close()
        self.lifecycle.restart_login()
        logger.info("session_stopped")
