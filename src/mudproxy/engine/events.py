# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Side-channel notifications for a presentation layer.

Events describe what changed; they never drive decisions. Subscribers are
called synchronously on the session task and must not block.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mudproxy.logging import get_logger

logger = get_logger(__name__)

PLAYER_CHANGED = "player_changed"
PARTY_CHANGED = "party_changed"
BUFFS_CHANGED = "buffs_changed"
AILMENTS_CHANGED = "ailments_changed"
COMBAT_CHANGED = "combat_changed"
TICK = "tick"
LOGIN_COMPLETE = "login_complete"
PLAYER_DEATH = "player_death"
COMMAND_SENT = "command_sent"
LOG = "log"


class EngineEvent(BaseModel):
    """Structured engine event."""

    name: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


EventHandler = Callable[[EngineEvent], None]


class EventBus:
    """Fan-out of engine events to subscribers."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def emit(self, name: str, /, **data: Any) -> None:
        if not self._handlers:
            return
        event = EngineEvent(name=name, data=data)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed", event_name=name)

    def log(self, message: str, **data: Any) -> None:
        """Emit a human-readable log line for the presentation layer."""
        self.emit(LOG, message=message, **data)
