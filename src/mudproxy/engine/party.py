# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Party upkeep commands: ``par`` refreshes and telepath health requests."""

from __future__ import annotations

import time
from collections.abc import Callable

from mudproxy.engine.rules import ProfileProvider
from mudproxy.engine.state import StateTracker
from mudproxy.logging import get_logger

logger = get_logger(__name__)

PAR_COMMAND = "par"


def health_request_command(name: str) -> str:
    return f"/{name} @health"


class PartyAutomation:
    """Keeps the roster fresh so heal and buff rules see current numbers."""

    def __init__(
        self,
        state: StateTracker,
        profile_provider: ProfileProvider,
        send_command: Callable[[str], None],
        is_paused: Callable[[], bool] = lambda: False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self._profile_provider = profile_provider
        self._send_command = send_command
        self._is_paused = is_paused
        self._clock = clock
        self.last_par_sent: float | None = None
        self.last_health_check: float | None = None

    def _elapsed(self, moment: float | None) -> float:
        return float("inf") if moment is None else self._clock() - moment

    def send_par(self) -> None:
        self.last_par_sent = self._clock()
        logger.debug("par_sent")
        self._send_command(PAR_COMMAND)

    def check_par(self) -> bool:
        """Periodic refresh while in a party."""
        automation = self._profile_provider().automation
        if not automation.par_auto_enabled or not self.state.in_party or self._is_paused():
            return False
        if self._elapsed(self.last_par_sent) < automation.par_frequency_seconds:
            return False
        self.send_par()
        return True

    def on_tick(self) -> bool:
        """Optional refresh right after a combat tick."""
        profile = self._profile_provider()
        automation = profile.automation
        if self._is_paused():
            return False
        if not (automation.par_after_combat_tick and automation.par_auto_enabled and self.state.in_party):
            return False
        if self._elapsed(self.last_par_sent) * 1000 < profile.timing.par_after_tick_min_interval_ms:
            return False
        self.send_par()
        return True

    def check_health_requests(self) -> str | None:
        """Ask one member without exact HP data for a telepath status per interval."""
        automation = self._profile_provider().automation
        if not automation.health_request_enabled or self._is_paused():
            return None
        if self._elapsed(self.last_health_check) < automation.health_request_interval_seconds:
            return None
        self.last_health_check = self._clock()

        for member in self.state.other_members():
            if not member.has_actual_hp_data:
                self.request_health(member.name)
                return member.name
        return None

    def request_health(self, name: str) -> bool:
        if self._is_paused() or self.state.is_target_self(name):
            return False
        logger.debug("health_requested", name=name)
        self._send_command(health_request_command(name))
        return True

    def on_joined_party(self, leader: str) -> None:
        self.state.in_party = True
        logger.info("party_joined", leader=leader)
        if self._profile_provider().automation.par_auto_enabled:
            self.send_par()

    def on_new_follower(self, name: str) -> None:
        self.state.in_party = True
        logger.info("party_follower_joined", name=name)
        if self._profile_provider().automation.par_auto_enabled:
            self.send_par()
        self.request_health(name)

    def reset(self) -> None:
        self.last_par_sent = None
        self.last_health_check = None
