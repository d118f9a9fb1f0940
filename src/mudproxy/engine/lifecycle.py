# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""When it is safe to cast.

The rule engine decides *what* to cast; this module decides *whether now is
the moment*. Casting is gated by the session phase, a global cast cooldown, a
minimum spacing between attempts, failure text that blocks casting until the
next tick, and (out of combat) a guard window before the predicted tick.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from enum import StrEnum

from mudproxy.engine import events as ev
from mudproxy.engine.config import CastPriority, ProxyProfile
from mudproxy.engine.decision import CastDecision
from mudproxy.engine.events import EventBus
from mudproxy.engine.rules import ProfileProvider, RuleEngine
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator
from mudproxy.logging import get_logger

logger = get_logger(__name__)

CAST_FAIL_RE = re.compile(r"You attempt to cast (.+?), but fail\.", re.IGNORECASE)
NOT_ENOUGH_MANA_RE = re.compile(r"You do not have enough mana to cast that spell\.", re.IGNORECASE)
ALREADY_CAST_RE = re.compile(r"You have already cast a spell this round!", re.IGNORECASE)


class SessionPhase(StrEnum):
    LOGIN = "login"
    IN_GAME = "in_game"


class BuffLifecycle:
    """Cast coordination for one session."""

    def __init__(
        self,
        state: StateTracker,
        tick: TickEstimator,
        profile_provider: ProfileProvider,
        send_command: Callable[[str], None],
        events: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.tick = tick
        self.events = events or state.events
        self._profile_provider = profile_provider
        self._send_command = send_command
        self._clock = clock
        self.engine = RuleEngine(state, profile_provider, in_combat=lambda: self.in_combat)

        self.phase = SessionPhase.LOGIN
        self.in_combat = False
        self.paused = False
        self.cast_blocked_until_tick = False
        self._last_cast_sent: float | None = None
        self._last_attempt: float | None = None

    @property
    def profile(self) -> ProxyProfile:
        return self._profile_provider()

    @property
    def commands_paused(self) -> bool:
        return self.paused or self.phase == SessionPhase.LOGIN

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def complete_login(self) -> bool:
        """Leave the login phase; returns True only on the transition."""
        if self.phase == SessionPhase.IN_GAME:
            return False
        self.phase = SessionPhase.IN_GAME
        logger.info("login_complete")
        self.events.emit(ev.LOGIN_COMPLETE)
        return True

    def restart_login(self) -> None:
        self.phase = SessionPhase.LOGIN
        self.set_combat(False)

    def set_combat(self, engaged: bool) -> None:
        if engaged == self.in_combat:
            return
        self.in_combat = engaged
        logger.info("combat_changed", in_combat=engaged)
        self.events.emit(ev.COMBAT_CHANGED, in_combat=engaged)

    def on_player_death(self) -> None:
        logger.warning("player_death")
        self.set_combat(False)
        self.events.emit(ev.PLAYER_DEATH)

    # ------------------------------------------------------------------
    # Ticks and failures
    # ------------------------------------------------------------------

    def on_tick(self, source: str = "damage") -> None:
        """A new round started: lift the failure block and the cast cooldown."""
        self.cast_blocked_until_tick = False
        self._last_cast_sent = None
        self.events.emit(ev.TICK, source=source, next_tick=self.tick.next_tick)

    def poll_tick_rollover(self) -> bool:
        """Advance the predicted tick on the clock.

        Out of combat there are no damage messages, so a crossed boundary
        counts as a tick. In combat the damage bursts are authoritative.
        """
        if not self.tick.advance(self._clock()):
            return False
        if self.in_combat:
            return False
        self.on_tick(source="timer")
        return True

    def process_cast_failure(self, text: str) -> bool:
        """Block casting until the next tick when ``text`` reports a failed cast."""
        match = CAST_FAIL_RE.search(text)
        if match:
            logger.info("cast_failed", spell=match.group(1))
            reason = "failed"
        elif NOT_ENOUGH_MANA_RE.search(text):
            logger.info("cast_failed", reason="not_enough_mana")
            reason = "not_enough_mana"
        elif ALREADY_CAST_RE.search(text):
            logger.info("cast_failed", reason="already_cast")
            reason = "already_cast"
        else:
            return False
        self.cast_blocked_until_tick = True
        self.events.log("Cast blocked until next tick", reason=reason)
        return True

    # ------------------------------------------------------------------
    # Recast entry points
    # ------------------------------------------------------------------

    def seconds_since(self, moment: float | None) -> float:
        if moment is None:
            return float("inf")
        return self._clock() - moment

    def check_auto_recast(self) -> CastDecision | None:
        """Run one decision cycle and send its command, if any gate allows it."""
        if self.commands_paused:
            return None
        if self.cast_blocked_until_tick:
            logger.debug("cast_blocked_until_tick")
            return None

        timing = self.profile.timing
        if self.seconds_since(self._last_cast_sent) * 1000 < timing.cast_cooldown_ms:
            return None
        if self.seconds_since(self._last_attempt) * 1000 < timing.min_recast_interval_ms:
            return None

        decision = self.engine.decide()
        if decision is None:
            return None

        now = self._clock()
        self._last_attempt = now
        self._last_cast_sent = now
        logger.info("auto_cast", family=str(decision.family), command=decision.command, detail=decision.description)
        self._send_command(decision.command)
        self.events.log(f"Auto-cast: {decision.description}", family=str(decision.family))
        if decision.family == CastPriority.CURES and decision.ailment is not None:
            self.state.mark_cure_initiated(decision.ailment)
        return decision

    def check_out_of_combat(self, connected: bool = True) -> CastDecision | None:
        """Idle poll: cast only away from the next predicted tick."""
        if not connected or self.phase == SessionPhase.LOGIN or self.in_combat:
            return None

        # Unknown tick timing counts as safe; the cooldowns prevent spam
        remaining = self.tick.seconds_until_next_tick(self._clock())
        if remaining is not None and remaining * 1000 < self.profile.timing.pre_tick_guard_ms:
            logger.debug("recast_deferred_near_tick", remaining_s=round(remaining, 2))
            return None
        return self.check_auto_recast()
