# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Combat tick estimation.

The server resolves combat rounds on a fixed period (about five seconds) but
never announces it. Rounds show up as bursts of damage messages, so the
estimator anchors the next tick on the first damage message of each burst and
otherwise rolls its prediction forward on the wall clock.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable

from mudproxy.engine.config import TimingSettings
from mudproxy.logging import get_logger

logger = get_logger(__name__)

DAMAGE_RE = re.compile(r"for \d+ damage!", re.IGNORECASE)


class TickEstimator:
    """Tracks ``next_tick`` from damage bursts and clock rollover.

    Times are monotonic seconds from the injected ``clock``. ``timing`` may be
    fixed settings or a callable returning the current ones, which is read on
    every call so profile reloads take effect on the next message.
    """

    def __init__(
        self,
        timing: TimingSettings | Callable[[], TimingSettings] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timing = timing or TimingSettings()
        self._clock = clock
        self.last_tick: float | None = None
        self.next_tick: float | None = None
        self._last_damage: float | None = None
        self.burst_size = 0

    @property
    def timing(self) -> TimingSettings:
        if isinstance(self._timing, TimingSettings):
            return self._timing
        return self._timing()

    @property
    def interval(self) -> float:
        return self.timing.tick_interval_ms / 1000

    def is_damage_message(self, text: str) -> bool:
        return DAMAGE_RE.search(text) is not None

    def on_damage(self, now: float | None = None) -> bool:
        """Feed one damage message.

        Returns:
            True when the message starts a burst accepted as a new tick.
        """
        now = self._clock() if now is None else now
        timing = self.timing
        window = timing.damage_cluster_window_ms / 1000
        previous = self._last_damage
        self._last_damage = now

        if previous is not None and now - previous < window:
            self.burst_size += 1
            return False

        self.burst_size = 1
        if self.next_tick is not None:
            drift_ms = abs(now - self.next_tick) * 1000
            if timing.on_schedule_drift_ms <= drift_ms <= timing.unpredicted_drift_ms:
                logger.debug("tick_drift_ignored", drift_ms=round(drift_ms))
                return False

        self.record_tick(now)
        return True

    def record_tick(self, now: float | None = None) -> None:
        """Anchor the schedule on a tick observed at ``now``."""
        now = self._clock() if now is None else now
        interval = self.interval
        self.last_tick = now
        self.next_tick = now + interval
        logger.debug("tick_recorded", next_in_s=interval)

    def advance(self, now: float | None = None) -> bool:
        """Roll ``next_tick`` forward once the clock has passed it.

        Returns:
            True when at least one predicted tick boundary was crossed.
        """
        now = self._clock() if now is None else now
        if self.next_tick is None or now < self.next_tick:
            return False
        interval = self.interval
        while self.next_tick <= now:
            self.next_tick += interval
        return True

    def seconds_until_next_tick(self, now: float | None = None) -> float | None:
        """Time to the next predicted tick, or None before any tick was seen.

        A prediction that has already passed is normalised onto the schedule.
        """
        if self.next_tick is None:
            return None
        now = self._clock() if now is None else now
        interval = self.interval
        remaining = self.next_tick - now
        while remaining < 0:
            remaining += interval
        return remaining

    def reset(self) -> None:
        self.last_tick = None
        self.next_tick = None
        self._last_damage = None
        self.burst_size = 0
