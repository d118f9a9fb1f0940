# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Arbitration between the heal, cure and buff rule families."""

from __future__ import annotations

from collections.abc import Callable

from mudproxy.engine.buffs import select_buff
from mudproxy.engine.config import CastPriority, ProxyProfile
from mudproxy.engine.cure import select_cure
from mudproxy.engine.decision import CastDecision
from mudproxy.engine.heal import select_heal
from mudproxy.engine.state import StateTracker
from mudproxy.logging import get_logger

logger = get_logger(__name__)

ProfileProvider = Callable[[], ProxyProfile]


class RuleEngine:
    """Computes at most one command per decision cycle.

    The profile is fetched from ``profile_provider`` on every call, so a
    replaced profile applies from the next cycle on.
    """

    def __init__(
        self,
        state: StateTracker,
        profile_provider: ProfileProvider,
        in_combat: Callable[[], bool] = lambda: False,
    ) -> None:
        self.state = state
        self._profile_provider = profile_provider
        self._in_combat = in_combat

    @property
    def profile(self) -> ProxyProfile:
        return self._profile_provider()

    def check_healing(self, profile: ProxyProfile | None = None) -> CastDecision | None:
        profile = profile or self.profile
        return select_heal(self.state, profile.healing)

    def check_curing(self, profile: ProxyProfile | None = None) -> CastDecision | None:
        profile = profile or self.profile
        return select_cure(self.state, profile.curing, profile.timing.cure_pending_window_s)

    def check_buffs(self, profile: ProxyProfile | None = None) -> CastDecision | None:
        profile = profile or self.profile
        return select_buff(self.state, profile.buffs, profile.automation, in_combat=self._in_combat())

    def decide(self) -> CastDecision | None:
        """Scan the families in the configured priority order.

        A family that raises is logged and skipped; this method never raises.
        """
        try:
            profile = self.profile
        except Exception:
            logger.exception("profile_unavailable")
            return None

        checks = {
            CastPriority.HEALS: self.check_healing,
            CastPriority.CURES: self.check_curing,
            CastPriority.BUFFS: self.check_buffs,
        }
        for family in profile.curing.priority_order:
            try:
                decision = checks[family](profile)
            except Exception:
                logger.exception("rule_family_failed", family=str(family))
                continue
            if decision is not None:
                return decision
        return None
