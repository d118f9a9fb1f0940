# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Single source of truth for player, party, buff and ailment state."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from mudproxy.engine import events as ev
from mudproxy.engine.events import EventBus
from mudproxy.engine.models import ActiveAilment, ActiveBuff, PartyMember, PlayerInfo
from mudproxy.logging import get_logger

if TYPE_CHECKING:
    from mudproxy.engine.config import BuffConfiguration

logger = get_logger(__name__)


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class StateTracker:
    """Mutable session state.

    Owned by one session task; nothing here is thread-safe and nothing needs
    to be.
    """

    def __init__(
        self,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.events = events or EventBus()
        self._clock = clock
        self.player = PlayerInfo()
        self.members: list[PartyMember] = []
        self.in_party = False
        self.is_resting = False
        self.buffs: list[ActiveBuff] = []
        self.ailments: list[ActiveAilment] = []

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Player
    # ------------------------------------------------------------------

    def is_target_self(self, target: str) -> bool:
        """True when ``target`` names the player.

        Matches the full name, the first name, or either one being the first
        word of the other, ignoring case.
        """
        name = self.player.name
        if not name or not target:
            return False
        lname = name.lower()
        ltarget = target.lower()
        if ltarget == lname:
            return True
        if lname.startswith(ltarget + " ") or ltarget.startswith(lname + " "):
            return True
        return ltarget == lname.split(" ")[0]

    def update_vitals(
        self,
        hp: int,
        max_hp: int | None = None,
        mana: int | None = None,
        max_mana: int | None = None,
        *,
        mana_type: str | None = None,
        resting: bool | None = None,
    ) -> None:
        self.player.update_vitals(hp, max_hp, mana, max_mana)
        if mana_type:
            self.player.mana_type = mana_type.upper()
        if resting is not None and resting != self.is_resting:
            self.is_resting = resting
            logger.info("resting_changed", resting=resting)
        self.events.emit(
            ev.PLAYER_CHANGED,
            hp=self.player.current_hp,
            max_hp=self.player.max_hp,
            mana=self.player.current_mana,
            max_mana=self.player.max_mana,
            resting=self.is_resting,
        )

    def update_profile(
        self,
        *,
        name: str | None = None,
        race: str | None = None,
        class_name: str | None = None,
        level: int | None = None,
    ) -> None:
        """Apply character details parsed from the ``stat`` screen."""
        player = self.player
        if name is not None:
            player.name = name
        if race is not None:
            player.race = race
        if class_name is not None:
            player.class_name = class_name
        if level is not None:
            player.level = level
        logger.info("player_profile", name=player.name, class_name=player.class_name, level=player.level)
        self.events.emit(ev.PLAYER_CHANGED, name=player.name, class_name=player.class_name, level=player.level)

    # ------------------------------------------------------------------
    # Party
    # ------------------------------------------------------------------

    def get_member(self, name: str) -> PartyMember | None:
        return next((m for m in self.members if _same(m.name, name)), None)

    def is_member(self, name: str) -> bool:
        return self.get_member(name) is not None

    def other_members(self) -> list[PartyMember]:
        """Party members excluding the player."""
        return [m for m in self.members if not self.is_target_self(m.name)]

    def replace_party(self, members: Iterable[PartyMember]) -> None:
        """Replace the roster with a complete snapshot.

        Exact HP/mana maxima learned from telepaths carry over to members that
        are still present. Buffs and ailments of members that are gone are
        dropped.
        """
        previous = {m.name.lower(): m for m in self.members}
        roster: list[PartyMember] = []
        seen: set[str] = set()
        for member in members:
            key = member.name.lower()
            if key in seen:
                logger.debug("party_duplicate_skipped", name=member.name)
                continue
            seen.add(key)
            prev = previous.get(key)
            if prev is not None:
                member.max_hp = prev.max_hp
                member.max_mana = prev.max_mana
                member.resource_type = prev.resource_type
                member.last_update = prev.last_update
                if prev.max_hp > 0:
                    member.current_hp = member.health_percent * prev.max_hp // 100
                if prev.max_mana > 0:
                    member.current_mana = member.mana_percent * prev.max_mana // 100
            roster.append(member)

        self.members = roster
        self.in_party = bool(roster)
        self._prune_departed()
        logger.debug("party_replaced", members=[m.name for m in roster])
        self.events.emit(ev.PARTY_CHANGED, members=[m.name for m in roster])

    def remove_member(self, name: str) -> bool:
        before = len(self.members)
        self.members = [m for m in self.members if not _same(m.name, name)]
        if len(self.members) == before:
            return False
        if not self.members:
            self.in_party = False
        self._prune_departed()
        logger.info("party_member_left", name=name)
        self.events.emit(ev.PARTY_CHANGED, members=[m.name for m in self.members])
        return True

    def clear_party(self) -> None:
        had_members = bool(self.members)
        self.members = []
        self.in_party = False
        self._prune_departed()
        if had_members:
            logger.info("party_cleared")
            self.events.emit(ev.PARTY_CHANGED, members=[])

    def update_member_vitals(
        self,
        name: str,
        hp: int,
        max_hp: int,
        mana: int = 0,
        max_mana: int = 0,
        resource_type: str = "",
    ) -> PartyMember | None:
        """Store exact HP/mana from a telepath status broadcast.

        A sender not on the roster is added while the player is in a party,
        since the broadcast may arrive before the next listing.
        """
        member = self.get_member(name)
        if member is None:
            if not self.in_party or self.is_target_self(name):
                return None
            member = PartyMember(name=name, full_name=name)
            self.members.append(member)
        member.current_hp = hp
        member.max_hp = max_hp
        member.current_mana = mana
        member.max_mana = max_mana
        member.last_update = self.now()
        if resource_type.upper() == "KAI":
            member.resource_type = "Kai"
        elif resource_type.upper() == "MA":
            member.resource_type = "Mana"
        logger.debug("party_member_vitals", name=member.name, hp=hp, max_hp=max_hp)
        self.events.emit(ev.PARTY_CHANGED, members=[m.name for m in self.members])
        return member

    def _prune_departed(self) -> None:
        names = {m.name.lower() for m in self.members}
        buffs = [b for b in self.buffs if b.is_self_buff or b.target_name.lower() in names]
        ailments = [a for a in self.ailments if a.is_self or a.target_name.lower() in names]
        if len(buffs) != len(self.buffs):
            logger.info("buffs_pruned", removed=len(self.buffs) - len(buffs))
            self.buffs = buffs
            self.events.emit(ev.BUFFS_CHANGED)
        if len(ailments) != len(self.ailments):
            logger.info("ailments_pruned", removed=len(self.ailments) - len(ailments))
            self.ailments = ailments
            self.events.emit(ev.AILMENTS_CHANGED)

    # ------------------------------------------------------------------
    # Buffs
    # ------------------------------------------------------------------

    def find_buff(self, config_id: str, target: str = "") -> ActiveBuff | None:
        return next(
            (b for b in self.buffs if b.config.id == config_id and _same(b.target_name, target)),
            None,
        )

    def record_cast_success(self, config: BuffConfiguration, target: str = "") -> ActiveBuff:
        """Create or refresh the active instance of ``config`` on ``target``."""
        self.buffs = [b for b in self.buffs if not (b.config.id == config.id and _same(b.target_name, target))]
        buff = ActiveBuff(config=config, target_name=target, cast_time=self.now())
        self.buffs.append(buff)
        logger.info(
            "buff_activated",
            buff=config.display_name or config.command,
            target=target or "self",
            duration_s=config.duration_seconds,
        )
        self.events.emit(ev.BUFFS_CHANGED, buff=config.id, target=target)
        return buff

    def expire_self_buff(self, config: BuffConfiguration) -> bool:
        before = len(self.buffs)
        self.buffs = [b for b in self.buffs if not (b.config.id == config.id and b.is_self_buff)]
        if len(self.buffs) == before:
            return False
        logger.info("buff_expired", buff=config.display_name or config.command)
        self.events.emit(ev.BUFFS_CHANGED, buff=config.id, target="")
        return True

    def sweep_expired_buffs(self) -> int:
        now = self.now()
        kept = [b for b in self.buffs if not b.is_expired(now)]
        removed = len(self.buffs) - len(kept)
        if removed:
            self.buffs = kept
            self.events.emit(ev.BUFFS_CHANGED, removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Ailments
    # ------------------------------------------------------------------

    def find_ailment(self, ailment_id: str, target: str = "") -> ActiveAilment | None:
        return next(
            (a for a in self.ailments if a.ailment_id == ailment_id and _same(a.target_name, target)),
            None,
        )

    def add_ailment(self, ailment_id: str, target: str = "") -> bool:
        """Track an ailment; adding one already tracked is a no-op."""
        if self.find_ailment(ailment_id, target) is not None:
            return False
        self.ailments.append(ActiveAilment(ailment_id=ailment_id, target_name=target, detected_at=self.now()))
        logger.info("ailment_detected", ailment=ailment_id, target=target or "self")
        self.events.emit(ev.AILMENTS_CHANGED, ailment=ailment_id, target=target)
        return True

    def remove_ailment(self, ailment_id: str, target: str = "") -> bool:
        before = len(self.ailments)
        self.ailments = [
            a for a in self.ailments if not (a.ailment_id == ailment_id and _same(a.target_name, target))
        ]
        if len(self.ailments) == before:
            logger.debug("ailment_not_tracked", ailment=ailment_id, target=target or "self")
            return False
        logger.info("ailment_cured", ailment=ailment_id, target=target or "self")
        self.events.emit(ev.AILMENTS_CHANGED, ailment=ailment_id, target=target)
        return True

    def mark_cure_initiated(self, ailment: ActiveAilment) -> None:
        ailment.cure_initiated_at = self.now()

    def release_expired_cures(self, window_s: float) -> list[ActiveAilment]:
        """Clear the pending mark on cures that never confirmed within ``window_s``."""
        now = self.now()
        released = []
        for ailment in self.ailments:
            if ailment.is_cure_pending_expired(now, window_s):
                ailment.cure_initiated_at = None
                released.append(ailment)
                logger.info("cure_retry_allowed", ailment=ailment.ailment_id, target=ailment.target_name or "self")
        return released

    def sync_indicator_ailment(self, ailment_id: str, indicator: str) -> None:
        """Mirror a party-listing status glyph onto tracked ailments."""
        for member in self.members:
            if self.is_target_self(member.name):
                continue
            if member.indicator == indicator:
                self.add_ailment(ailment_id, member.name)
            elif self.find_ailment(ailment_id, member.name) is not None:
                self.remove_ailment(ailment_id, member.name)

    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget everything learned in this session."""
        self.player = PlayerInfo()
        self.members = []
        self.in_party = False
        self.is_resting = False
        self.buffs = []
        self.ailments = []
