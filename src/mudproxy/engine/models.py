# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Session-scoped game state: the player, the party, active buffs and ailments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mudproxy.engine.config import BuffConfiguration

MELEE_CLASSES = frozenset(
    {
        "bard",
        "cleric",
        "gypsy",
        "missionary",
        "mystic",
        "ninja",
        "paladin",
        "ranger",
        "thief",
        "warlock",
        "warrior",
        "witchunter",
    }
)
CASTER_CLASSES = frozenset({"mage", "priest", "druid"})


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


@dataclass
class PlayerInfo:
    name: str = ""
    race: str = ""
    class_name: str = ""
    level: int = 0
    current_hp: int = 0
    max_hp: int = 0
    current_mana: int = 0
    max_mana: int = 0
    mana_type: str = "MA"

    @property
    def hp_percent(self) -> float:
        return self.current_hp * 100.0 / self.max_hp if self.max_hp > 0 else 100.0

    @property
    def mana_percent(self) -> int:
        """Whole-number mana percentage, 0 while the maximum is unknown."""
        return self.current_mana * 100 // self.max_mana if self.max_mana > 0 else 0

    @property
    def is_melee(self) -> bool:
        return self.class_name.lower() in MELEE_CLASSES

    @property
    def is_caster(self) -> bool:
        return self.class_name.lower() in CASTER_CLASSES

    def update_vitals(
        self,
        hp: int,
        max_hp: int | None,
        mana: int | None,
        max_mana: int | None,
    ) -> None:
        """Apply a vitals reading.

        A maximum that is not reported grows to the highest current value seen.
        Current values are clamped into ``0..max``.
        """
        if max_hp is not None:
            self.max_hp = max_hp
        elif hp > self.max_hp:
            self.max_hp = hp
        self.current_hp = _clamp(hp, self.max_hp)

        if mana is None:
            return
        if max_mana is not None:
            self.max_mana = max_mana
        elif mana > self.max_mana:
            self.max_mana = mana
        self.current_mana = _clamp(mana, self.max_mana)


@dataclass
class PartyMember:
    name: str  # First name, used to address commands
    full_name: str = ""
    class_name: str = ""
    health_percent: int = 0
    mana_percent: int = 0
    rank: str = ""
    indicator: str = ""  # Status glyph from the party listing (R, P or M)
    is_resting: bool = False
    is_poisoned: bool = False
    is_meditating: bool = False
    current_hp: int = 0
    max_hp: int = 0
    current_mana: int = 0
    max_mana: int = 0
    resource_type: str = "Mana"
    last_update: float = 0.0

    @property
    def has_actual_hp_data(self) -> bool:
        return self.max_hp > 0

    @property
    def effective_health_percent(self) -> int:
        if self.has_actual_hp_data:
            return self.current_hp * 100 // self.max_hp
        return self.health_percent

    @property
    def effective_mana_percent(self) -> int:
        if self.max_mana > 0:
            return self.current_mana * 100 // self.max_mana
        return self.mana_percent

    @property
    def is_melee(self) -> bool:
        return self.class_name.lower() in MELEE_CLASSES

    @property
    def is_caster(self) -> bool:
        return self.class_name.lower() in CASTER_CLASSES


@dataclass
class ActiveBuff:
    config: BuffConfiguration
    target_name: str  # Empty for self
    cast_time: float
    expire_time: float = field(init=False)

    def __post_init__(self) -> None:
        self.expire_time = self.cast_time + self.config.duration_seconds

    @property
    def is_self_buff(self) -> bool:
        return not self.target_name

    def time_remaining(self, now: float) -> float:
        return self.expire_time - now

    def is_expired(self, now: float) -> bool:
        return now >= self.expire_time

    def percent_remaining(self, now: float) -> float:
        duration = self.config.duration_seconds
        if duration <= 0:
            return 0.0
        return max(0.0, self.time_remaining(now) / duration * 100)


@dataclass
class ActiveAilment:
    ailment_id: str
    target_name: str  # Empty for self
    detected_at: float
    cure_initiated_at: float | None = None

    @property
    def is_self(self) -> bool:
        return not self.target_name

    @property
    def cure_pending(self) -> bool:
        return self.cure_initiated_at is not None

    def is_cure_pending_expired(self, now: float, window_s: float) -> bool:
        return self.cure_initiated_at is not None and now - self.cure_initiated_at >= window_s
