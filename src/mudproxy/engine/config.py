# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Rule configuration for buffs, heals and cures.

A :class:`ProxyProfile` is owned outside the engine. The engine reads it
through a provider callable at the start of every decision cycle and never
mutates it.
"""

from __future__ import annotations

import json
import uuid
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mudproxy.errors import ProfileError
from mudproxy.logging import get_logger

logger = get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class BuffCategory(StrEnum):
    COMBAT = "combat"
    DEFENSE = "defense"
    UTILITY = "utility"


class BuffTargetType(StrEnum):
    """Who a buff may be cast on."""

    SELF_ONLY = "self_only"
    MELEE_PARTY = "melee_party"
    CASTER_PARTY = "caster_party"
    ALL_PARTY = "all_party"


class HealTargetType(StrEnum):
    SELF_ONLY = "self_only"
    SINGLE_TARGET = "single_target"  # Self or a party member
    PARTY_HEAL = "party_heal"  # Whole party at once


class HealRuleType(StrEnum):
    """Player state a self-heal rule applies in."""

    COMBAT = "combat"  # In combat and idle, not resting
    RESTING = "resting"


class CastPriority(StrEnum):
    """Rule families, in the order the engine may try them."""

    HEALS = "heals"
    CURES = "cures"
    BUFFS = "buffs"


DEFAULT_PRIORITY_ORDER: tuple[CastPriority, ...] = (CastPriority.HEALS, CastPriority.CURES, CastPriority.BUFFS)


class BuffConfiguration(BaseModel):
    """A timed buff the player can cast."""

    id: str = Field(default_factory=_new_id)
    display_name: str = ""
    command: str = ""
    duration_seconds: int = 60
    mana_cost: int = 0
    category: BuffCategory = BuffCategory.COMBAT
    target_type: BuffTargetType = BuffTargetType.SELF_ONLY
    self_cast_message: str = ""
    party_cast_message: str = ""  # May contain {target}
    expire_message: str = ""
    auto_recast: bool = False
    recast_buffer_seconds: int = 10  # Recast when this many seconds remain
    priority: int = 5  # 1 = highest

    model_config = ConfigDict(extra="ignore")


class HealSpellConfiguration(BaseModel):
    id: str = Field(default_factory=_new_id)
    display_name: str = ""
    command: str = ""
    mana_cost: int = 0
    target_type: HealTargetType = HealTargetType.SINGLE_TARGET
    self_cast_message: str = ""
    party_cast_message: str = ""
    party_heal_message: str = ""

    model_config = ConfigDict(extra="ignore")


class HealRule(BaseModel):
    """Cast ``heal_spell_id`` when HP drops below ``hp_threshold_percent``."""

    id: str = Field(default_factory=_new_id)
    heal_spell_id: str = ""
    hp_threshold_percent: int = 70
    rule_type: HealRuleType = HealRuleType.COMBAT  # Self rules only
    critical: bool = False
    is_party_heal_rule: bool = False
    party_percent_required: int = 50  # Party-wide rules only

    model_config = ConfigDict(extra="ignore")


class HealingConfiguration(BaseModel):
    enabled: bool = True
    spells: list[HealSpellConfiguration] = Field(default_factory=list)
    self_rules: list[HealRule] = Field(default_factory=list)
    party_rules: list[HealRule] = Field(default_factory=list)  # Single target heals on party members
    party_wide_rules: list[HealRule] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def get_spell(self, spell_id: str) -> HealSpellConfiguration | None:
        return next((s for s in self.spells if s.id == spell_id), None)


class AilmentConfiguration(BaseModel):
    id: str = Field(default_factory=_new_id)
    display_name: str = ""  # e.g. "Poison"
    detection_messages: list[str] = Field(default_factory=list)  # Substrings seen when the player is afflicted
    party_indicator: str | None = None  # e.g. "P" in the party listing
    telepath_request: str | None = None  # e.g. "@held"

    model_config = ConfigDict(extra="ignore")


class CureSpellConfiguration(BaseModel):
    id: str = Field(default_factory=_new_id)
    display_name: str = ""
    command: str = ""
    mana_cost: int = 0
    ailment_id: str = ""
    self_cast_message: str = ""
    party_cast_message: str = ""
    priority: int = 5  # Lower = more urgent

    model_config = ConfigDict(extra="ignore")


class CureConfiguration(BaseModel):
    enabled: bool = True
    ailments: list[AilmentConfiguration] = Field(default_factory=list)
    cure_spells: list[CureSpellConfiguration] = Field(default_factory=list)
    priority_order: list[CastPriority] = Field(default_factory=lambda: list(DEFAULT_PRIORITY_ORDER))

    model_config = ConfigDict(extra="ignore")

    @field_validator("priority_order", mode="before")
    @classmethod
    def _valid_priority_order(cls, value: Any) -> list[CastPriority]:
        """Fall back to the default order unless each family appears exactly once."""
        try:
            order = [CastPriority(str(item).lower()) for item in value]
        except (TypeError, ValueError):
            order = []
        if sorted(order) != sorted(DEFAULT_PRIORITY_ORDER):
            logger.warning("priority_order_reset", given=value, default=[p.value for p in DEFAULT_PRIORITY_ORDER])
            return list(DEFAULT_PRIORITY_ORDER)
        return order

    def get_ailment(self, ailment_id: str) -> AilmentConfiguration | None:
        return next((a for a in self.ailments if a.id == ailment_id), None)

    def ailment_by_telepath_request(self, request: str) -> AilmentConfiguration | None:
        return next(
            (a for a in self.ailments if a.telepath_request and a.telepath_request.lower() == request.lower()),
            None,
        )

    def cure_spells_for(self, ailment_id: str) -> list[CureSpellConfiguration]:
        """Cure spells for an ailment, most urgent first."""
        return sorted((s for s in self.cure_spells if s.ailment_id == ailment_id), key=lambda s: s.priority)


class AutomationSettings(BaseModel):
    """Per-character automation switches."""

    mana_reserve_percent: int = 20
    buff_while_resting: bool = False
    buff_while_in_combat: bool = True
    auto_recast_enabled: bool = True
    par_auto_enabled: bool = True
    par_frequency_seconds: int = 15
    par_after_combat_tick: bool = False
    health_request_enabled: bool = True
    health_request_interval_seconds: int = 60

    model_config = ConfigDict(extra="ignore")

    @field_validator("par_frequency_seconds")
    @classmethod
    def _clamp_par_frequency(cls, value: int) -> int:
        return max(5, min(300, value))

    @field_validator("health_request_interval_seconds")
    @classmethod
    def _clamp_health_interval(cls, value: int) -> int:
        return max(15, min(300, value))


class TimingSettings(BaseModel):
    """Timing constants, in milliseconds unless the name says otherwise.

    The tick values are empirical and kept configurable rather than derived.
    """

    tick_interval_ms: int = 5000
    damage_cluster_window_ms: int = 500
    on_schedule_drift_ms: int = 1500
    unpredicted_drift_ms: int = 3500
    pre_tick_guard_ms: int = 1500
    post_tick_settle_ms: int = 100
    cure_pending_window_s: float = 10.0
    cast_cooldown_ms: int = 5500
    min_recast_interval_ms: int = 500
    par_after_tick_min_interval_ms: int = 2000
    login_stat_delay_ms: int = 500
    tick_display_interval_ms: int = 50
    buff_sweep_interval_ms: int = 250
    recast_check_interval_ms: int = 1000
    party_check_interval_ms: int = 1000

    model_config = ConfigDict(extra="ignore")


class ProxyProfile(BaseModel):
    """Complete rule configuration for one character."""

    character_name: str = ""
    buffs: list[BuffConfiguration] = Field(default_factory=list)
    healing: HealingConfiguration = Field(default_factory=HealingConfiguration)
    curing: CureConfiguration = Field(default_factory=CureConfiguration)
    automation: AutomationSettings = Field(default_factory=AutomationSettings)
    timing: TimingSettings = Field(default_factory=TimingSettings)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_json(cls, path: Path | str) -> ProxyProfile:
        path = Path(path)
        logger.info("profile_loading", path=str(path))
        try:
            data = json.loads(path.read_text()) or {}
            return cls.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ProfileError(f"Cannot load profile {path}: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path | str) -> ProxyProfile:
        path = Path(path)
        logger.info("profile_loading", path=str(path))
        try:
            data = yaml.safe_load(path.read_text()) or {}
            return cls.model_validate(data)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ProfileError(f"Cannot load profile {path}: {e}") from e

    def to_json(self, path: Path | str) -> None:
        path = Path(path)
        logger.info("profile_saving", path=str(path))
        path.write_text(self.model_dump_json(indent=2))

    def to_yaml(self, path: Path | str) -> None:
        path = Path(path)
        logger.info("profile_saving", path=str(path))
        data = self.model_dump(mode="json")
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


def load_profile(path: Path | str) -> ProxyProfile:
    """Load a profile, picking the format from the file suffix."""
    path = Path(path)
    if path.suffix.lower() in (".yaml", ".yml"):
        return ProxyProfile.from_yaml(path)
    return ProxyProfile.from_json(path)
