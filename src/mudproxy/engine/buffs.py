# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Buff auto-recast selection."""

from __future__ import annotations

from collections.abc import Iterable

from mudproxy.engine.config import AutomationSettings, BuffConfiguration, BuffTargetType, CastPriority
from mudproxy.engine.decision import CastDecision, with_target
from mudproxy.engine.models import PartyMember
from mudproxy.engine.state import StateTracker
from mudproxy.logging import get_logger

logger = get_logger(__name__)


def needs_recast(state: StateTracker, config: BuffConfiguration, target: str, now: float) -> bool:
    """Missing, inside the recast buffer, or (with no buffer) expired."""
    active = state.find_buff(config.id, target)
    if active is None:
        return True
    if config.recast_buffer_seconds > 0:
        return active.time_remaining(now) <= config.recast_buffer_seconds
    return active.is_expired(now)


def _party_targets(state: StateTracker, config: BuffConfiguration) -> Iterable[PartyMember]:
    members = state.other_members()
    if config.target_type == BuffTargetType.MELEE_PARTY:
        return [m for m in members if m.is_melee]
    if config.target_type == BuffTargetType.CASTER_PARTY:
        return [m for m in members if m.is_caster]
    if config.target_type == BuffTargetType.ALL_PARTY:
        return members
    return []


def _should_buff_self(state: StateTracker, config: BuffConfiguration) -> bool:
    player = state.player
    return (
        config.target_type in (BuffTargetType.SELF_ONLY, BuffTargetType.ALL_PARTY)
        or (config.target_type == BuffTargetType.MELEE_PARTY and player.is_melee)
        or (config.target_type == BuffTargetType.CASTER_PARTY and player.is_caster)
    )


def buffs_needing_recast(state: StateTracker, buffs: list[BuffConfiguration]) -> list[tuple[BuffConfiguration, str]]:
    """Eligible (buff, target) pairs, highest priority first, self before party."""
    now = state.now()
    results: list[tuple[BuffConfiguration, str]] = []

    for config in buffs:
        if not config.auto_recast:
            continue

        if _should_buff_self(state, config) or state.find_buff(config.id) is not None:
            if needs_recast(state, config, "", now):
                results.append((config, ""))

        if config.target_type == BuffTargetType.SELF_ONLY:
            continue

        targets = [m.name for m in _party_targets(state, config)]
        # Party buffs already running on members outside the class filter
        for buff in state.buffs:
            if buff.config.id != config.id or buff.is_self_buff:
                continue
            if state.is_member(buff.target_name) and buff.target_name.lower() not in {t.lower() for t in targets}:
                targets.append(buff.target_name)

        for target in targets:
            if needs_recast(state, config, target, now):
                results.append((config, target))

    # sorted() is stable, so ties keep configuration order
    return sorted(results, key=lambda r: (r[0].priority, 0 if not r[1] else 1))


def select_buff(
    state: StateTracker,
    buffs: list[BuffConfiguration],
    automation: AutomationSettings,
    *,
    in_combat: bool,
) -> CastDecision | None:
    """Pick at most one buff to recast, honouring the mana reserve."""
    if not automation.auto_recast_enabled:
        return None
    if state.is_resting and not automation.buff_while_resting:
        return None
    if in_combat and not automation.buff_while_in_combat:
        return None

    eligible = buffs_needing_recast(state, buffs)
    if not eligible:
        return None

    player = state.player
    reserve = automation.mana_reserve_percent
    if player.max_mana > 0 and player.mana_percent < reserve:
        logger.debug("buff_skipped_reserve", mana_percent=player.mana_percent, reserve=reserve)
        return None

    for config, target in eligible:
        if config.mana_cost > 0 and player.current_mana < config.mana_cost:
            logger.debug("buff_skipped_mana", buff=config.display_name, need=config.mana_cost, have=player.current_mana)
            continue
        if player.max_mana > 0 and config.mana_cost > 0:
            after = (player.current_mana - config.mana_cost) * 100 // player.max_mana
            if after < reserve:
                logger.debug("buff_skipped_reserve_after_cast", buff=config.display_name, after=after, reserve=reserve)
                continue

        who = f" on {target}" if target else ""
        return CastDecision(
            family=CastPriority.BUFFS,
            command=with_target(config.command, target),
            description=(
                f"{config.display_name or config.command}{who} "
                f"(cost: {config.mana_cost}, have: {player.current_mana})"
            ),
            target=target,
        )
    return None
