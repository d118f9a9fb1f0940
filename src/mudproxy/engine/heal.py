# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Heal selection.

Rules are split into a critical and a regular tier and the critical tier is
evaluated completely first. Within a tier, party-wide heals win over single
target heals; single target candidates are ordered by lowest HP first.
"""

from __future__ import annotations

from dataclasses import dataclass

from mudproxy.engine.config import CastPriority, HealingConfiguration, HealRule, HealRuleType, HealSpellConfiguration
from mudproxy.engine.decision import CastDecision, can_afford, with_target
from mudproxy.engine.state import StateTracker
from mudproxy.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _Candidate:
    target: str
    spell: HealSpellConfiguration
    threshold: int
    hp_percent: float


def select_heal(state: StateTracker, config: HealingConfiguration) -> CastDecision | None:
    """Pick at most one heal for the current state."""
    if not config.enabled:
        return None

    # Resting self-heal rules replace the combat/idle set while resting
    wanted = HealRuleType.RESTING if state.is_resting else HealRuleType.COMBAT
    self_rules = [r for r in config.self_rules if r.rule_type == wanted]

    for critical in (True, False):
        tier = _select_in_tier(
            state,
            config,
            self_rules=[r for r in self_rules if r.critical == critical],
            party_rules=[r for r in config.party_rules if r.critical == critical],
            party_wide_rules=[r for r in config.party_wide_rules if r.critical == critical],
        )
        if tier is not None:
            return tier
    return None


def _select_in_tier(
    state: StateTracker,
    config: HealingConfiguration,
    *,
    self_rules: list[HealRule],
    party_rules: list[HealRule],
    party_wide_rules: list[HealRule],
) -> CastDecision | None:
    party_wide = _party_wide_heal(state, config, party_wide_rules)
    if party_wide is not None:
        return party_wide

    mana = state.player.current_mana
    candidates: list[_Candidate] = []

    self_hp = state.player.hp_percent
    best = _best_rule(self_hp, self_rules, config, mana)
    if best is not None:
        candidates.append(_Candidate("", best[0], best[1], self_hp))

    for member in state.other_members():
        hp = member.effective_health_percent
        best = _best_rule(hp, party_rules, config, mana)
        if best is not None:
            candidates.append(_Candidate(member.name, best[0], best[1], hp))

    if not candidates:
        return None

    chosen = min(candidates, key=lambda c: (c.hp_percent, c.threshold))
    who = chosen.target or "self"
    return CastDecision(
        family=CastPriority.HEALS,
        command=with_target(chosen.spell.command, chosen.target),
        description=f"{chosen.spell.display_name or chosen.spell.command} on {who} (HP: {chosen.hp_percent:.0f}%)",
        target=chosen.target,
    )


def _party_wide_heal(
    state: StateTracker,
    config: HealingConfiguration,
    rules: list[HealRule],
) -> CastDecision | None:
    if not rules:
        return None

    hp_values = [state.player.hp_percent]
    hp_values.extend(m.effective_health_percent for m in state.other_members())
    total = len(hp_values)
    if total <= 1:
        return None

    mana = state.player.current_mana
    for rule in sorted(rules, key=lambda r: r.hp_threshold_percent):
        spell = config.get_spell(rule.heal_spell_id)
        if spell is None:
            logger.debug("heal_rule_missing_spell", rule=rule.id, spell=rule.heal_spell_id)
            continue
        if not can_afford(spell.mana_cost, mana):
            continue
        below = sum(1 for hp in hp_values if hp < rule.hp_threshold_percent)
        if below * 100 // total >= rule.party_percent_required:
            return CastDecision(
                family=CastPriority.HEALS,
                command=spell.command,
                description=(
                    f"{spell.display_name or spell.command} (party heal - "
                    f"{below}/{total} below {rule.hp_threshold_percent}%)"
                ),
            )
    return None


def _best_rule(
    hp_percent: float,
    rules: list[HealRule],
    config: HealingConfiguration,
    mana: int,
) -> tuple[HealSpellConfiguration, int] | None:
    """Lowest-threshold affordable rule that ``hp_percent`` falls under."""
    applicable = sorted((r for r in rules if hp_percent < r.hp_threshold_percent), key=lambda r: r.hp_threshold_percent)
    for rule in applicable:
        spell = config.get_spell(rule.heal_spell_id)
        if spell is None:
            logger.debug("heal_rule_missing_spell", rule=rule.id, spell=rule.heal_spell_id)
            continue
        if not can_afford(spell.mana_cost, mana):
            continue
        return spell, rule.hp_threshold_percent
    return None
