# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Cure selection.

A cure that was sent marks its ailment pending. Pending ailments are skipped
until the pending window runs out; if the ailment is still tracked then, the
mark is dropped and the cure is tried again. That window is the only retry
mechanism: cure text that never matched simply leads to another attempt.
"""

from __future__ import annotations

from mudproxy.engine.config import CastPriority, CureConfiguration, CureSpellConfiguration
from mudproxy.engine.decision import CastDecision, can_afford, with_target
from mudproxy.engine.models import ActiveAilment
from mudproxy.engine.state import StateTracker
from mudproxy.logging import get_logger

logger = get_logger(__name__)


def select_cure(
    state: StateTracker,
    config: CureConfiguration,
    pending_window_s: float,
) -> CastDecision | None:
    """Pick at most one cure; the caller marks the ailment once it is sent."""
    if not config.enabled or not state.ailments:
        return None

    state.release_expired_cures(pending_window_s)

    mana = state.player.current_mana
    candidates: list[tuple[CureSpellConfiguration, ActiveAilment]] = []
    for ailment in state.ailments:
        if ailment.cure_pending:
            continue
        if not ailment.is_self and not state.is_member(ailment.target_name):
            logger.debug("cure_target_not_in_party", target=ailment.target_name)
            continue

        spells = config.cure_spells_for(ailment.ailment_id)
        if not spells:
            logger.debug("cure_spell_missing", ailment=ailment.ailment_id)
            continue
        spell = next((s for s in spells if can_afford(s.mana_cost, mana)), None)
        if spell is None:
            logger.debug("cure_unaffordable", ailment=ailment.ailment_id, mana=mana)
            continue
        candidates.append((spell, ailment))

    if not candidates:
        return None

    spell, ailment = min(candidates, key=lambda c: (c[0].priority, c[1].detected_at))
    known = config.get_ailment(ailment.ailment_id)
    ailment_name = known.display_name if known and known.display_name else ailment.ailment_id
    who = ailment.target_name or "self"
    return CastDecision(
        family=CastPriority.CURES,
        command=with_target(spell.command, ailment.target_name),
        description=f"{spell.display_name or spell.command} on {who} ({ailment_name})",
        target=ailment.target_name,
        ailment=ailment,
    )
