# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Result type shared by the rule families."""

from __future__ import annotations

from dataclasses import dataclass

from mudproxy.engine.config import CastPriority
from mudproxy.engine.models import ActiveAilment


@dataclass(frozen=True)
class CastDecision:
    """One command chosen by a decision cycle."""

    family: CastPriority
    command: str
    description: str
    target: str = ""  # Empty for self or the whole party
    ailment: ActiveAilment | None = None  # Set for cures; marked pending once sent


def can_afford(mana_cost: int, current_mana: int) -> bool:
    """Heals and cures ignore the mana reserve: only the cost itself matters."""
    return mana_cost <= 0 or current_mana >= mana_cost


def with_target(command: str, target: str) -> str:
    return f"{command} {target}" if target else command
