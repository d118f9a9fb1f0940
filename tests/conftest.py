"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, Mock

import pytest

from mudproxy.engine.config import (
    AilmentConfiguration,
    BuffConfiguration,
    BuffTargetType,
    CureSpellConfiguration,
    HealingConfiguration,
    HealRule,
    HealSpellConfiguration,
    ProxyProfile,
)
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def mock_reader() -> Mock:
    """Mock asyncio StreamReader."""
    reader = AsyncMock()
    reader.read = AsyncMock(return_value=b"")
    return reader


@pytest.fixture
def mock_writer() -> Mock:
    """Mock asyncio StreamWriter."""
    writer = AsyncMock()
    writer.write = Mock()
    writer.drain = AsyncMock()
    writer.close = Mock()
    writer.wait_closed = AsyncMock()
    writer.is_closing = Mock(return_value=False)
    return writer


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sent() -> list[str]:
    """Commands captured from a send_command sink."""
    return []


@pytest.fixture
def state(clock: FakeClock) -> StateTracker:
    """State for a level 10 cleric named Gandalf at full health."""
    tracker = StateTracker(clock=clock)
    tracker.update_profile(name="Gandalf", class_name="Cleric", level=10)
    tracker.update_vitals(100, 100, 100, 100)
    return tracker


@pytest.fixture
def tick(clock: FakeClock) -> TickEstimator:
    return TickEstimator(clock=clock)


def make_poison() -> tuple[AilmentConfiguration, CureSpellConfiguration]:
    ailment = AilmentConfiguration(
        id="poison",
        display_name="Poison",
        detection_messages=["You feel sick!"],
        party_indicator="P",
        telepath_request="@held",
    )
    spell = CureSpellConfiguration(
        id="cure-poison",
        display_name="Cure Poison",
        command="cure",
        mana_cost=5,
        ailment_id="poison",
        self_cast_message="You feel much better.",
        party_cast_message="You cure {target} of poison!",
    )
    return ailment, spell


def make_bless(**overrides: object) -> BuffConfiguration:
    values: dict[str, object] = {
        "id": "bless",
        "display_name": "Bless",
        "command": "bless",
        "duration_seconds": 60,
        "mana_cost": 10,
        "target_type": BuffTargetType.SELF_ONLY,
        "self_cast_message": "You feel blessed.",
        "party_cast_message": "You bless {target}.",
        "expire_message": "The blessing fades.",
        "auto_recast": True,
        "recast_buffer_seconds": 10,
    }
    values.update(overrides)
    return BuffConfiguration(**values)


def make_healing() -> HealingConfiguration:
    """Minor heal, major heal and a group heal with regular and critical rules."""
    return HealingConfiguration(
        spells=[
            HealSpellConfiguration(id="minor", display_name="Minor Heal", command="mihe", mana_cost=3),
            HealSpellConfiguration(id="major", display_name="Major Heal", command="mahe", mana_cost=10),
            HealSpellConfiguration(id="group", display_name="Group Heal", command="grhe", mana_cost=20),
        ],
        self_rules=[
            HealRule(heal_spell_id="minor", hp_threshold_percent=80),
            HealRule(heal_spell_id="major", hp_threshold_percent=30, critical=True),
        ],
        party_rules=[
            HealRule(heal_spell_id="minor", hp_threshold_percent=70),
            HealRule(heal_spell_id="major", hp_threshold_percent=25, critical=True),
        ],
        party_wide_rules=[
            HealRule(heal_spell_id="group", hp_threshold_percent=60, is_party_heal_rule=True, party_percent_required=50),
        ],
    )


@pytest.fixture
def profile() -> ProxyProfile:
    ailment, cure = make_poison()
    profile = ProxyProfile(character_name="Gandalf", buffs=[make_bless()], healing=make_healing())
    profile.curing.ailments = [ailment]
    profile.curing.cure_spells = [cure]
    return profile


@pytest.fixture
def provider(profile: ProxyProfile) -> Callable[[], ProxyProfile]:
    return lambda: profile


@pytest.fixture
def buff_factory() -> Callable[..., BuffConfiguration]:
    """Build a Bless buff with field overrides."""
    return make_bless


@pytest.fixture
def poison() -> tuple[AilmentConfiguration, CureSpellConfiguration]:
    return make_poison()
