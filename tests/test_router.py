"""Tests for game text routing."""

from __future__ import annotations

import pytest

from mudproxy.engine.config import BuffTargetType, ProxyProfile
from mudproxy.engine.lifecycle import BuffLifecycle
from mudproxy.engine.party import PartyAutomation
from mudproxy.engine.router import MessageRouter
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator

PARTY_LISTING = (
    "The following people are in your travel party:\r\n"
    "  Gandalf Grey         (Cleric) [M: 90%] [H:100%]   - Leader\r\n"
    "  Frodo Baggins        (Warrior)         [H: 45%] P - Frontrank\r\n"
    "  Sam Gamgee           (Mage)    [M: 20%] [H: 80%] R - Backrank\r\n"
    "[HP=100/MA=100]:"
)


@pytest.fixture
def lifecycle(state: StateTracker, tick: TickEstimator, provider, sent: list[str], clock) -> BuffLifecycle:
    return BuffLifecycle(state, tick, provider, sent.append, clock=clock)


@pytest.fixture
def router(state: StateTracker, tick: TickEstimator, lifecycle: BuffLifecycle, provider, sent, clock) -> MessageRouter:
    party = PartyAutomation(state, provider, sent.append, is_paused=lambda: lifecycle.commands_paused, clock=clock)
    return MessageRouter(state, tick, lifecycle, party, provider)


def test_prompt_updates_vitals_and_completes_login(router: MessageRouter, state: StateTracker) -> None:
    result = router.feed("\x1b[1;37m[HP=80/120/MA=40/60]:\x1b[0m")

    assert result.login_completed
    assert state.player.current_hp == 80
    assert state.player.max_hp == 120
    assert state.player.current_mana == 40
    assert state.player.max_mana == 60
    assert not router.feed("[HP=81/120/MA=40/60]:").login_completed


def test_prompt_reports_resting_and_kai(router: MessageRouter, state: StateTracker) -> None:
    router.feed("[HP=50/KAI=7]: (Resting)")

    assert state.is_resting
    assert state.player.mana_type == "KAI"
    assert state.player.current_mana == 7


def test_lines_are_reassembled_across_reads(router: MessageRouter, state: StateTracker) -> None:
    router.feed("You feel bl")
    assert state.buffs == []

    result = router.feed("essed.\r\n")

    assert result.lines == 1
    assert [b.config.id for b in state.buffs] == ["bless"]


def test_party_listing(router: MessageRouter, state: StateTracker) -> None:
    router.feed(PARTY_LISTING)

    assert state.in_party
    assert [m.name for m in state.members] == ["Gandalf", "Frodo", "Sam"]
    frodo = state.get_member("Frodo")
    assert frodo is not None
    assert frodo.full_name == "Frodo Baggins"
    assert frodo.class_name == "Warrior"
    assert frodo.health_percent == 45
    assert frodo.is_poisoned
    assert frodo.rank == "Frontrank"
    sam = state.get_member("Sam")
    assert sam is not None
    assert sam.mana_percent == 20
    assert sam.is_resting
    # The poison glyph turns into a tracked ailment
    assert [(a.ailment_id, a.target_name) for a in state.ailments] == [("poison", "Frodo")]


def test_party_listing_ends_at_first_unindented_line(router: MessageRouter, state: StateTracker) -> None:
    router.feed(
        "The following people are in your travel party:\r\n"
        "  Frodo Baggins        (Warrior)         [H: 45%]   - Frontrank\r\n"
        "Obvious exits: north\r\n"
    )

    assert [m.name for m in state.members] == ["Frodo"]


def test_leaving_party(router: MessageRouter, state: StateTracker) -> None:
    router.feed(PARTY_LISTING)
    router.feed("You are not in a party at the moment.\r\n")

    assert not state.in_party
    assert state.members == []
    assert state.ailments == []


def test_follower_left(router: MessageRouter, state: StateTracker) -> None:
    router.feed(PARTY_LISTING)
    router.feed("Sam is no longer following you.\r\n")

    assert [m.name for m in state.members] == ["Gandalf", "Frodo"]


def test_new_follower_requests_status(router: MessageRouter, lifecycle: BuffLifecycle, sent: list[str]) -> None:
    lifecycle.complete_login()

    router.feed("Frodo started to follow you.\r\n")

    assert sent == ["par", "/Frodo @health"]


def test_telepath_status(router: MessageRouter, state: StateTracker) -> None:
    router.feed(PARTY_LISTING)
    router.feed("Frodo telepaths: {HP=30/60,MA=10/20,Poisoned}\r\n")

    frodo = state.get_member("Frodo")
    assert frodo is not None
    assert frodo.max_hp == 60
    assert frodo.effective_health_percent == 50
    assert frodo.effective_mana_percent == 50


def test_telepath_request_from_member(router: MessageRouter, state: StateTracker) -> None:
    router.feed(PARTY_LISTING)
    router.feed("Sam telepaths: @held\r\n")

    assert ("poison", "Sam") in [(a.ailment_id, a.target_name) for a in state.ailments]


def test_telepath_request_from_stranger_is_ignored(router: MessageRouter, state: StateTracker) -> None:
    router.feed("Saruman telepaths: @held\r\n")
    assert state.ailments == []


def test_ailment_detection_and_cure(router: MessageRouter, state: StateTracker) -> None:
    router.feed("You feel sick!\r\n")
    assert [(a.ailment_id, a.target_name) for a in state.ailments] == [("poison", "")]

    router.feed("You feel much better.\r\n")
    assert state.ailments == []


def test_party_cure_message(router: MessageRouter, state: StateTracker) -> None:
    router.feed(PARTY_LISTING)
    router.feed("You cure frodo of poison!\r\n")

    assert state.ailments == []


def test_self_buff_expiry(router: MessageRouter, state: StateTracker) -> None:
    router.feed("You feel blessed.\r\n")
    router.feed("The blessing fades.\r\n")

    assert state.buffs == []


def test_party_buff_success(router: MessageRouter, state: StateTracker, profile: ProxyProfile, buff_factory) -> None:
    profile.buffs = [buff_factory(target_type=BuffTargetType.ALL_PARTY)]
    router.feed(PARTY_LISTING)

    router.feed("You bless FRODO.\r\n")

    assert [b.target_name for b in state.buffs] == ["Frodo"]


def test_failed_cast_line_is_not_a_success(router: MessageRouter, state: StateTracker, lifecycle: BuffLifecycle) -> None:
    router.feed("You attempt to cast bless, but fail. You feel blessed.\r\n")

    assert lifecycle.cast_blocked_until_tick
    assert state.buffs == []


def test_combat_markers(router: MessageRouter, lifecycle: BuffLifecycle) -> None:
    router.feed("*Combat Engaged*\r\n")
    assert lifecycle.in_combat
    router.feed("*Combat Off*\r\n")
    assert not lifecycle.in_combat


def test_damage_burst_is_one_tick(router: MessageRouter, tick: TickEstimator) -> None:
    result = router.feed(
        "You slash the orc for 12 damage!\r\n"
        "The orc bites you for 3 damage!\r\n"
    )

    assert result.ticks == 1
    assert tick.next_tick is not None


def test_death_ends_combat(router: MessageRouter, lifecycle: BuffLifecycle) -> None:
    lifecycle.set_combat(True)
    router.feed("Due to a miracle, you have been saved from death!\r\n")
    assert not lifecycle.in_combat


def test_stat_screen(router: MessageRouter, state: StateTracker) -> None:
    router.feed(
        "Name: Gandalf Grey          Lives/CP:      9/0\r\n"
        "Race: Human      Exp: 123456         Perception:   50\r\n"
        "Class: Cleric    Level: 12           Stealth:       0\r\n"
        "Hits:    80/120  Armour Class:  20/0 Thievery:      0\r\n"
        "Mana: *  30/60   Spellcasting: 60    Traps:         0\r\n"
    )

    player = state.player
    assert player.name == "Gandalf Grey"
    assert player.race == "Human"
    assert player.class_name == "Cleric"
    assert player.level == 12
    assert (player.current_hp, player.max_hp) == (80, 120)
    assert (player.current_mana, player.max_mana) == (30, 60)


def test_level_text_outside_stat_screen_is_ignored(router: MessageRouter, state: StateTracker) -> None:
    router.feed("Level: 99 is the cap.\r\n")
    assert state.player.level == 10
