"""Tests for cast timing and session phase gating."""

from __future__ import annotations

import pytest

from mudproxy.engine import events as ev
from mudproxy.engine.events import EngineEvent
from mudproxy.engine.lifecycle import BuffLifecycle, SessionPhase
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator


@pytest.fixture
def lifecycle(state: StateTracker, tick: TickEstimator, provider, sent: list[str], clock) -> BuffLifecycle:
    return BuffLifecycle(state, tick, provider, sent.append, clock=clock)


@pytest.fixture
def in_game(lifecycle: BuffLifecycle) -> BuffLifecycle:
    lifecycle.complete_login()
    return lifecycle


def test_login_phase_pauses_commands(lifecycle: BuffLifecycle, sent: list[str]) -> None:
    assert lifecycle.phase == SessionPhase.LOGIN
    assert lifecycle.commands_paused
    assert lifecycle.check_auto_recast() is None
    assert sent == []


def test_complete_login_only_once(lifecycle: BuffLifecycle, state: StateTracker) -> None:
    seen: list[EngineEvent] = []
    state.events.subscribe(seen.append)

    assert lifecycle.complete_login() is True
    assert lifecycle.complete_login() is False
    assert [e.name for e in seen] == [ev.LOGIN_COMPLETE]


def test_restart_login_pauses_again(in_game: BuffLifecycle) -> None:
    in_game.set_combat(True)
    in_game.restart_login()

    assert in_game.commands_paused
    assert not in_game.in_combat


def test_manual_pause(in_game: BuffLifecycle, sent: list[str]) -> None:
    in_game.paused = True
    assert in_game.check_auto_recast() is None
    assert sent == []


def test_sends_decision(in_game: BuffLifecycle, sent: list[str], state: StateTracker) -> None:
    logs: list[str] = []
    state.events.subscribe(lambda e: logs.append(e.data.get("message", "")) if e.name == ev.LOG else None)

    decision = in_game.check_auto_recast()

    assert decision is not None
    assert sent == ["bless"]
    assert logs == ["Auto-cast: Bless (cost: 10, have: 100)"]


def test_cast_cooldown(in_game: BuffLifecycle, sent: list[str], clock) -> None:
    in_game.check_auto_recast()

    clock.advance(5.0)
    assert in_game.check_auto_recast() is None
    clock.advance(0.5)
    assert in_game.check_auto_recast() is not None
    assert sent == ["bless", "bless"]


def test_tick_clears_cooldown_but_not_min_interval(in_game: BuffLifecycle, sent: list[str], clock) -> None:
    in_game.check_auto_recast()
    in_game.on_tick()

    clock.advance(0.25)
    assert in_game.check_auto_recast() is None
    clock.advance(0.25)
    assert in_game.check_auto_recast() is not None


@pytest.mark.parametrize(
    "text",
    [
        "You attempt to cast bless, but fail.",
        "You do not have enough mana to cast that spell.",
        "You have already cast a spell this round!",
    ],
)
def test_cast_failure_blocks_until_tick(in_game: BuffLifecycle, sent: list[str], clock, text: str) -> None:
    assert in_game.process_cast_failure(text) is True
    clock.advance(30)
    assert in_game.check_auto_recast() is None

    in_game.on_tick()
    assert in_game.check_auto_recast() is not None
    assert sent == ["bless"]


def test_ordinary_text_is_not_a_failure(in_game: BuffLifecycle) -> None:
    assert in_game.process_cast_failure("You feel blessed.") is False
    assert not in_game.cast_blocked_until_tick


def test_pre_tick_guard(in_game: BuffLifecycle, tick: TickEstimator, sent: list[str], clock) -> None:
    tick.record_tick()

    clock.advance(4.0)
    assert in_game.check_out_of_combat() is None

    clock.advance(2.0)
    assert in_game.check_out_of_combat() is not None
    assert sent == ["bless"]


def test_unknown_tick_is_safe(in_game: BuffLifecycle) -> None:
    assert in_game.check_out_of_combat() is not None


def test_idle_poll_skips_combat_and_disconnects(in_game: BuffLifecycle) -> None:
    assert in_game.check_out_of_combat(connected=False) is None
    in_game.set_combat(True)
    assert in_game.check_out_of_combat() is None
    # Tick-driven casts still run in combat
    assert in_game.check_auto_recast() is not None


def test_cure_is_marked_pending(in_game: BuffLifecycle, state: StateTracker, sent: list[str]) -> None:
    state.add_ailment("poison")

    decision = in_game.check_auto_recast()

    assert decision is not None
    assert sent == ["cure"]
    assert state.ailments[0].cure_pending


def test_rollover_is_a_tick_out_of_combat(in_game: BuffLifecycle, tick: TickEstimator, state: StateTracker, clock) -> None:
    seen: list[EngineEvent] = []
    state.events.subscribe(seen.append)
    tick.record_tick()
    in_game.cast_blocked_until_tick = True

    clock.advance(5.0)
    assert in_game.poll_tick_rollover() is True
    assert not in_game.cast_blocked_until_tick
    assert seen[-1].name == ev.TICK
    assert seen[-1].data["source"] == "timer"


def test_rollover_in_combat_is_not_a_tick(in_game: BuffLifecycle, tick: TickEstimator, clock) -> None:
    in_game.set_combat(True)
    tick.record_tick()
    in_game.cast_blocked_until_tick = True

    clock.advance(5.0)
    assert in_game.poll_tick_rollover() is False
    assert in_game.cast_blocked_until_tick
    assert tick.next_tick == pytest.approx(clock.now + 5.0)


def test_combat_changes_emit_once(in_game: BuffLifecycle, state: StateTracker) -> None:
    seen: list[EngineEvent] = []
    state.events.subscribe(seen.append)

    in_game.set_combat(True)
    in_game.set_combat(True)
    in_game.on_player_death()

    assert [e.name for e in seen] == [ev.COMBAT_CHANGED, ev.COMBAT_CHANGED, ev.PLAYER_DEATH]
    assert not in_game.in_combat
