"""Tests for the state tracker."""

from __future__ import annotations

from hypothesis import given, strategies as st

from mudproxy.engine import events as ev
from mudproxy.engine.config import BuffConfiguration
from mudproxy.engine.events import EngineEvent, EventBus
from mudproxy.engine.models import ActiveBuff, PartyMember, PlayerInfo
from mudproxy.engine.state import StateTracker


def _members(*names: str, health: int = 100) -> list[PartyMember]:
    return [PartyMember(name=n, full_name=n, health_percent=health) for n in names]


def test_is_target_self(state: StateTracker) -> None:
    state.update_profile(name="Gandalf Grey")

    assert state.is_target_self("Gandalf Grey")
    assert state.is_target_self("gandalf")
    assert state.is_target_self("GANDALF GREY THE WISE")
    assert not state.is_target_self("Gand")
    assert not state.is_target_self("Frodo")
    assert not state.is_target_self("")


def test_is_target_self_without_name(clock) -> None:
    assert not StateTracker(clock=clock).is_target_self("anyone")


def test_vitals_without_maximum_grow_maximum() -> None:
    player = PlayerInfo()
    player.update_vitals(80, None, 20, None)
    player.update_vitals(120, None, 10, None)

    assert player.max_hp == 120
    assert player.max_mana == 20
    assert player.current_mana == 10


def test_vitals_are_clamped() -> None:
    player = PlayerInfo()
    player.update_vitals(150, 100, -5, 50)

    assert player.current_hp == 100
    assert player.current_mana == 0


def test_unknown_max_hp_reads_full() -> None:
    assert PlayerInfo().hp_percent == 100.0
    assert PlayerInfo().mana_percent == 0


def test_update_vitals_tracks_resting(state: StateTracker) -> None:
    state.update_vitals(50, 100, 40, 100, mana_type="kai", resting=True)

    assert state.is_resting
    assert state.player.mana_type == "KAI"
    assert state.player.hp_percent == 50.0


def test_add_ailment_is_idempotent(state: StateTracker) -> None:
    assert state.add_ailment("poison") is True
    assert state.add_ailment("poison") is False
    assert len(state.ailments) == 1


def test_ailments_are_per_target(state: StateTracker) -> None:
    state.replace_party(_members("Frodo"))
    state.add_ailment("poison")
    state.add_ailment("poison", "Frodo")

    assert state.remove_ailment("poison", "frodo") is True
    assert [a.target_name for a in state.ailments] == [""]


def test_replace_party_prunes_departed_members(state: StateTracker, buff_factory) -> None:
    bless = buff_factory()
    state.replace_party(_members("Frodo", "Sam"))
    state.record_cast_success(bless, "Sam")
    state.record_cast_success(bless)
    state.add_ailment("poison", "Sam")

    state.replace_party(_members("Frodo"))

    assert [m.name for m in state.members] == ["Frodo"]
    assert [b.target_name for b in state.buffs] == [""]
    assert state.ailments == []


def test_replace_party_skips_duplicates(state: StateTracker) -> None:
    state.replace_party(_members("Frodo", "frodo", "Sam"))
    assert [m.name for m in state.members] == ["Frodo", "Sam"]


def test_replace_party_keeps_telepath_maxima(state: StateTracker) -> None:
    state.replace_party(_members("Frodo"))
    state.update_member_vitals("Frodo", 40, 80, 10, 20, "MA")

    state.replace_party(_members("Frodo", health=50))

    frodo = state.get_member("Frodo")
    assert frodo is not None
    assert frodo.max_hp == 80
    assert frodo.current_hp == 40
    assert frodo.effective_health_percent == 50


def test_empty_listing_leaves_party(state: StateTracker) -> None:
    state.replace_party(_members("Frodo"))
    state.replace_party([])
    assert not state.in_party


def test_telepath_from_unknown_member_only_inside_party(state: StateTracker) -> None:
    assert state.update_member_vitals("Frodo", 10, 20) is None

    state.in_party = True
    member = state.update_member_vitals("Frodo", 10, 20, 5, 10, "KAI")
    assert member is not None
    assert member.resource_type == "Kai"
    assert member.effective_health_percent == 50


def test_telepath_from_self_is_ignored(state: StateTracker) -> None:
    state.in_party = True
    assert state.update_member_vitals("Gandalf", 10, 20) is None
    assert state.members == []


def test_other_members_excludes_player(state: StateTracker) -> None:
    state.replace_party(_members("Gandalf", "Frodo"))
    assert [m.name for m in state.other_members()] == ["Frodo"]


def test_remove_member(state: StateTracker) -> None:
    state.replace_party(_members("Frodo"))
    assert state.remove_member("FRODO") is True
    assert state.remove_member("Frodo") is False
    assert not state.in_party


def test_cast_success_refreshes_instance(state: StateTracker, clock, buff_factory) -> None:
    bless = buff_factory()
    state.record_cast_success(bless)
    clock.advance(30)
    state.record_cast_success(bless)

    assert len(state.buffs) == 1
    assert state.buffs[0].time_remaining(clock.now) == 60


def test_expire_self_buff_leaves_party_instances(state: StateTracker, buff_factory) -> None:
    bless = buff_factory()
    state.replace_party(_members("Frodo"))
    state.record_cast_success(bless)
    state.record_cast_success(bless, "Frodo")

    assert state.expire_self_buff(bless) is True
    assert [b.target_name for b in state.buffs] == ["Frodo"]
    assert state.expire_self_buff(bless) is False


def test_sweep_expired_buffs(state: StateTracker, clock, buff_factory) -> None:
    state.record_cast_success(buff_factory(duration_seconds=10))
    state.record_cast_success(buff_factory(id="shield", duration_seconds=100))

    clock.advance(10)
    assert state.sweep_expired_buffs() == 1
    assert [b.config.id for b in state.buffs] == ["shield"]


@given(
    cast=st.floats(min_value=0, max_value=1e6),
    duration=st.integers(min_value=1, max_value=10_000),
    elapsed=st.floats(min_value=0, max_value=20_000),
)
def test_buff_expiry_matches_duration(cast: float, duration: int, elapsed: float) -> None:
    buff = ActiveBuff(config=BuffConfiguration(duration_seconds=duration), target_name="", cast_time=cast)
    now = cast + elapsed

    assert buff.expire_time == cast + duration
    assert buff.is_expired(now) == (now >= cast + duration)
    assert 0.0 <= buff.percent_remaining(now) <= 100.0 + 1e-6


def test_cure_release_after_window(state: StateTracker, clock) -> None:
    state.add_ailment("poison")
    ailment = state.ailments[0]
    state.mark_cure_initiated(ailment)

    clock.advance(9.5)
    assert state.release_expired_cures(10.0) == []
    clock.advance(0.5)
    assert state.release_expired_cures(10.0) == [ailment]
    assert not ailment.cure_pending


def test_sync_indicator_ailment(state: StateTracker) -> None:
    members = _members("Frodo", "Sam")
    members[0].indicator = "P"
    state.replace_party(members)

    state.sync_indicator_ailment("poison", "P")
    assert [a.target_name for a in state.ailments] == ["Frodo"]

    members = _members("Frodo", "Sam")
    state.replace_party(members)
    state.sync_indicator_ailment("poison", "P")
    assert state.ailments == []


def test_events_are_emitted(clock) -> None:
    bus = EventBus()
    seen: list[EngineEvent] = []
    bus.subscribe(seen.append)
    tracker = StateTracker(bus, clock=clock)

    tracker.add_ailment("poison")

    assert [e.name for e in seen] == [ev.AILMENTS_CHANGED]
    assert seen[0].data == {"ailment": "poison", "target": ""}


def test_failing_subscriber_does_not_break_emit(clock) -> None:
    bus = EventBus()
    seen: list[str] = []

    def broken(event: EngineEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(broken)
    unsubscribe = bus.subscribe(lambda e: seen.append(e.name))
    bus.emit(ev.TICK)
    unsubscribe()
    bus.emit(ev.TICK)

    assert seen == [ev.TICK]


def test_reset(state: StateTracker) -> None:
    state.add_ailment("poison")
    state.reset()
    assert state.ailments == []
    assert state.player.name == ""
