# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Game text parsing.

The router reassembles lines across TCP reads, strips ANSI codes and routes
each line to the state tracker, the tick estimator, the cast lifecycle and the
party automation. A trailing line without a newline is checked for the HP
prompt straight away, since the prompt is never terminated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from mudproxy.engine.config import BuffTargetType, ProxyProfile
from mudproxy.engine.lifecycle import BuffLifecycle
from mudproxy.engine.models import PartyMember
from mudproxy.engine.party import PartyAutomation
from mudproxy.engine.patterns import contains, extract_target
from mudproxy.engine.rules import ProfileProvider
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator
from mudproxy.logging import get_logger
from mudproxy.terminal import strip_ansi

logger = get_logger(__name__)

PROMPT_RE = re.compile(
    r"\[HP=(\d+)(?:/(\d+))?(?:/(MA|KAI)=(\d+)(?:/(\d+))?)?\]:?\s*(\(Resting\))?",
    re.IGNORECASE,
)
COMBAT_ENGAGED_RE = re.compile(r"\*Combat Engaged\*")
COMBAT_OFF_RE = re.compile(r"\*Combat Off\*")
PLAYER_DEATH_RE = re.compile(r"due to a miracle, you have been saved", re.IGNORECASE)

PARTY_HEADER = "following people are in your travel party"
NOT_IN_PARTY = "You are not in a party"
PARTY_ROW_RE = re.compile(
    r"^\s{2}(\S.*?)\s+\((\w+)\)\s+(?:\[M:\s*(\d+)%\])?\s*\[H:\s*(\d+)%\]\s*([RPM]?)\s*-\s*(\w+)"
)
STARTED_FOLLOWING_RE = re.compile(r"You are now following (\w+)\.", re.IGNORECASE)
FOLLOWER_JOINED_RE = re.compile(r"(\w+) started to follow you\.", re.IGNORECASE)
FOLLOWER_LEFT_RE = re.compile(r"(\w+) is no longer following you\.", re.IGNORECASE)
FOLLOWER_REMOVED_RE = re.compile(r"(\w+) has been removed from your followers\.", re.IGNORECASE)
YOU_LEFT_PARTY_RE = re.compile(r"You are no longer following (\w+)\.", re.IGNORECASE)
PARTY_DISBANDED_RE = re.compile(r"Your party has been disbanded\.", re.IGNORECASE)

TELEPATH_STATUS_RE = re.compile(
    r"(\w+)\s+telepaths:\s*\{HP=(\d+)/(\d+)(?:,(MA|KAI)=(\d+)/(\d+))?(?:,\s*(?:Resting|Poisoned|Losing HPs))*\}",
    re.IGNORECASE,
)
TELEPATH_REQUEST_RE = re.compile(r"(\w+)\s+telepaths:\s*(@\w+)", re.IGNORECASE)

STAT_NAME_RE = re.compile(r"Name:\s*(.+?)\s{2,}Lives")
STAT_RACE_RE = re.compile(r"Race:\s*(\w+)")
STAT_CLASS_RE = re.compile(r"Class:\s*([A-Za-z]+)")  # Not "Armour Class: 20"
STAT_LEVEL_RE = re.compile(r"Level:\s*(\d+)")
STAT_HITS_RE = re.compile(r"Hits:\s*(\d+)/(\d+)")
STAT_MANA_RE = re.compile(r"Mana:\s*\*?\s*(\d+)/(\d+)")


@dataclass
class RouteResult:
    """What a chunk of text changed that the session has to react to."""

    ticks: int = 0  # Ticks inferred from damage bursts
    login_completed: bool = False
    lines: int = 0


class MessageRouter:
    """Routes game text to the engine components."""

    def __init__(
        self,
        state: StateTracker,
        tick: TickEstimator,
        lifecycle: BuffLifecycle,
        party: PartyAutomation,
        profile_provider: ProfileProvider,
    ) -> None:
        self.state = state
        self.tick = tick
        self.lifecycle = lifecycle
        self.party = party
        self._profile_provider = profile_provider
        self._partial = ""
        self._party_rows: list[PartyMember] | None = None
        self._in_stat_block = False

    def feed(self, text: str) -> RouteResult:
        """Process decoded game text from one network read."""
        result = RouteResult()
        profile = self._profile_provider()

        buffered = self._partial + text
        lines = buffered.split("\n")
        self._partial = lines.pop()
        for raw in lines:
            self.process_line(strip_ansi(raw).rstrip("\r"), profile, result)
            result.lines += 1

        if self._partial:
            fragment = strip_ansi(self._partial)
            match = PROMPT_RE.search(fragment)
            if match:
                self._finish_party_listing(profile)
                self._in_stat_block = False
                self._apply_prompt(match, result)
                # Consumed; only what follows the prompt waits for its newline
                self._partial = fragment[match.end() :]
        return result

    def reset(self) -> None:
        self._partial = ""
        self._party_rows = None
        self._in_stat_block = False

    # ------------------------------------------------------------------

    def process_line(self, line: str, profile: ProxyProfile, result: RouteResult) -> None:
        """Route one complete, ANSI-free line."""
        if self._collect_party_row(line, profile):
            return

        cast_failed = self.lifecycle.process_cast_failure(line)

        self._process_party(line, profile)
        self._process_stat(line)
        self._process_cures(line, profile)
        if not cast_failed:
            self._process_buffs(line, profile)

        if COMBAT_ENGAGED_RE.search(line):
            self.lifecycle.set_combat(True)
        elif COMBAT_OFF_RE.search(line):
            self.lifecycle.set_combat(False)

        match = PROMPT_RE.search(line)
        if match:
            self._in_stat_block = False
            self._apply_prompt(match, result)

        if self.tick.is_damage_message(line) and self.tick.on_damage():
            self.lifecycle.on_tick(source="damage")
            result.ticks += 1

        if PLAYER_DEATH_RE.search(line):
            self.lifecycle.on_player_death()

    def _apply_prompt(self, match: re.Match[str], result: RouteResult) -> None:
        hp, max_hp, mana_type, mana, max_mana, resting = match.groups()
        self.state.update_vitals(
            int(hp),
            int(max_hp) if max_hp else None,
            int(mana) if mana else None,
            int(max_mana) if max_mana else None,
            mana_type=mana_type,
            resting=resting is not None,
        )
        if self.lifecycle.complete_login():
            result.login_completed = True

    # ------------------------------------------------------------------
    # Party
    # ------------------------------------------------------------------

    def _collect_party_row(self, line: str, profile: ProxyProfile) -> bool:
        """Consume a line of an in-progress party listing."""
        if self._party_rows is None:
            return False
        match = PARTY_ROW_RE.match(line)
        if match:
            self._party_rows.append(_member_from_row(match))
            return True
        if not line.strip() or line.startswith("  "):
            # Blank padding or rows such as "[Invited]" entries
            return True
        self._finish_party_listing(profile)
        return False

    def _finish_party_listing(self, profile: ProxyProfile) -> None:
        if self._party_rows is None:
            return
        rows, self._party_rows = self._party_rows, None
        self.state.replace_party(rows)
        for ailment in profile.curing.ailments:
            if ailment.party_indicator:
                self.state.sync_indicator_ailment(ailment.id, ailment.party_indicator)

    def _process_party(self, line: str, profile: ProxyProfile) -> None:
        if NOT_IN_PARTY in line:
            self.state.clear_party()
            return
        if PARTY_HEADER in line:
            self._party_rows = []
            self.state.in_party = True
            return

        if match := STARTED_FOLLOWING_RE.search(line):
            self.party.on_joined_party(match.group(1))
        elif match := FOLLOWER_JOINED_RE.search(line):
            self.party.on_new_follower(match.group(1))
        elif match := FOLLOWER_LEFT_RE.search(line) or FOLLOWER_REMOVED_RE.search(line):
            self.state.remove_member(match.group(1))
        elif YOU_LEFT_PARTY_RE.search(line) or PARTY_DISBANDED_RE.search(line):
            self.state.clear_party()

        if match := TELEPATH_STATUS_RE.search(line):
            name, hp, max_hp, kind, mana, max_mana = match.groups()
            self.state.update_member_vitals(
                name,
                int(hp),
                int(max_hp),
                int(mana) if mana else 0,
                int(max_mana) if max_mana else 0,
                kind or "",
            )
        elif "telepaths:" in line and "{HP=" in line:
            logger.warning("telepath_status_unparsed", line=line)

    # ------------------------------------------------------------------
    # Player stats
    # ------------------------------------------------------------------

    def _process_stat(self, line: str) -> None:
        if match := STAT_NAME_RE.search(line):
            self._in_stat_block = True
            self.state.update_profile(name=match.group(1).strip())
        if not self._in_stat_block:
            return

        race = STAT_RACE_RE.search(line)
        class_name = STAT_CLASS_RE.search(line)
        level = STAT_LEVEL_RE.search(line)
        if race or class_name or level:
            self.state.update_profile(
                race=race.group(1) if race else None,
                class_name=class_name.group(1) if class_name else None,
                level=int(level.group(1)) if level else None,
            )

        hits = STAT_HITS_RE.search(line)
        mana = STAT_MANA_RE.search(line)
        if hits or mana:
            player = self.state.player
            self.state.update_vitals(
                int(hits.group(1)) if hits else player.current_hp,
                int(hits.group(2)) if hits else player.max_hp,
                int(mana.group(1)) if mana else player.current_mana,
                int(mana.group(2)) if mana else player.max_mana,
            )

    # ------------------------------------------------------------------
    # Cures and ailments
    # ------------------------------------------------------------------

    def _resolve_target(self, name: str) -> str:
        """Empty string for the player, the roster spelling for members."""
        if self.state.is_target_self(name):
            return ""
        member = self.state.get_member(name)
        return member.name if member else name

    def _process_cures(self, line: str, profile: ProxyProfile) -> None:
        curing = profile.curing

        if match := TELEPATH_REQUEST_RE.search(line):
            name, request = match.groups()
            ailment = curing.ailment_by_telepath_request(request)
            if ailment is not None:
                if self.state.is_target_self(name):
                    self.state.add_ailment(ailment.id, "")
                elif member := self.state.get_member(name):
                    self.state.add_ailment(ailment.id, member.name)
                else:
                    logger.debug("telepath_request_not_in_party", name=name)

        cured = False
        for spell in curing.cure_spells:
            for template in (spell.self_cast_message, spell.party_cast_message):
                target = extract_target(line, template)
                if target is None:
                    continue
                cured = True
                self.state.remove_ailment(spell.ailment_id, self._resolve_target(target) if target else "")

        # A cure message can quote the ailment name; it must not re-add it
        if cured:
            return
        for ailment in curing.ailments:
            if any(contains(line, msg) for msg in ailment.detection_messages):
                self.state.add_ailment(ailment.id, "")

    # ------------------------------------------------------------------
    # Buffs
    # ------------------------------------------------------------------

    def _process_buffs(self, line: str, profile: ProxyProfile) -> None:
        for config in profile.buffs:
            if config.self_cast_message:
                target = extract_target(line, config.self_cast_message, word_target=True)
                if target == "" or (target and self.state.is_target_self(target)):
                    self.state.record_cast_success(config, "")
                    continue

            if config.party_cast_message and config.target_type != BuffTargetType.SELF_ONLY:
                if "{target}" in config.party_cast_message:
                    target = extract_target(line, config.party_cast_message, word_target=True)
                    if target:
                        self.state.record_cast_success(config, self._resolve_target(target))

            if config.expire_message and contains(line, config.expire_message):
                self.state.expire_self_buff(config)


def _member_from_row(match: re.Match[str]) -> PartyMember:
    full_name = match.group(1).strip()
    indicator = match.group(5) or ""
    return PartyMember(
        name=full_name.split(" ")[0],
        full_name=full_name,
        class_name=match.group(2),
        mana_percent=int(match.group(3)) if match.group(3) else 0,
        health_percent=int(match.group(4)),
        indicator=indicator,
        is_resting=indicator == "R",
        is_poisoned=indicator == "P",
        is_meditating=indicator == "M",
        rank=match.group(6),
    )
