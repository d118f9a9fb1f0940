# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Decision engine: game state, tick estimation and cast rules."""

from __future__ import annotations

from mudproxy.engine.config import ProxyProfile, load_profile
from mudproxy.engine.decision import CastDecision
from mudproxy.engine.events import EngineEvent, EventBus
from mudproxy.engine.lifecycle import BuffLifecycle, SessionPhase
from mudproxy.engine.party import PartyAutomation
from mudproxy.engine.router import MessageRouter, RouteResult
from mudproxy.engine.rules import RuleEngine
from mudproxy.engine.state import StateTracker
from mudproxy.engine.tick import TickEstimator

__all__ = [
    "BuffLifecycle",
    "CastDecision",
    "EngineEvent",
    "EventBus",
    "MessageRouter",
    "PartyAutomation",
    "ProxyProfile",
    "RouteResult",
    "RuleEngine",
    "SessionPhase",
    "StateTracker",
    "TickEstimator",
    "load_profile",
]
