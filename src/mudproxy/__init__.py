# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Telnet companion proxy that automates cures, heals and buffs for a MUD."""

from __future__ import annotations

__version__ = "0.1.0"
