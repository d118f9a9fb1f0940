# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Terminal text helpers."""

from __future__ import annotations

from mudproxy.terminal.ansi import strip_ansi

__all__ = ["strip_ansi"]
