# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""TCP proxy between a game client and the game server."""

from __future__ import annotations

from mudproxy.proxy.server import ProxyServer
from mudproxy.proxy.session import ClientLink, ProxySession

__all__ = ["ClientLink", "ProxyServer", "ProxySession"]
