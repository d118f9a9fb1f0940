# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport layer for game server connections."""

from __future__ import annotations

from mudproxy.transport.base import ConnectionTransport
from mudproxy.transport.framing import FrameResult, TelnetFramer
from mudproxy.transport.telnet import TelnetTransport

__all__ = ["ConnectionTransport", "FrameResult", "TelnetFramer", "TelnetTransport"]
