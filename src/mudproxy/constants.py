# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared constants for mudproxy."""

from __future__ import annotations

# Character encoding used by the legacy game server
CP437 = "cp437"

# Outgoing command terminator
COMMAND_EOL = "\r\n"

# Default network settings
DEFAULT_LISTEN_HOST = "127.0.0.1"
DEFAULT_LISTEN_PORT = 2323
DEFAULT_UPSTREAM_PORT = 23

# Default timeouts
DEFAULT_READ_TIMEOUT_MS = 250
DEFAULT_MAX_BYTES = 8192
DEFAULT_CONNECT_TIMEOUT_S = 30.0
