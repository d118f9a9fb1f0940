# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy for mudproxy."""


class MudProxyError(Exception):
    """Base exception for mudproxy."""

    pass


class TransportError(MudProxyError, ConnectionError):
    """Connection to the game server failed or was lost."""

    pass


class ProfileError(MudProxyError):
    """Profile file is missing, unreadable or invalid."""

    pass
