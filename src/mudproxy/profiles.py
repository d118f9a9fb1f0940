# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Profile store that picks up edits to the profile file between cycles."""

from __future__ import annotations

from pathlib import Path

from mudproxy.engine.config import ProxyProfile, load_profile
from mudproxy.errors import ProfileError
from mudproxy.logging import get_logger

logger = get_logger(__name__)


class ProfileStore:
    """Serves the current profile snapshot.

    ``get`` is the provider handed to the engine. It reloads the file when its
    modification time changes; a file that no longer parses keeps the last
    good profile in service.
    """

    def __init__(self, path: Path | None = None, profile: ProxyProfile | None = None) -> None:
        self.path = path
        self._profile = profile or ProxyProfile()
        self._mtime: float | None = None
        if path is not None and profile is None:
            self._profile = load_profile(path)
            self._mtime = self._stat()

    def _stat(self) -> float | None:
        if self.path is None:
            return None
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def get(self) -> ProxyProfile:
        mtime = self._stat()
        if self.path is not None and mtime is not None and mtime != self._mtime:
            self._mtime = mtime
            try:
                self._profile = load_profile(self.path)
                logger.info("profile_reloaded", path=str(self.path))
            except ProfileError as e:
                logger.warning("profile_reload_failed", path=str(self.path), error=str(e))
        return self._profile

    def replace(self, profile: ProxyProfile) -> None:
        """Swap in a new profile; takes effect on the next decision cycle."""
        self._profile = profile
