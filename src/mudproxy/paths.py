# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Filesystem paths for profiles and session data."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

ENV_DATA_DIR = "MUDPROXY_DATA_DIR"
DEFAULT_PROFILE_NAME = "profile.json"


def default_data_dir() -> Path:
    """Get the default data directory."""
    env_root = os.getenv(ENV_DATA_DIR)
    if env_root:
        return Path(env_root)
    return Path(user_data_dir("mudproxy", "mudproxy"))


def default_profile_path(data_dir: Path | None = None) -> Path:
    """Location of the profile used when none is given on the command line."""
    return (data_dir or default_data_dir()) / DEFAULT_PROFILE_NAME


def ensure_data_dir(data_dir: Path) -> Path:
    """Create the data directory if needed."""
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
