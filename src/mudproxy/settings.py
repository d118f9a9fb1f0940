# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mudproxy.constants import DEFAULT_LISTEN_HOST, DEFAULT_LISTEN_PORT, DEFAULT_UPSTREAM_PORT
from mudproxy.paths import default_data_dir


class Settings(BaseSettings):
    data_dir: Path = Field(default_factory=default_data_dir)
    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"
    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT
    upstream_host: str = "localhost"
    upstream_port: int = DEFAULT_UPSTREAM_PORT
    profile_path: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="MUDPROXY_",
        env_nested_delimiter="__",
        extra="ignore",
    )
