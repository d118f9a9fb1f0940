# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from mudproxy.engine.config import ProxyProfile, load_profile
from mudproxy.errors import ProfileError
from mudproxy.logging import configure_logging, get_logger
from mudproxy.paths import default_profile_path, ensure_data_dir
from mudproxy.profiles import ProfileStore
from mudproxy.proxy import ProxyServer
from mudproxy.settings import Settings

logger = get_logger(__name__)


def _profile_store(settings: Settings) -> ProfileStore:
    path = settings.profile_path
    if path is None:
        candidate = default_profile_path(settings.data_dir)
        if not candidate.exists():
            logger.info("profile_default_empty", looked_for=str(candidate))
            return ProfileStore()
        path = candidate
    return ProfileStore(path)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """mudproxy command line interface."""


@cli.command("run")
@click.option("--listen-host", default=None, help="Interface the game client connects to.")
@click.option("--listen-port", type=int, default=None)
@click.option("--upstream-host", default=None, help="Game server hostname.")
@click.option("--upstream-port", type=int, default=None)
@click.option("--profile", "profile_path", type=click.Path(path_type=Path), default=None)
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
def run(
    listen_host: str | None,
    listen_port: int | None,
    upstream_host: str | None,
    upstream_port: int | None,
    profile_path: Path | None,
    log_level: str | None,
) -> None:
    """Run the proxy until interrupted.

    Options override MUDPROXY_* environment settings.

    Examples:
        mudproxy run --upstream-host mud.example.org --upstream-port 23
        mudproxy run --profile ~/cleric.yaml --listen-port 4000
    """
    overrides = {
        "listen_host": listen_host,
        "listen_port": listen_port,
        "upstream_host": upstream_host,
        "upstream_port": upstream_port,
        "profile_path": profile_path,
        "log_level": log_level,
    }
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    configure_logging(settings)

    try:
        store = _profile_store(settings)
    except ProfileError as e:
        raise click.ClickException(str(e)) from e

    server = ProxyServer(settings, store.get)
    try:
        asyncio.run(server.serve_forever())
    except OSError as e:
        raise click.ClickException(f"Cannot listen on {settings.listen_host}:{settings.listen_port}: {e}") from e
    except KeyboardInterrupt:
        click.echo("Stopped.")


@cli.command("check-profile")
@click.argument("path", type=click.Path(path_type=Path))
def check_profile(path: Path) -> None:
    """Validate a profile file and summarize what it automates."""
    try:
        profile = load_profile(path)
    except ProfileError as e:
        raise click.ClickException(str(e)) from e

    healing = profile.healing
    curing = profile.curing
    click.echo(f"Profile: {path}")
    if profile.character_name:
        click.echo(f"Character: {profile.character_name}")
    auto = sum(1 for buff in profile.buffs if buff.auto_recast)
    click.echo(f"Buffs: {len(profile.buffs)} ({auto} auto-recast)")
    click.echo(
        f"Heal spells: {len(healing.spells)}, rules: {len(healing.self_rules)} self, "
        f"{len(healing.party_rules)} party, {len(healing.party_wide_rules)} party-wide"
    )
    click.echo(f"Ailments: {len(curing.ailments)}, cure spells: {len(curing.cure_spells)}")
    click.echo(f"Priority: {' > '.join(str(p) for p in curing.priority_order)}")


@cli.command("init-profile")
@click.argument("path", type=click.Path(path_type=Path), required=False)
@click.option("--character", default="", help="Character name stored in the profile.")
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def init_profile(path: Path | None, character: str, force: bool) -> None:
    """Write an empty profile (JSON or YAML by suffix) to edit by hand."""
    if path is None:
        settings = Settings()
        path = default_profile_path(ensure_data_dir(settings.data_dir))
    if path.exists() and not force:
        raise click.ClickException(f"{path} exists; use --force to overwrite")

    profile = ProxyProfile(character_name=character)
    if path.suffix.lower() in {".yaml", ".yml"}:
        profile.to_yaml(path)
    else:
        profile.to_json(path)
    click.echo(f"Wrote {path}")


def main() -> None:
    cli.main()


if __name__ == "__main__":
    main()
