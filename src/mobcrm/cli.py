"""CLI for mob-crm — serve the MCP tools and run merges from the shell."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from mobcrm import __version__
from mobcrm.config import ConfigError, CrmConfig, load_config
from mobcrm.core.logging import bind_user, configure_logging
from mobcrm.db import Database

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(".")

_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_DIR,
    show_default=True,
    help="Directory containing crm.toml",
)
_user_option = click.option(
    "--user",
    "user_id",
    default=None,
    help="User id to act as (defaults to crm.default_user_id)",
)


def _load(config_path: Path) -> CrmConfig:
    from mobcrm.server import build_contacts_module

    try:
        config = load_config(config_path)
        build_contacts_module(config)
    except ConfigError as exc:
        click.echo(f"Config error: {exc}", err=True)
        sys.exit(1)
    configure_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=config.logging.log_file,
    )
    return config


def _resolve_user(config: CrmConfig, user_id: str | None) -> str:
    resolved = user_id or config.default_user_id
    if not resolved:
        click.echo("No --user given and crm.default_user_id is not set", err=True)
        sys.exit(1)
    bind_user(resolved)
    return resolved


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """mob-crm — personal CRM contact merge and duplicate detection."""


@cli.command()
@_config_option
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address")
def serve(config_path: Path, host: str) -> None:
    """Serve the contact tools over MCP (SSE)."""
    from mobcrm.server import serve as _serve

    config = _load(config_path)
    click.echo(f"Starting {config.name} on port {config.port}")
    asyncio.run(_serve(config, host=host))


@cli.command("init-db")
@_config_option
def init_db(config_path: Path) -> None:
    """Provision the database and create the CRM tables."""
    config = _load(config_path)

    async def _run() -> None:
        db = Database.from_env(config.db.name, schema=config.db.schema)
        await db.provision()
        await db.connect()
        try:
            await db.init_schema()
        finally:
            await db.close()

    asyncio.run(_run())
    click.echo(f"Schema ready in database {config.db.name}")


@cli.command()
@_config_option
@_user_option
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Max rows to print")
def duplicates(config_path: Path, user_id: str | None, limit: int | None) -> None:
    """List candidate duplicate contacts as JSON."""
    from mobcrm.server import build_contacts_module
    from mobcrm.tools.duplicates import contact_find_duplicates

    config = _load(config_path)
    user = _resolve_user(config, user_id)
    effective_limit = limit or build_contacts_module(config).config.duplicate_limit

    async def _run() -> dict[str, Any]:
        db = Database.from_env(config.db.name, schema=config.db.schema)
        pool = await db.connect()
        try:
            return await contact_find_duplicates(pool, user, limit=effective_limit)
        finally:
            await db.close()

    _echo_json(asyncio.run(_run()))


@cli.command()
@click.argument("primary_contact_id")
@click.argument("secondary_contact_id")
@_config_option
@_user_option
def merge(
    primary_contact_id: str,
    secondary_contact_id: str,
    config_path: Path,
    user_id: str | None,
) -> None:
    """Merge SECONDARY_CONTACT_ID into PRIMARY_CONTACT_ID."""
    from mobcrm.tools.merge import ContactMergeError, contact_merge

    config = _load(config_path)
    user = _resolve_user(config, user_id)

    async def _run() -> dict[str, Any]:
        db = Database.from_env(config.db.name, schema=config.db.schema)
        pool = await db.connect()
        try:
            return await contact_merge(pool, user, primary_contact_id, secondary_contact_id)
        finally:
            await db.close()

    try:
        result = asyncio.run(_run())
    except ContactMergeError as exc:
        click.echo(f"Merge failed: {exc}", err=True)
        sys.exit(1)
    _echo_json(result)


if __name__ == "__main__":
    cli()
