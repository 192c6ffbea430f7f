"""CLI for rapport: set up the database, load demo data, serve the API."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

import rapport
from rapport.config import ConfigError, RapportConfig, load_config
from rapport.core.logging import configure_logging
from rapport.errors import RapportError, operation_errors
from rapport.migrations import run_migrations
from rapport.schema import init_schema
from rapport.seed import demo_summary, seed_demo_data
from rapport.service import RelationshipTracker

logger = logging.getLogger(__name__)

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to rapport.toml (default: $RAPPORT_CONFIG or ./rapport.toml)",
)


def _load(config_path: Path | None) -> RapportConfig:
    """Load config and set up logging, exiting with status 1 on bad config."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Config error: {exc}", err=True)
        sys.exit(1)
    log_root = Path(config.logging.log_root) if config.logging.log_root else None
    configure_logging(config.logging.level, config.logging.format, log_root)
    return config


def _run(coro, operation: str) -> object:
    """Run a coroutine, reporting rapport and store errors as a clean exit 1."""
    try:
        with operation_errors(operation):
            return asyncio.run(coro)
    except RapportError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=rapport.__version__)
def cli() -> None:
    """Rapport is a personal relationship tracker."""


@cli.command("init-db")
@config_option
@click.option(
    "--alembic/--no-alembic",
    "use_alembic",
    default=False,
    help="Apply the schema through the Alembic 'crm' chain instead of direct DDL",
)
def init_db(config_path: Path | None, use_alembic: bool) -> None:
    """Create the database if needed, apply the schema and seed the type catalog."""
    config = _load(config_path)
    _run(_init_db(config, use_alembic), "init-db")
    click.echo(f"Database '{config.database.name}' is ready")


async def _init_db(config: RapportConfig, use_alembic: bool) -> None:
    db = config.database.to_database()
    await db.provision()
    if use_alembic:
        # Alembic runs synchronously
        await asyncio.to_thread(run_migrations, db.url)
        return
    await db.connect()
    try:
        await RelationshipTracker(db, config.queries).initialize()
    finally:
        await db.close()


@cli.command("seed-demo")
@config_option
def seed_demo(config_path: Path | None) -> None:
    """Load the demo contacts and interactions."""
    config = _load(config_path)
    summary = _run(_seed_demo(config), "seed-demo")
    click.echo(f"{'Name':<20} {'Relationship':<14} {'Interactions':<14} {'Last contact'}")
    click.echo("-" * 70)
    for row in summary:
        last = row["last_interaction_date"]
        last_str = last.strftime("%Y-%m-%d") if last is not None else "never"
        click.echo(
            f"{row['name']:<20} {row['relationship_type']:<14} "
            f"{row['interaction_count']:<14} {last_str}"
        )


async def _seed_demo(config: RapportConfig) -> list[dict]:
    db = config.database.to_database()
    await db.provision()
    pool = await db.connect()
    try:
        await init_schema(pool)
        await seed_demo_data(pool)
        return await demo_summary(pool)
    finally:
        await db.close()


@cli.command()
@config_option
@click.option("--host", default=None, help="Bind address (default from [api] host)")
@click.option("--port", type=int, default=None, help="Port (default from [api] port)")
def serve(config_path: Path | None, host: str | None, port: int | None) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from rapport.api.app import create_app

    config = _load(config_path)
    host = host or config.api.host
    port = port or config.api.port
    click.echo(f"Serving rapport API on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)


@cli.command()
@config_option
@click.option(
    "--days",
    type=click.IntRange(min=0),
    default=None,
    help="Overdue threshold in days (default from [queries] overdue_days)",
)
def overdue(config_path: Path | None, days: int | None) -> None:
    """List contacts not reached within the threshold."""
    config = _load(config_path)
    rows = _run(_overdue(config, days), "overdue")
    if not rows:
        click.echo("Nobody is overdue")
        return
    for row in rows:
        since = row["days_since_contact"]
        since_str = "never contacted" if since is None else f"{since} days ago"
        click.echo(f"{row['name']:<24} {row['relationship_type']:<14} {since_str}")


async def _overdue(config: RapportConfig, days: int | None) -> list[dict]:
    db = config.database.to_database()
    await db.connect()
    try:
        return await RelationshipTracker(db, config.queries).list_overdue(days)
    finally:
        await db.close()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
