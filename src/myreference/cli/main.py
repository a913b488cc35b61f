"""MyReference CLI: run and administer the API.

Usage:
    myreference serve                                   # Run the API with uvicorn
    myreference migrate                                 # Apply Alembic migrations
    myreference grant alice@example.com reference:write # Grant permission codes
    myreference permissions alice@example.com           # Show a user's codes
    myreference health                                  # Probe a running server
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import click
import httpx

from myreference.config import settings

DEFAULT_API_URL = "http://localhost:4000"


def _api_url() -> str:
    return os.environ.get("MREF_API_URL", DEFAULT_API_URL).rstrip("/")


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="myreference")
def cli():
    """MyReference administration."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: MREF_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: MREF_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "myreference.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


@cli.command()
@click.option("--revision", default="head", show_default=True)
@click.option(
    "--config",
    "config_path",
    default="alembic.ini",
    show_default=True,
    type=click.Path(dir_okay=False),
)
def migrate(revision: str, config_path: str):
    """Apply database migrations."""
    from alembic import command
    from alembic.config import Config

    if not Path(config_path).exists():
        _fail(f"{config_path} not found (run from the project root or pass --config)")
    command.upgrade(Config(config_path), revision)
    click.secho(f"Database upgraded to {revision}", fg="green")


async def _grant_and_list(email: str, codes: tuple[str, ...]) -> frozenset[str]:
    from myreference.db.engine import async_session_factory, engine
    from myreference.services.permission_service import PermissionService
    from myreference.services.user_service import UserService

    try:
        async with async_session_factory() as db:
            user = await UserService(db).get_by_email(email)
            permissions = PermissionService(db)
            if codes:
                await permissions.add_for_user(user.id, *codes)
            return await permissions.get_all_for_user(user.id)
    finally:
        await engine.dispose()


@cli.command()
@click.argument("email")
@click.argument("codes", nargs=-1, required=True)
def grant(email: str, codes: tuple[str, ...]):
    """Grant permission CODES to the user with EMAIL.

    Codes not defined in the permissions table are ignored.
    """
    from myreference.errors import RecordNotFound

    try:
        held = asyncio.run(_grant_and_list(email, codes))
    except RecordNotFound:
        _fail(f"no user with email {email}")
    skipped = sorted(set(codes) - held)
    click.echo(f"{email}: {', '.join(sorted(held)) or '(none)'}")
    if skipped:
        click.secho(f"unknown codes skipped: {', '.join(skipped)}", fg="yellow")


@cli.command()
@click.argument("email")
def permissions(email: str):
    """List the permission codes held by EMAIL."""
    from myreference.errors import RecordNotFound

    try:
        held = asyncio.run(_grant_and_list(email, ()))
    except RecordNotFound:
        _fail(f"no user with email {email}")
    click.echo(f"{email}: {', '.join(sorted(held)) or '(none)'}")


@cli.command()
@click.option("--url", default=None, help="API base URL (default: MREF_API_URL)")
def health(url: str | None):
    """Probe GET /v1/healthcheck on a running server."""
    base = (url or _api_url()).rstrip("/")
    try:
        r = httpx.get(f"{base}/v1/healthcheck", timeout=10.0)
    except httpx.HTTPError as e:
        _fail(f"cannot reach {base}: {e}")
    data = r.json()
    click.echo(json.dumps(data, indent=2))
    if data.get("status") != "available":
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
