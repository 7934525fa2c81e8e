"""Pinewood CLI — run the API and manage the database.

Usage:
    pinewood serve                          # Run the API with uvicorn
    pinewood init-db                        # Create any missing tables
    pinewood create-user alice --admin      # Add an account (prompts for password)
"""

from __future__ import annotations

import asyncio
from typing import Optional

import click

from pinewood.config import settings


def _run(coro):
    """Run an async coroutine from a synchronous Click handler."""
    return asyncio.run(coro)


@click.group()
@click.version_option(package_name="pinewood")
def cli():
    """Pinewood derby API."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: PINEWOOD_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: PINEWOOD_PORT)")
@click.option("--workers", default=1, show_default=True, help="Worker processes")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: Optional[str], port: Optional[int], workers: int, reload: bool):
    """Run the HTTP + WebSocket server."""
    import uvicorn

    if workers > 1:
        click.secho(
            "Multiple workers share live updates through Redis "
            f"({settings.redis_url}); make sure it is running.",
            fg="yellow",
        )
    uvicorn.run(
        "pinewood.main:app",
        host=host or settings.host,
        port=port or settings.port,
        workers=workers,
        reload=reload,
    )


async def _init_db() -> list[str]:
    from pinewood.db.engine import engine
    from pinewood.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    return sorted(Base.metadata.tables)


@cli.command("init-db")
def init_db():
    """Create any tables that don't exist yet (existing ones are untouched)."""
    tables = _run(_init_db())
    click.secho(f"Tables ready: {', '.join(tables)}", fg="green")


async def _create_user(username: str, password: str, admin: bool, event_ids: Optional[str]):
    from pinewood.db.engine import async_session_factory, engine
    from pinewood.schemas.user import UserCreate
    from pinewood.services.user_service import UserService

    try:
        async with async_session_factory() as db:
            descriptor = await UserService(db).create_user(
                UserCreate(
                    username=username,
                    password=password,
                    admin=admin,
                    event_ids=event_ids,
                )
            )
    finally:
        await engine.dispose()
    return descriptor.data[0]


@cli.command("create-user")
@click.argument("username")
@click.password_option()
@click.option("--admin", is_flag=True, help="Grant admin rights")
@click.option("--event-ids", default=None, help="Comma-separated event ids")
def create_user(username: str, password: str, admin: bool, event_ids: Optional[str]):
    """Create a user account with a bcrypt-hashed password."""
    from pinewood.errors import PinewoodError

    try:
        user = _run(_create_user(username, password, admin, event_ids))
    except PinewoodError as e:
        raise click.ClickException(e.message)
    role = "admin" if user["admin"] else "user"
    click.secho(f"Created {role} {user['username']} (id {user['userId']})", fg="green")


if __name__ == "__main__":
    cli()
