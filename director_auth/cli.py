"""Command line interface for the Director of One authentication service."""

import asyncio
import sys
from typing import Optional

import click
from alembic import command

from director_auth.core.auth.security import generate_random_password
from director_auth.core.exceptions import DomainException
from director_auth.infrastructure.database.init_db import (
    check_database_health,
    cleanup_expired_tokens,
    create_admin_user,
    get_alembic_config,
    get_database_info,
    init_database,
)
from director_auth.settings import get_settings
from director_auth.utils.logging import setup_logging


@click.group()
def cli():
    """Director of One authentication service CLI."""
    setup_logging()


@cli.command()
@click.option("--no-migrations", is_flag=True, help="Create tables from the models instead of running Alembic")
def init_db(no_migrations: bool):
    """Initialize the database schema."""
    click.echo("Initializing database...")
    asyncio.run(init_database(use_migrations=not no_migrations))
    click.echo("Database initialized successfully!")


@cli.command()
def migrate():
    """Run database migrations to the latest version."""
    click.echo("Running database migrations...")
    command.upgrade(get_alembic_config(), "head")
    click.echo("Migrations completed successfully!")


@cli.command()
def current():
    """Show current migration version."""
    command.current(get_alembic_config(), verbose=True)


@cli.command()
def history():
    """Show migration history."""
    command.history(get_alembic_config(), verbose=True)


@cli.command()
def cleanup_tokens():
    """Delete expired refresh tokens and sessions."""
    result = asyncio.run(cleanup_expired_tokens())
    click.echo(
        f"Removed {result.refresh_tokens} refresh tokens and {result.sessions} sessions"
    )


@cli.command()
def check_db():
    """Check database connectivity and health."""
    click.echo("Checking database health...")

    async def check():
        is_healthy = await check_database_health()
        if is_healthy:
            click.echo("✓ Database connection is healthy")

            info = await get_database_info()
            if info["healthy"]:
                click.echo("\nDatabase statistics:")
                for table, count in info["tables"].items():
                    click.echo(f"  - {table}: {count} records")
            else:
                click.echo(f"  Statistics unavailable: {info['error']}")
        else:
            click.echo("✗ Database connection failed")
            return 1
        return 0

    sys.exit(asyncio.run(check()))


@cli.command()
@click.option("--email", required=True, help="Administrator email address")
@click.option("--username", required=True, help="Administrator username")
@click.option("--password", default=None, help="Password (generated when omitted)")
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
def create_admin(
    email: str,
    username: str,
    password: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
):
    """Create a verified administrator account."""
    generated = password is None
    if generated:
        password = generate_random_password()

    try:
        user, _ = asyncio.run(
            create_admin_user(email, username, password, first_name, last_name)
        )
    except DomainException as e:
        click.echo(f"✗ {e.message}", err=True)
        if isinstance(e.details, list):
            for detail in e.details:
                click.echo(f"  - {detail}", err=True)
        sys.exit(1)

    click.echo(f"✓ Administrator {user.username} created (id={user.id})")
    if generated:
        click.echo(f"  Generated password: {password}")


@cli.command()
def show_config():
    """Display current configuration settings."""
    settings = get_settings()

    click.echo("Current configuration:")
    click.echo(f"  Environment: {settings.environment}")
    click.echo(f"  Debug: {settings.debug}")
    click.echo(f"  Database URL: {settings.database_url}")
    click.echo(f"  Redis URL: {settings.redis_url}")
    click.echo(f"  Rate limit backend: {settings.rate_limit_backend}")
    click.echo(
        f"  Auth rate limit: {settings.auth_rate_limit_max_requests} requests "
        f"per {settings.auth_rate_limit_window_seconds} seconds"
    )
    click.echo(f"  JWT Algorithm: {settings.jwt_algorithm}")
    click.echo(f"  Access token expire: {settings.access_token_expire_minutes} minutes")
    click.echo(f"  Refresh token expire: {settings.refresh_token_expire_days} days")
    click.echo(
        f"  Lockout: {settings.max_login_attempts} attempts, "
        f"{settings.lockout_minutes} minutes"
    )
    click.echo(f"  Session timeout: {settings.session_timeout_minutes} minutes")


if __name__ == "__main__":
    cli()
