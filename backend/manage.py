"""Management commands.

Wraps Flask-Migrate so the project can run migrations without invoking the
Flask CLI directly, and exposes the admin user operations for operators.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

# Ensure models are imported so Flask-Migrate sees them
import models  # noqa: F401
import structlog
from app import app
from flask_migrate import init as flask_migrate_init  # type: ignore[import]
from flask_migrate import migrate as flask_migrate_migrate  # type: ignore[import]
from flask_migrate import upgrade as flask_migrate_upgrade  # type: ignore[import]
from infra.cache_manager import publish_change
from security import ApiError, CallerIdentity
from services import admin_service, auth_service

logger = structlog.get_logger("shopdesk.manage")
MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

CLI_IDENTITY = CallerIdentity(user_id="cli", username="cli", is_admin=True)


@click.group()
def cli():
    """Manage the database and the customer directory."""


@cli.command("init")
def init_command():
    """Initialise the migrations directory if it does not exist."""

    if MIGRATIONS_DIR.exists():
        click.echo("Migrations directory already exists – skipping initialization.")
        return

    with app.app_context():
        flask_migrate_init(directory=str(MIGRATIONS_DIR))
    click.echo(f"Initialized migrations folder at {MIGRATIONS_DIR}")


@cli.command("migrate")
@click.option("--message", "-m", default="auto", help="Migration message")
def migrate_command(message: str):
    """Generate a new migration based on current models."""

    if not MIGRATIONS_DIR.exists():
        raise click.ClickException("Migrations directory missing – run 'init' first.")

    with app.app_context():
        flask_migrate_migrate(directory=str(MIGRATIONS_DIR), message=message or "auto")
    click.echo("Migration script generated in migrations/versions.")


@cli.command("upgrade")
@click.option("--revision", default="head", help="Target revision (default: head)")
def upgrade_command(revision: str):
    """Apply migrations up to the selected revision."""

    if not MIGRATIONS_DIR.exists():
        raise click.ClickException("Migrations directory missing – run 'init' first.")

    with app.app_context():
        flask_migrate_upgrade(directory=str(MIGRATIONS_DIR), revision=revision)
    click.echo(f"Database upgraded to revision {revision}.")


@cli.command("issue-token")
@click.option("--subject", required=True, help="Identity subject (user id).")
@click.option("--username", default=None, help="Username claim.")
@click.option("--admin/--no-admin", default=False, show_default=True)
def issue_token(subject: str, username: str | None, admin: bool) -> None:
    """Mint an access token signed with the configured JWT secret."""

    config = app.config
    payload = auth_service.issue_token_payload(
        subject,
        username,
        is_admin=admin,
        jwt_secret=config["JWT_SECRET"],
        jwt_algorithm=config["JWT_ALGORITHM"],
        jwt_exp_minutes=int(config["JWT_EXP_MINUTES"]),
    )
    click.echo(json.dumps(payload, indent=2))


@cli.command("list-users")
@click.option("--page", default=1, show_default=True, type=click.IntRange(min=1))
@click.option("--query", "-q", default="", help="Search username or user id.")
def list_users(page: int, query: str) -> None:
    """Print one page of the customer directory."""

    with app.app_context():
        result = admin_service.list_users(
            CLI_IDENTITY,
            page=page,
            page_size=int(app.config["ADMIN_USERS_PAGE_SIZE"]),
            q=query.strip(),
        )
    for item in result["items"]:
        click.echo(
            f"{item['user_id']}\t{item['username'] or '-'}\t{item['points']}"
            f"\t{item['order_count']}"
        )
    click.echo(
        f"page {result['page']} · {len(result['items'])} of {result['total']} users"
    )


@cli.command("set-points")
@click.argument("user_id")
@click.argument("points", type=int)
def set_points(user_id: str, points: int) -> None:
    """Overwrite USER_ID's loyalty points with POINTS.

    Running API workers pick the change up on their next listing: the write
    bumps the directory version that keys their cached pages.
    """

    with app.app_context():
        try:
            result = admin_service.save_user_points(
                CLI_IDENTITY,
                user_id,
                points,
                notify_change_cb=publish_change,
            )
        except ApiError as exc:
            raise click.ClickException(exc.message)
    logger.info("manage.points_set", user_id=user_id, points=points)
    click.echo(f"{result['user_id']}: {result['points']} points")


if __name__ == "__main__":
    cli()
