"""Custom management commands exposed through Flask's CLI."""
from __future__ import annotations

from pathlib import Path

import click
from flask import current_app
from flask.cli import with_appcontext
from flask_migrate import upgrade

from dinedesk_auth import password_reset
from dinedesk_auth.services import UserService
from dinedesk_auth.states import AccountStatus, Role
from dinedesk_ext.db import db
from dinedesk_ext.errors import ValidationError
from dinedesk_models.user import User


@click.group(help="DineDesk management commands")
def manage_cli() -> None:
    """Root Click group registered under `flask manage`."""


@manage_cli.command("init-db", help="Create or migrate the database schema")
@with_appcontext
def init_db() -> None:
    """Apply migrations when a migrations directory exists, else create tables."""
    migrations = Path(current_app.root_path).parent / "migrations"
    if migrations.is_dir():
        upgrade(directory=str(migrations))
        click.echo("Database initialized via migrations.")
        return
    db.create_all()
    click.echo("Database tables created.")


@manage_cli.command("create-super-admin", help="Create an approved super-admin account")
@click.option("--email", prompt=True, help="Admin email address")
@click.option("--business-name", prompt="Display name", default="Platform Admin", help="Name shown in the dashboard")
@click.option("--phone", prompt="Phone number", help="Unique phone number for the account")
@with_appcontext
def create_super_admin(email: str, business_name: str, phone: str) -> None:
    password = click.prompt("Password", hide_input=True, confirmation_prompt=True)
    try:
        user = UserService.create_user(
            business_name=business_name,
            email=email,
            phone_number=phone,
            password=password,
            role=Role.SUPER_ADMIN,
            status=AccountStatus.APPROVED,
            first_login=False,
        )
    except ValidationError as exc:
        click.secho(exc.user_msg, fg="red")
        return
    db.session.commit()
    click.secho(f"Super-admin created with id {user.id} ({user.email})", fg="green")


@manage_cli.command("list-accounts", help="List registered accounts")
@click.option("--status", type=click.Choice([status.value for status in AccountStatus]), default=None)
@with_appcontext
def list_accounts(status: str | None) -> None:
    """Display accounts with their role, status and onboarding flag."""
    query = User.query.order_by(User.created_at.desc())
    if status:
        query = query.filter_by(status=status)
    users = query.all()
    if not users:
        click.echo("No accounts found.")
        return
    for user in users:
        onboarding = " (first login)" if user.first_login else ""
        click.echo(f"{user.id}: {user.email} - {user.role} [{user.status}]{onboarding}")


@manage_cli.command("cleanup-reset-challenges", help="Delete expired or used password reset challenges")
@with_appcontext
def cleanup_reset_challenges() -> None:
    removed = password_reset.cleanup_expired()
    click.secho(f"Removed {removed} password reset challenge(s).", fg="green")
