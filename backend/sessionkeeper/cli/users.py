"""Flask CLI commands for account administration."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from sessionkeeper.models.user import ROLES
from sessionkeeper.uow import SQLAlchemyUnitOfWork


@click.group("users")
def users_cli() -> None:
    """Account administration commands."""


@users_cli.command("set-role")
@click.argument("email")
@click.argument("role", type=click.Choice(sorted(ROLES)))
@with_appcontext
def set_role_command(email: str, role: str) -> None:
    """Grant ROLE to the account registered under EMAIL."""
    with SQLAlchemyUnitOfWork() as uow:
        user = uow.users.get_by_email(email, for_update=True)
        if user is None:
            raise click.ClickException(f"No account registered for {email!r}")
        if user.role == role:
            click.echo(f"{user.email} already has role {role!r}.")
            return
        user.role = role
        uow.users.bump_version(user)
    click.echo(f"{user.email} now has role {role!r}.")
