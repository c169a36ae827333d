"""Flask CLI commands for token housekeeping and principal bootstrap."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from token_authority.core.extensions import get_auth_service
from token_authority.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Token store maintenance commands."""


@tokens_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Drop expired refresh records and blacklist entries."""
    refresh_removed, blacklist_removed = get_auth_service().purge_expired()
    click.echo(f"Purged refresh={refresh_removed} blacklist={blacklist_removed}")


@click.group("principals")
def principals_cli() -> None:
    """Principal bootstrap commands (local and test environments)."""


@principals_cli.command("create")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--display-name", default=None, help="Defaults to the email's local part.")
@click.option("--role", "roles", multiple=True, default=("USER",), show_default=True)
@with_appcontext
def create_principal_command(
    email: str, password: str, display_name: str | None, roles: tuple[str, ...]
) -> None:
    """Create a principal with the given roles."""
    with SQLAlchemyUnitOfWork() as uow:
        if uow.users.exists_by_email(email):
            raise click.UsageError(f"Principal {email!r} already exists.")
        user = uow.users.create(
            email=email,
            password=password,
            display_name=display_name or email.split("@")[0],
            roles=roles,
        )
        role_names = ",".join(sorted(user.role_names))
    LOGGER.info("principal.created", extra={"subject": email.strip().lower()})
    click.echo(f"Created {email.strip().lower()} roles={role_names}")
