"""Flask CLI commands for revocation ledger maintenance."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from sessionkeeper.services._shared.errors import InfrastructureError
from sessionkeeper.services.container import get_container

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Maintenance commands for revoked bearer tokens."""


@tokens_cli.command("prune")
@with_appcontext
def prune_command() -> None:
    """Delete ledger entries whose token has already expired.

    Redis entries expire on their own, so this only removes rows from the
    ``revoked_tokens`` table.
    """
    ledger = get_container(current_app).ledger
    try:
        removed = ledger.prune()
    except InfrastructureError as exc:
        raise click.ClickException(f"Pruning failed: {exc}") from exc
    LOGGER.info("tokens.pruned removed=%s", removed)
    click.echo(f"Removed {removed} expired revocation entries.")
