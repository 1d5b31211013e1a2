"""Flask CLI commands for Saldo."""

from __future__ import annotations

import click
from flask import current_app

from .errors import LedgerError


def _context():
    return current_app.extensions["saldo"]


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("saldo-seed")
    def saldo_seed() -> None:
        """Insert the shared transaction types and categories that are missing."""

        from .services.provisioning import seed_shared_defaults

        report = seed_shared_defaults(_context().session_factory)
        if report.created_anything:
            click.echo(
                f"Seeded {len(report.types)} types and {len(report.categories)} categories."
            )
        else:
            click.echo("Shared defaults already present.")

    @app.cli.command("saldo-create-user")
    @click.argument("username")
    @click.option(
        "--no-default-sources",
        is_flag=True,
        default=False,
        help="Skip provisioning the Wallet/Savings/Investment sources.",
    )
    def saldo_create_user(username: str, no_default_sources: bool) -> None:
        """Create a user and provision their default sources."""

        from .services.provisioning import DEFAULT_SOURCE_NAMES, create_user

        names = () if no_default_sources else DEFAULT_SOURCE_NAMES
        try:
            user = create_user(_context().session_factory, username, default_source_names=names)
        except LedgerError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Created user {user.username} (id={user.id}).")

    @app.cli.command("saldo-recalculate")
    @click.option("--user-id", type=int, required=True, help="Owner of the sources.")
    @click.option("--source-id", type=int, default=None, help="Only this source.")
    def saldo_recalculate(user_id: int, source_id: int | None) -> None:
        """Rebuild cached balances from transaction history."""

        sources = _context().sources
        try:
            targets = (
                [sources.get_source(user_id, source_id)]
                if source_id is not None
                else sources.list_sources(user_id)
            )
            for source in targets:
                if source.user_id != user_id:
                    continue
                balance = sources.recalculate_source_balance(
                    user_id, source.id, source.initial_amount
                )
                click.echo(f"{source.name}: {balance:.2f}")
        except LedgerError as exc:
            raise click.ClickException(exc.message) from exc
