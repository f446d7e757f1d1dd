"""
Flask CLI commands, e.g.:
    flask --app api purge-refresh-tokens
"""
import click
from flask import current_app
from flask.cli import with_appcontext


@click.command("purge-refresh-tokens")
@with_appcontext
def purge_refresh_tokens():
    """Delete expired refresh token records (periodic sweep)."""
    store = current_app.extensions["auth_flow"].issuer.store
    removed = store.purge_expired()
    click.echo(f"Purged {removed} expired refresh token(s).")


def register_commands(app):
    app.cli.add_command(purge_refresh_tokens)
