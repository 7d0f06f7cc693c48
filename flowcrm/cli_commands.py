"""
Flask CLI commands.

Commands:
- flask init-db: Create database tables
- flask drop-db: Drop database tables
"""

import click
from flowcrm.database import create_all, drop_all


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table that does not exist yet."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('drop-db')
    @click.confirmation_option(prompt='This deletes every pre-sale, product and audit row. Continue?')
    def drop_db_command():
        """Drop every table."""
        drop_all()
        click.echo(click.style('Database tables dropped.', fg='yellow'))
