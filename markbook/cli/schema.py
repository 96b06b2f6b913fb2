from __future__ import annotations

import alembic.command
import alembic.config
from sqlalchemy import Engine

import markbook.lib.cli as click
from markbook.core import di
from markbook.storage.table import base


@click.group("schema")
def schema():
    """Manage the database schema."""
    ...


@schema.command()
@click.option("--verbose", "-v", is_flag=True, default=False)
@di.inject
def current(verbose: bool, alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.current(alembic_conf, verbose=verbose)


@schema.command()
@click.argument("message")
@di.inject
def generate(message: str, alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.revision(alembic_conf, message, autogenerate=True)


@schema.command()
@click.argument("revision", default="head")
@di.inject
def up(revision: str, alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.upgrade(alembic_conf, revision)


@schema.command()
@click.argument("revision")
@di.inject
def down(revision: str, alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.downgrade(alembic_conf, revision)


@schema.command()
@click.option("--verbose", "-v", is_flag=True, default=False)
@di.inject
def history(verbose: bool, alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.history(alembic_conf, verbose=verbose, indicate_current=True)


@schema.command()
@click.argument("revision")
@di.inject
def stamp(revision: str, alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.stamp(alembic_conf, revision)


@schema.command()
@di.inject
def create(
    engine: Engine = di.Provide["storage.persistent.engine"],
    alembic_conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"],
):
    """Create every table directly from the table metadata and stamp it as head.

    Meant for scratch SQLite databases; use `up` for managed databases.
    """
    base.metadata.create_all(engine)
    alembic.command.stamp(alembic_conf, "head")
    click.echo(f"Created {len(base.metadata.tables)} tables.")
