from __future__ import annotations

import alembic.command
import alembic.config
import sqlalchemy

import gradebook.lib.cli as click
from gradebook.core import di
from gradebook.storage.table import metadata

AlembicConfig = di.Provide["storage.persistent.alembic_config"]


@click.group("schema")
def schema():
    """Manage the grades, course_grades and audit_logs tables."""


@schema.command()
@click.argument("revision", default="head")
@di.inject
def up(revision: str, alembic_conf: alembic.config.Config = AlembicConfig):
    alembic.command.upgrade(alembic_conf, revision)


@schema.command()
@click.argument("revision")
@di.inject
def down(revision: str, alembic_conf: alembic.config.Config = AlembicConfig):
    alembic.command.downgrade(alembic_conf, revision)


@schema.command()
@click.option("--verbose", "-v", is_flag=True, default=False)
@di.inject
def current(verbose: bool, alembic_conf: alembic.config.Config = AlembicConfig):
    alembic.command.current(alembic_conf, verbose=verbose)


@schema.command()
@click.option("--verbose", "-v", is_flag=True, default=False)
@di.inject
def history(verbose: bool, alembic_conf: alembic.config.Config = AlembicConfig):
    alembic.command.history(alembic_conf, verbose=verbose, indicate_current=True)


@schema.command()
@click.argument("message")
@di.inject
def generate(message: str, alembic_conf: alembic.config.Config = AlembicConfig):
    """Autogenerate a migration from differences between the tables and the database."""
    alembic.command.revision(alembic_conf, message, autogenerate=True)


@schema.command()
@click.confirmation_option(prompt="Create tables directly, bypassing migrations?")
@di.inject
def create(
    engine: sqlalchemy.Engine = di.Provide["storage.persistent.engine"],
    alembic_conf: alembic.config.Config = AlembicConfig,
):
    """Create missing tables from metadata and stamp them as current.

    Meant for throwaway SQLite databases; use ``schema up`` anywhere that matters.
    """
    metadata.create_all(engine)
    alembic.command.stamp(alembic_conf, "head")
    click.echo(f"created {', '.join(sorted(metadata.tables))} on {engine.url.render_as_string()}")


command = schema
