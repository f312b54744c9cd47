# ruff: noqa: I001
"""
Alembic environment for the ledger source-storage schema.

The URL is ``sqlalchemy.url`` from ``alembic.ini`` when one is set there (the
shipped ini leaves it out), else ``DATABASE_URL``; a workspace ``.env`` is
honored. Autogenerate compares
against ``db.metadata`` and only looks at ``lb_*`` tables, so the schema can
share a database with other applications. SQLite runs in batch mode because
it cannot ALTER most column properties in place.
"""

from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from dotenv import find_dotenv, load_dotenv
from sqlalchemy import engine_from_config, pool

import db
from db.client import resolve_database_url

TABLE_PREFIX = "lb_"

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# find_dotenv(usecwd=True) finds the repo .env from the root or from libs/db.
_dotenv = find_dotenv(usecwd=True)
if _dotenv:
    load_dotenv(dotenv_path=_dotenv, override=False)

db_url = resolve_database_url(config.get_main_option("sqlalchemy.url") or None)
config.set_main_option("sqlalchemy.url", db_url)

logger = logging.getLogger("alembic.env")
target_metadata = db.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table":
        return bool(name) and name.startswith(TABLE_PREFIX)
    return True


def _configure(**kw) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        render_as_batch=db_url.startswith("sqlite"),
        **kw,
    )


def run_migrations_offline() -> None:
    _configure(url=db_url, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = db_url
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
    logger.info("ledger schema migrated (%s)", connectable.url.render_as_string(hide_password=True))


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
