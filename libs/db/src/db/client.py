"""Engine and session helpers shared by every ``db`` consumer.

Engines are created lazily and cached per database URL, so one process can
talk to several databases (a CLI ``--database-url`` override next to the
``DATABASE_URL`` default, or one SQLite file per test). SQLite connections get
``PRAGMA foreign_keys = ON`` so ``ON DELETE CASCADE`` from ``lb_accounts``
to ``lb_source_records`` is enforced there too.

Usage
-----
from db.client import session_scope

with session_scope(database_url=url) as s:
    s.execute(...)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_ENGINES: dict[str, tuple[Engine, sessionmaker[Session]]] = {}


def resolve_database_url(override: str | None = None) -> str:
    """Return ``override`` or ``DATABASE_URL``; raise when neither is set."""

    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; pass --database-url or set it in .env")
    return url


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):  # pragma: no cover - driver callback
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


def _entry(url: str) -> tuple[Engine, sessionmaker[Session]]:
    entry = _ENGINES.get(url)
    if entry is None:
        engine = create_engine(url, pool_pre_ping=True)
        if engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(engine)
        entry = (engine, sessionmaker(bind=engine, expire_on_commit=False, class_=Session))
        _ENGINES[url] = entry
    return entry


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the cached engine for ``database_url`` (or ``DATABASE_URL``)."""

    return _entry(resolve_database_url(database_url))[0]


def get_session(*, database_url: str | None = None) -> Session:
    return _entry(resolve_database_url(database_url))[1]()


def reset_engine() -> None:
    """Dispose every cached engine; the next call creates fresh ones."""

    while _ENGINES:
        _, (engine, _maker) = _ENGINES.popitem()
        engine.dispose()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on success, roll back on any exception, always close."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "resolve_database_url",
    "get_engine",
    "get_session",
    "reset_engine",
    "session_scope",
]
