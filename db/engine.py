"""
db.engine - Engine bootstrap and session factory.

The import pipeline relies on SAVEPOINTs (one per row, one per relation
item).  pysqlite opens transactions on its own and breaks nested
transactions, so for SQLite we take over BEGIN ourselves.  Postgres
needs nothing special; only config.DB_URL changes.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base

_engine = None
_SessionLocal: sessionmaker | None = None


def _configure_sqlite(engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _rec):
        dbapi_conn.isolation_level = None
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA foreign_keys=ON")
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_db(db_url: str) -> None:
    """Create the engine and emit CREATE TABLE for every model."""
    global _engine, _SessionLocal

    _engine = create_engine(db_url, echo=False, future=True)
    if _engine.dialect.name == "sqlite":
        _configure_sqlite(_engine)

    Base.metadata.create_all(_engine)
    # Rows committed mid-import stay readable without a reload
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)


def get_session() -> Session:
    """Return a new session.  Caller is responsible for .close()."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialised - call init_db() first")
    return _SessionLocal()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Short-lived read session for request handlers."""
    session = get_session()
    try:
        yield session
    finally:
        session.close()
