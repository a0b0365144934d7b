"""
SQLAlchemy engine and session factory for the single-file SQLite ledger.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()

SessionFactory = Callable[[], Session]


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections get WAL mode and enforced foreign keys."""
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}
    engine = create_engine(database_url, connect_args=connect_args, echo=False)

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):  # noqa: ARG001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if ":memory:" not in database_url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    # Registers every mapped class on Base.metadata
    import studio.models  # noqa: F401

    Base.metadata.create_all(engine)


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """Transactional scope: commit on success, rollback and re-raise on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

