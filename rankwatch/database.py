"""SQLAlchemy engine and session lifecycle for the rank store."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/rankwatch.db"


class Base(DeclarativeBase):
    """Declarative base shared by keyword, observation, and config tables."""


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _apply_sqlite_pragmas(dbapi_conn, connection_record):
    # foreign_keys is off by default in SQLite; keyword deletes rely on it.
    cursor = dbapi_conn.cursor()
    for pragma in (
        "journal_mode=WAL",
        "synchronous=NORMAL",
        "foreign_keys=ON",
        "busy_timeout=5000",
    ):
        cursor.execute(f"PRAGMA {pragma};")
    cursor.close()


def _sqlite_engine_options(database_url: str) -> dict[str, Any]:
    """Engine kwargs for a SQLite URL; creates the file's directory if needed.

    An in-memory database is pinned to one shared connection so that the
    scheduler's worker thread sees the same tables as the caller.
    """
    url = make_url(database_url)
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    else:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        options["pool_pre_ping"] = True
    return options


def get_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Return the process-wide engine, creating it on first use.

    Args:
        database_url: Connection string.  Defaults to ``DATABASE_URL`` from
            the environment, then ``data/rankwatch.db``.
        echo: Log every SQL statement.
    """
    global _engine
    if _engine is not None:
        return _engine

    database_url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
    options = _sqlite_engine_options(database_url) if is_sqlite else {"pool_pre_ping": True}

    _engine = create_engine(database_url, echo=echo, **options)
    if is_sqlite:
        event.listen(_engine, "connect", _apply_sqlite_pragmas)
    logger.info("Database engine created: %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=engine or get_engine(), expire_on_commit=False)
    return _session_factory


@contextmanager
def get_session() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error.

    Usage::

        with get_session() as session:
            session.add(keyword)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _load_models() -> None:
    # Registers every table on Base.metadata.
    import rankwatch.models  # noqa: F401


def init_db(database_url: Optional[str] = None, echo: bool = False) -> None:
    """Create any missing tables."""
    engine = get_engine(database_url=database_url, echo=echo)
    _load_models()
    Base.metadata.create_all(bind=engine)
    logger.info("Rank store tables ready.")


def reset_db(database_url: Optional[str] = None) -> None:
    """Drop and recreate every table.  Destroys all keywords and history."""
    engine = get_engine(database_url=database_url)
    _load_models()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.warning("Rank store reset: all tables dropped and recreated.")


def reset_engine() -> None:
    """Dispose of the cached engine and session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
