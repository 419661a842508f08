"""Database engine and session lifecycle for the persistence layer."""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from jobping.logging import get_logger

from .exceptions import DatabaseConnectionError, DataIntegrityError, PersistenceError

_engine: Engine | None = None
_session_factory: sessionmaker | None = None

logger = get_logger(__name__, component="database")


def init_database(database_url: str) -> None:
    """Create the engine, validate the connection and create missing tables.

    Call once at startup. SQLite connections get foreign-key enforcement,
    which the match table relies on to reject matches for unknown users.

    Args:
        database_url: SQLAlchemy URL (e.g. "sqlite:///./data/jobping.sqlite")

    Raises:
        DatabaseConnectionError: If initialization fails
    """
    global _engine, _session_factory

    if not database_url or not isinstance(database_url, str):
        raise DatabaseConnectionError("Database URL must be a non-empty string")

    logger.info(
        "Initializing database",
        extra={"event": "database.initializing", "database_url": _redact_url(database_url)},
    )

    try:
        is_sqlite = database_url.startswith("sqlite")
        if is_sqlite:
            _ensure_sqlite_directory(database_url)

        _engine = create_engine(database_url, **_engine_options(database_url))
        if is_sqlite:
            _configure_sqlite(_engine, in_memory=":memory:" in database_url)

        _validate_connection(_engine)

        _session_factory = sessionmaker(
            bind=_engine,
            autoflush=True,
            expire_on_commit=False,
        )

        from .schema import create_schema

        create_schema(_engine)
    except DatabaseConnectionError:
        raise
    except Exception as e:
        error_msg = f"Failed to initialize database: {e}"
        logger.error(error_msg, exc_info=True)
        raise DatabaseConnectionError(error_msg) from e

    logger.info(
        "Database initialized",
        extra={"event": "database.initialised", "database_url": _redact_url(database_url)},
    )


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
    return options


def _ensure_sqlite_directory(database_url: str) -> None:
    if ":memory:" in database_url or not database_url.startswith("sqlite:///"):
        return
    db_file = Path(database_url[len("sqlite:///"):])
    if not db_file.parent.exists():
        logger.info(f"Creating database directory: {db_file.parent}")
        db_file.parent.mkdir(parents=True, exist_ok=True)


def _configure_sqlite(engine: Engine, in_memory: bool) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def _validate_connection(engine: Engine) -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
    except Exception as e:
        raise DatabaseConnectionError(f"Failed to validate database connection: {e}") from e


def _redact_url(url: str) -> str:
    """Hide the password part of a database URL."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid url>"


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session scope that commits on success and rolls back on error.

    SQLAlchemy errors that reach the scope, including ones raised by the
    final commit (e.g. "database is locked"), are re-raised as
    PersistenceError so callers handle a single exception family.

    Raises:
        DatabaseConnectionError: If init_database() has not been called
        DataIntegrityError: On constraint violations
        PersistenceError: On any other database error

    Example:
        >>> with get_session() as session:
        ...     count = MatchRepository(session).count_for_user(42)
    """
    if _session_factory is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_session()"
        )

    session = _session_factory()
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning(
            f"Database session rolled back: {e}",
            extra={"event": "database.session.rolled_back", "error_type": type(e).__name__},
        )
        raise DataIntegrityError(f"Constraint violation: {e}") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning(
            f"Database session rolled back: {e}",
            extra={"event": "database.session.rolled_back", "error_type": type(e).__name__},
        )
        raise PersistenceError(f"Database error: {e}") from e
    except Exception as e:
        session.rollback()
        logger.warning(
            f"Database session rolled back: {e}",
            extra={"event": "database.session.rolled_back", "error_type": type(e).__name__},
        )
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    """Return the engine created by init_database()."""
    if _engine is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_engine()"
        )
    return _engine


def close_database() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        logger.info("Database connections closed", extra={"event": "database.closed"})
    _engine = None
    _session_factory = None
