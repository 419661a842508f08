"""Persistence layer for users, candidate jobs and persisted matches.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - UserRepository: user lookup and stored preferences
    - JobRepository: candidate job fetch within a freshness window
    - MatchRepository: idempotency counts and match inserts

Example usage:
    >>> from jobping.persistence import init_database, get_session, MatchRepository
    >>> init_database("sqlite:///./data/jobping.sqlite")
    >>> with get_session() as session:
    ...     MatchRepository(session).count_for_user(42)
"""

# Database initialization and session management
from .database import close_database, get_engine, get_session, init_database

# Repository classes
from .repositories import JobRepository, MatchRepository, UserRepository, city_variants

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    MatchPersistenceError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "UserRepository",
    "JobRepository",
    "MatchRepository",
    "city_variants",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "MatchPersistenceError",
]
