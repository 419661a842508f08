"""Persistence layer exceptions. All inherit from PersistenceError."""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails."""


class RecordNotFoundError(PersistenceError):
    """Raised when a record the caller requires does not exist.

    Optional lookups return None instead.
    """


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (unique, foreign key, not null)."""


class MatchPersistenceError(PersistenceError):
    """Raised when matches that must be durable could not be saved."""
