"""
Error taxonomy for dbbridge

Every failure surfaced by a handle, cursor or pipeline is one of the classes
below. Driver exceptions are never swallowed: they are wrapped, chained with
``from``, and kept on ``original_error`` so callers can inspect the driver's
own error codes.

HIERARCHY:
----------
DBBridgeError
├── ConfigurationError      bad or missing parameters, missing driver
├── ConnectionError
│   ├── AuthenticationError credentials rejected
│   └── UnreachableError    host, file or service unavailable
├── NotFoundError           table does not exist
├── ConflictError           table already exists
├── QueryError              driver rejected the SQL
└── UseAfterReleaseError    handle or cursor already released
"""

from typing import Optional


class DBBridgeError(Exception):
    """Base exception for dbbridge errors."""

    def __init__(
        self,
        message: str,
        engine: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.engine = engine
        self.original_error = original_error

    def __str__(self):
        if self.engine:
            return f"[{self.engine}] {self.message}"
        return self.message


class ConfigurationError(DBBridgeError):
    """Connection parameters are missing or invalid."""
    pass


class ConnectionError(DBBridgeError):
    """Failed to open a session to the database."""
    pass


class AuthenticationError(ConnectionError):
    """The database rejected the supplied credentials."""
    pass


class UnreachableError(ConnectionError):
    """The database host, file or service could not be reached."""
    pass


class NotFoundError(DBBridgeError):
    """A referenced table does not exist."""
    pass


class ConflictError(DBBridgeError):
    """A table already exists and overwriting was not requested."""
    pass


class QueryError(DBBridgeError):
    """Query execution or fetching failed."""
    pass


class UseAfterReleaseError(DBBridgeError):
    """A released handle or cursor was used."""
    pass
