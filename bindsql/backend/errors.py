"""Defines common errors raised from database backend code."""

from bindsql.context import CancelledError


class UnsupportedBackendError(Exception):
    """Raised when an unsupported backend is specified."""

    pass


class ConfigurationError(Exception):
    """Raised when there is a backend configuration connection error."""

    pass


class BackendNotInstalledError(Exception):
    """Raised when a backend engine is not installed."""

    pass


class LastInsertIdUnsupportedError(Exception):
    """Raised when the last inserted id is requested from a backend that does not report one."""

    pass


class TransactionClosedError(Exception):
    """Raised when a transaction is used after it has been committed or rolled back."""

    pass


__all__ = [
    "BackendNotInstalledError",
    "CancelledError",
    "ConfigurationError",
    "LastInsertIdUnsupportedError",
    "TransactionClosedError",
    "UnsupportedBackendError",
]
