"""Functionality abstracting the primitive database backend interface."""

from urllib.parse import urlparse

from bindsql.backend.base import Connection, Database, ExecutionResult, Resource, ResultSet, Transaction
from bindsql.backend.errors import ConfigurationError, UnsupportedBackendError
from bindsql.backend.postgres import DatabasePSQLPsycopg2
from bindsql.backend.sqlite import DatabaseSQLite3


ENGINE_DEFAULTS = {"postgresql": "psycopg2", "sqlite3": None}


def create_database(db_url: str) -> Database:
    """Create a database handle for the given database connection URL.

    The db_url is expected to be in the following format::

        "{db_backend}+{driver}://{username}:{password}@{hostname}:{port}/{db_name}"

    With different db_backends / drivers supporting additional arguments.

    :returns: A database handle based on the given database URL.
    :raises: ConfigurationError, UnsupportedBackendError
    """
    parsed_url = urlparse(db_url)
    backend = parsed_url.scheme
    if not backend:
        raise ConfigurationError("No database backend specified")
    backend = backend.split("+")
    engine = ENGINE_DEFAULTS.get(backend[0]) if len(backend) == 1 else backend[1]
    backend = backend[0]
    if backend == "postgresql" and engine == "psycopg2":
        return DatabasePSQLPsycopg2(db_url)
    if backend == "sqlite3" and engine is None:
        return DatabaseSQLite3(db_url)
    raise UnsupportedBackendError(f"The backend+engine '{parsed_url.scheme}' is not supported")


__all__ = [
    "Connection",
    "Database",
    "ExecutionResult",
    "Resource",
    "ResultSet",
    "Transaction",
    "create_database",
    "errors",
]
