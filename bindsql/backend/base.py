"""Defines the resource abstraction bound functions run against. It is basically a thin wrapper on DB API 2.0."""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from bindsql.backend.errors import (
    CancelledError,
    ConfigurationError,
    LastInsertIdUnsupportedError,
    TransactionClosedError,
)
from bindsql.context import Context, background

RESOURCE_METHODS = ("execute", "execute_context", "query", "query_context")


@dataclass
class ColumnDescriptor:
    """Describes a column in a result set."""

    name: str
    type_code: int
    display_size: int = None
    internal_size: int = None
    precision: int = None
    scale: int = None
    null_ok: bool = None


@dataclass(frozen=True)
class ExecutionResult:
    """Describes the outcome of executing a statement that does not return rows."""

    rows_affected: int
    inserted_id: Optional[int] = None

    def last_insert_id(self) -> int:
        """Return the identifier generated by the statement.

        :raises: LastInsertIdUnsupportedError
        """
        if self.inserted_id is None:
            raise LastInsertIdUnsupportedError("The backend did not report a last inserted id for this statement")
        return self.inserted_id


class ResultSet:
    """Rows produced by a query, read through the DB API 2.0 cursor that ran it."""

    def __init__(self, cursor):
        """Wrap a cursor that has already executed a query.

        :param cursor: the DB API 2.0 cursor holding the rows
        """
        self._cursor = cursor
        self._columns = None

    def fetchone(self) -> Optional[Tuple]:
        """Read the next row.

        :returns: the row as a tuple, or None once every row has been read
        """
        return self._cursor.fetchone()

    def fetchall(self) -> List[Tuple]:
        """Read every row not fetched yet.

        :returns: the unread rows, possibly none
        """
        return self._cursor.fetchall()

    @property
    def description(self) -> Tuple[ColumnDescriptor, ...]:
        """The columns of the rows, in order."""
        if self._columns is None:
            self._columns = tuple(ColumnDescriptor(*column[:7]) for column in self._cursor.description or ())
        return self._columns


def _has_methods(klass, *methods) -> bool:
    mro = klass.__mro__
    for method in methods:
        for base in mro:
            if method in base.__dict__:
                if base.__dict__[method] is None:
                    return False
                break
        else:
            return False
    return True


class Resource(ABC):
    """Anything that can execute a statement or run a query, with or without a cancellation context.

    Both the root :class:`Database` handle and a :class:`Transaction` satisfy this interface, as does any object
    providing the four methods below, so either may be passed as the first argument of a bound function to override
    the resource it was bound to.
    """

    @classmethod
    def __subclasshook__(cls, subclass):
        if cls is Resource:
            return _has_methods(subclass, *RESOURCE_METHODS)
        return NotImplemented

    @abstractmethod
    def execute_context(self, ctx: Context, sql: str, params: tuple = None) -> ExecutionResult:
        """Execute the given SQL under a cancellation context.

        :param ctx: the context whose cancellation aborts the statement
        :param sql: the SQL statement to execute
        :param params: the values to bind positionally to the statement
        :returns: the execution outcome
        """
        pass  # pragma: no cover

    @abstractmethod
    def query_context(self, ctx: Context, sql: str, params: tuple = None) -> Iterator[ResultSet]:
        """Run the given SQL query under a cancellation context, providing the results as context.

        :param ctx: the context whose cancellation aborts the query
        :param sql: the SQL query to run
        :param params: the values to bind positionally to the query
        :returns: a context manager yielding a result set
        """
        pass  # pragma: no cover

    def execute(self, sql: str, params: tuple = None) -> ExecutionResult:
        """Execute the given SQL without a cancellation context."""
        return self.execute_context(background(), sql, params)

    def query(self, sql: str, params: tuple = None) -> Iterator[ResultSet]:
        """Run the given SQL query without a cancellation context, providing the results as context."""
        return self.query_context(background(), sql, params)


class Connection(ABC):
    """Wraps a single DB API 2.0 connection leased from a :class:`Database`."""

    def __init__(self, cnx):
        """Wrap a driver connection.

        :param cnx: the DB API 2.0 connection handed out by the driver
        """
        self.logger = logging.getLogger(__name__)
        self._cnx = cnx

    def commit(self):
        """Make the work done on this connection permanent."""
        self._cnx.commit()

    def rollback(self):
        """Discard the work done on this connection since the last commit."""
        self._cnx.rollback()

    @abstractmethod
    def _execute(self, cursor, sql: str, params: tuple = None):
        pass  # pragma: no cover

    @abstractmethod
    def _interrupt(self):
        """Abort the statement currently running on the inner connection, called from any thread."""
        pass  # pragma: no cover

    def _last_insert_id(self, cursor) -> Optional[int]:
        return getattr(cursor, "lastrowid", None)

    def _guarded_execute(self, ctx: Context, cursor, sql: str, params: tuple = None):
        try:
            self._execute(cursor, sql, params)
        except Exception as x:
            if ctx.cancelled:
                raise CancelledError(ctx.reason) from x
            raise

    def run(self, ctx: Context, sql: str, params: tuple = None) -> ExecutionResult:
        """Execute the given SQL as a statement with the given parameters, without committing.

        :param ctx: the context whose cancellation interrupts the statement
        :param sql: the SQL statement(s) to execute
        :param params: the values to bind to the execution of the given SQL
        :returns: the affected row count and, where the driver reports it, the last inserted id
        :raises: CancelledError
        """
        ctx.raise_if_cancelled()
        cursor = self._cnx.cursor()
        try:
            with ctx.interrupt_on_cancel(self._interrupt):
                self._guarded_execute(ctx, cursor, sql, params)
            return ExecutionResult(cursor.rowcount, self._last_insert_id(cursor))
        finally:
            cursor.close()

    @contextmanager
    def cursor(self, ctx: Context, sql: str, params: tuple = None) -> Iterator[ResultSet]:
        """Execute the given SQL as a query with the given parameters. Provide the results as context.

        The context stays armed while the results are consumed, so fetching rows can be interrupted as well.

        :param ctx: the context whose cancellation interrupts the query
        :param sql: the SQL query to run
        :param params: the values to bind to the execution of the given SQL
        :returns: a result set representing the query's results
        :raises: CancelledError
        """
        ctx.raise_if_cancelled()
        cursor = self._cnx.cursor()
        try:
            with ctx.interrupt_on_cancel(self._interrupt):
                self._guarded_execute(ctx, cursor, sql, params)
                try:
                    yield ResultSet(cursor)
                except Exception as x:
                    if ctx.cancelled and not isinstance(x, CancelledError):
                        raise CancelledError(ctx.reason) from x
                    raise
        finally:
            cursor.close()


class Transaction(Resource):
    """A resource bound to one leased connection until it is committed or rolled back.

    Example::

        with database.begin() as tx:
            repository.add_user(tx, "john", 45)
            repository.add_audit(tx, "john")

    Leaving the ``with`` block commits, unless an exception escapes it in which case the transaction is rolled back.
    """

    def __init__(self, database: "Database", cnx: Connection):
        """Construct a transaction over a connection leased from the given database.

        :param database: the database the connection was leased from, and is released to
        :param cnx: the leased connection
        """
        self.logger = logging.getLogger(__name__)
        self._database = database
        self._cnx = cnx

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.closed:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @property
    def closed(self) -> bool:
        """Whether the transaction has been committed or rolled back."""
        return self._cnx is None

    def _active_cnx(self) -> Connection:
        if self._cnx is None:
            raise TransactionClosedError("The transaction has already been committed or rolled back")
        return self._cnx

    def _finish(self, action: str):
        cnx = self._active_cnx()
        self._cnx = None
        try:
            getattr(cnx, action)()
        finally:
            self._database.release(cnx)
        self.logger.debug(f"Transaction finished with {action}")

    def commit(self):
        """Commit the transaction and release its connection.

        :raises: TransactionClosedError
        """
        self._finish("commit")

    def rollback(self):
        """Roll back the transaction and release its connection.

        :raises: TransactionClosedError
        """
        self._finish("rollback")

    def execute_context(self, ctx: Context, sql: str, params: tuple = None) -> ExecutionResult:  # noqa: D102
        return self._active_cnx().run(ctx, sql, params)

    @contextmanager
    def query_context(self, ctx: Context, sql: str, params: tuple = None) -> Iterator[ResultSet]:  # noqa: D102
        with self._active_cnx().cursor(ctx, sql, params) as results:
            yield results


class Database(Resource):
    """The root resource: a handle to a database that leases connections for each statement or transaction."""

    def __init__(self, db_url: str):
        """Parse the connection URL shared by every backend.

        Backends accept URLs shaped like::

            "{engine}://{username}:{password}@{hostname}:{port}/{db_name}?{optional_args}"

        and consume the optional arguments they know with ``_get_arg`` before calling ``_raise_for_unexpected_args``.

        :param db_url: the connection URL
        """
        self.logger = logging.getLogger(__name__)
        self._db_url = urlparse(db_url)
        self._args = parse_qs(self._db_url.query, keep_blank_values=True)

    def _raise_for_unexpected_args(self):
        if self._args:
            raise ConfigurationError(f"Unexpected argument(s): {','.join(self._args)}")

    def _get_arg(self, name: str, expected_type: type, default=None):
        values = self._args.pop(name, None)
        if values is None:
            self.logger.debug(f"Argument '{name}' not given, using {default}")
            return default
        if expected_type is list:
            return values
        if len(values) > 1:
            raise ConfigurationError(f"Invalid argument '{name}': only a single value must be specified")
        try:
            return expected_type(values[0])
        except ValueError as x:
            raise ConfigurationError(f"Invalid argument '{name}': must be {expected_type.__name__}") from x

    @property
    @abstractmethod
    def supports_last_insert_id(self) -> bool:
        """Whether statements executed by this backend report the identifier they generated."""
        pass  # pragma: no cover

    @abstractmethod
    def lease(self) -> Connection:
        """Lease a connection from the underlying driver."""
        pass  # pragma: no cover

    @abstractmethod
    def release(self, cnx: Connection):
        """Release a leased connection."""
        pass  # pragma: no cover

    @abstractmethod
    def dispose(self):
        """Close the handle and clean up any resources it was using."""
        pass  # pragma: no cover

    def begin(self) -> Transaction:
        """Begin a transaction on a dedicated connection.

        :returns: a transaction which must be committed or rolled back by the caller
        """
        return Transaction(self, self.lease())

    def execute_context(self, ctx: Context, sql: str, params: tuple = None) -> ExecutionResult:
        """Execute the given SQL on a freshly leased connection, committing on success."""
        cnx = self.lease()
        try:
            result = cnx.run(ctx, sql, params)
            cnx.commit()
            return result
        except Exception:
            cnx.rollback()
            raise
        finally:
            self.release(cnx)

    @contextmanager
    def query_context(self, ctx: Context, sql: str, params: tuple = None) -> Iterator[ResultSet]:
        """Run the given SQL query on a freshly leased connection held until the results are consumed."""
        cnx = self.lease()
        try:
            with cnx.cursor(ctx, sql, params) as results:
                yield results
            cnx.commit()
        except Exception:
            cnx.rollback()
            raise
        finally:
            self.release(cnx)
