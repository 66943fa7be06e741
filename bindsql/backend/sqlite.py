"""Implementation of the SQLite backend using the standard library sqlite3 module."""

import os.path
import sqlite3

from bindsql.backend.base import Connection, Database


class ConnectionSQLite3(Connection):
    """Connection opened by sqlite3 for a single lease."""

    def _execute(self, cursor, sql: str, params: tuple = None):
        # sqlite3 rejects an explicit None for parameters
        cursor.execute(sql, params or ())

    def _interrupt(self):
        self._cnx.interrupt()

    def _last_insert_id(self, cursor) -> int:
        # lastrowid stays None until this connection inserts a row
        return cursor.lastrowid or 0


class DatabaseSQLite3(Database):
    """Database handle for a SQLite file."""

    def __init__(self, db_url: str):
        """Construct a database handle for the given connection URL.

        The db_url is expected to be in the following format::

            "sqlite3://{filename}?{optional_args}"

        Recognized `optional_args`:

            * timeout, the seconds to wait for a lock held by another connection, defaults to 5.0

        There is no pool: each lease opens the file again, so transactions started on this handle see each other's
        work only once it is committed.  For the same reason ``:memory:`` databases cannot be used.

        :param db_url: a url with the described format
        :raises: ConfigurationError
        """
        super().__init__(db_url)
        path = os.path.expanduser(self._db_url.netloc + self._db_url.path)
        self._database = os.path.abspath(path)
        self._timeout = self._get_arg("timeout", float, 5.0)
        self._raise_for_unexpected_args()

    @property
    def supports_last_insert_id(self) -> bool:  # noqa: D102
        return True

    def lease(self) -> Connection:  # noqa: D102
        return ConnectionSQLite3(sqlite3.connect(self._database, timeout=self._timeout))

    def release(self, cnx: Connection):  # noqa: D102
        cnx._cnx.close()

    def dispose(self):  # noqa: D102
        return
