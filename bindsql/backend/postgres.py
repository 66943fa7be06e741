"""Implementation of the PostgreSQL backend using psycopg2."""

from typing import Optional, Tuple

from bindsql.backend.base import Connection, Database
from bindsql.backend.errors import BackendNotInstalledError, ConfigurationError


class ConnectionPSQLPsycopg2(Connection):
    """Connection leased from a psycopg2 pool."""

    def _execute(self, cursor, sql: str, params: tuple = None):
        # an empty tuple still makes psycopg2 treat % as a placeholder
        cursor.execute(query=sql, vars=params or None)

    def _interrupt(self):
        # asks the server to cancel, safe from any thread
        self._cnx.cancel()

    def _last_insert_id(self, cursor) -> Optional[int]:
        # use INSERT ... RETURNING with query_one for generated ids
        return None


class DatabasePSQLPsycopg2(Database):
    """Database handle backed by a psycopg2 ThreadedConnectionPool."""

    def __init__(self, db_url: str):
        """Construct a database handle for the given connection URL.

        The db_url is expected to be in the following format::

            "postgresql+psycopg2://{username}:{password}@{hostname}:{port}/{db_name}?{optional_args}"

        Recognized `optional_args`:

            * schema, repeatable, the search path of every connection, defaults to "public"
            * pool_min_conn, the number of connections opened up front, defaults to 1
            * pool_max_conn, the most connections open at once, defaults to pool_min_conn
            * sslmode, the libpq ssl mode ("require", "verify-full" ...), unset by default
            * sslrootcert, a path to the root CA used to verify the server, unset by default

        Each call made through this handle, and each open transaction, holds one pooled connection. A call made while
        pool_max_conn connections are in use fails rather than waits.

        :param db_url: a url with the described format
        :raises: ConfigurationError, BackendNotInstalledError
        """
        super().__init__(db_url)
        try:
            from psycopg2.pool import ThreadedConnectionPool
        except ModuleNotFoundError:  # pragma: no cover
            raise BackendNotInstalledError("Module psycopg2 not installed, install bindsql[postgres]")
        min_conn, max_conn = self._pool_bounds()
        cnx_kwargs = self._libpq_kwargs()
        self._raise_for_unexpected_args()
        self._pool = ThreadedConnectionPool(min_conn, max_conn, **cnx_kwargs)

    def _pool_bounds(self) -> Tuple[int, int]:
        min_conn = self._get_arg("pool_min_conn", int, 1)
        max_conn = self._get_arg("pool_max_conn", int, min_conn)
        if min(min_conn, max_conn) < 1:
            raise ConfigurationError("The pool_max_conn and pool_min_conn must be greater than 0")
        if max_conn < min_conn:
            raise ConfigurationError("The argument pool_max_conn must be greater or equal to pool_min_conn")
        return min_conn, max_conn

    def _libpq_kwargs(self) -> dict:
        url = self._db_url
        dbname = url.path.strip("/")
        if not dbname:
            raise ConfigurationError("Database name is required but missing")
        search_path = ",".join(self._get_arg("schema", list, ["public"]))
        kwargs = dict(
            dbname=dbname,
            user=url.username,
            password=url.password,
            host=url.hostname,
            port=url.port,
            options=f"-c search_path={search_path}",
        )
        for ssl_arg in ("sslmode", "sslrootcert"):
            value = self._get_arg(ssl_arg, str, None)
            if value:
                kwargs[ssl_arg] = value
        return kwargs

    @property
    def supports_last_insert_id(self) -> bool:  # noqa: D102
        return False

    def lease(self) -> Connection:  # noqa: D102
        return ConnectionPSQLPsycopg2(self._pool.getconn())

    def release(self, cnx: Connection):  # noqa: D102
        self._pool.putconn(cnx._cnx)

    def dispose(self):  # noqa: D102
        if self._pool.closed:
            return
        self.logger.debug("Closing every pooled connection")
        self._pool.closeall()
