"""Tests the postgres implementation of the resource interfaces, and bindings run against it."""

from typing import List, Optional, Tuple

from bindsql import bind, execute, query, query_one
from bindsql.backend import create_database
from bindsql.backend.errors import CancelledError, LastInsertIdUnsupportedError
from bindsql.context import with_timeout

import pytest

from tests.backend import postgres_test_sql as test_sql


class UserRepository:
    """Repository using postgres placeholders."""

    @execute("INSERT INTO users (name, age) VALUES (%s, %s)")
    def add_user(self, name: str, age: int) -> Tuple[int, int]:
        pass  # pragma: no cover

    @query_one("INSERT INTO users (name, age) VALUES (%s, %s) RETURNING id")
    def add_user_returning(self, name: str, age: int) -> int:
        pass  # pragma: no cover

    @query("SELECT name FROM users ORDER BY id")
    def names(self) -> List[str]:
        pass  # pragma: no cover

    @query("SELECT name FROM users WHERE name LIKE 'j%' ORDER BY id")
    def names_starting_with_j(self) -> List[str]:
        pass  # pragma: no cover

    @query_one(test_sql.SLOW_QUERY)
    def sleep(self) -> Tuple[Optional[tuple], Optional[Exception]]:
        pass  # pragma: no cover


@pytest.mark.parametrize(
    "extra_args",
    ["", "pool_min_conn=1", "pool_min_conn=1&pool_max_conn=3", "schema=public"],
)
def test_backend_impls(tmp_psql_db_url: str, extra_args: str):
    """Tests the basic backend implementations for postgres."""
    db = create_database(f"{tmp_psql_db_url}{'?'+extra_args if extra_args else ''}")
    assert not db.supports_last_insert_id
    db.execute(test_sql.CREATE_USERS)
    result = db.execute("INSERT INTO users (name, age) VALUES (%s, %s)", ("john", 65))
    assert result.rows_affected == 1
    with pytest.raises(LastInsertIdUnsupportedError):
        result.last_insert_id()
    with db.query("SELECT id, name, age FROM users WHERE age > %s", (18,)) as res:
        assert ["id", "name", "age"] == [r.name for r in res.description]
        assert res.fetchall() == [(1, "john", 65)]
    db.dispose()


def test_bindings(tmp_psql_db_url: str):
    """Tests bindings against postgres, where generated ids come from RETURNING."""
    db = create_database(f"{tmp_psql_db_url}?pool_max_conn=2")
    db.execute(test_sql.CREATE_USERS)
    repo = UserRepository()
    bind(None, db, repo)

    assert repo.add_user("john", 65) == (0, 1)
    assert repo.add_user_returning("jane", 90) == 2
    with db.begin() as tx:
        repo.add_user(tx, "jim", 20)
        assert repo.names() == ["john", "jane"]
    assert repo.names() == ["john", "jane", "jim"]
    assert repo.names_starting_with_j() == ["john", "jane", "jim"]
    db.dispose()


def test_deadline_cancels_query(tmp_psql_db_url: str):
    """Tests a statement running past its deadline is cancelled on the server."""
    db = create_database(tmp_psql_db_url)
    repo = UserRepository()
    with with_timeout(0.5) as ctx:
        bind(ctx, db, repo)
        row, error = repo.sleep()
    assert row is None
    assert isinstance(error.__cause__, CancelledError)
    db.dispose()
