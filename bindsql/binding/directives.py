"""Directive decorators marking the functions of a repository class as SQL bindings."""

import enum
import functools
from dataclasses import dataclass
from typing import List

from bindsql.binding.errors import NotBoundError


class DirectiveKind(enum.Enum):
    """How a binding runs its SQL."""

    EXEC = "execute"
    QUERY_MANY = "query"
    QUERY_ONE = "query_one"


@dataclass(frozen=True)
class Directive:
    """A directive kind together with its raw query text (literal SQL or an external reference)."""

    kind: DirectiveKind
    text: str


class FunctionStub:
    """A function declared on a repository class which has not been bound to a resource yet.

    The stub keeps the original function so its signature can be inspected, and the directives attached to it in the
    order they were applied.
    """

    def __init__(self, func: callable):  # noqa: D107
        functools.update_wrapper(self, func)
        self.func = func
        self.directives: List[Directive] = []

    def __call__(self, *args, **kwargs):
        """Refuse to run, the stub has no resource until its instance is bound.

        :raises: NotBoundError
        """
        raise NotBoundError(f"The function {self.func.__qualname__} is called before its instance has been bound")

    def __repr__(self) -> str:
        kinds = ", ".join(d.kind.value for d in self.directives)
        return f"<{self.__class__.__name__} {self.func.__qualname__} [{kinds}]>"


def _attach(kind: DirectiveKind, text: str) -> callable:
    def decorated(func: callable):
        stub = func if isinstance(func, FunctionStub) else FunctionStub(func)
        stub.directives.append(Directive(kind, text))
        return stub

    return decorated


def execute(sql: str) -> callable:
    """Mark a function as a statement that does not return rows (INSERT, UPDATE, DELETE, DDL ...).

    The return annotation selects what the bound function returns::

        @execute("INSERT INTO users (name, age) VALUES (?, ?)")
        def add_user(self, name: str, age: int) -> Tuple[int, int, Optional[Exception]]:
            pass

    Supported annotations are ``None`` (or none at all), ``Optional[Exception]``, ``Tuple[int, int]`` (last insert id
    and rows affected) and ``Tuple[int, int, Optional[Exception]]``.  Shapes without an error slot raise
    :class:`~bindsql.binding.errors.ExecutionError` on failure, the others return it.

    :param sql: literal SQL, or ``file:<name>`` to load it from the binding's query loader
    :returns: a decorator expecting a function
    """
    return _attach(DirectiveKind.EXEC, sql)


def query(sql: str) -> callable:
    """Mark a function as a query returning zero or more rows, mapped to a list.

    Example::

        @query("SELECT * FROM users WHERE age > ?")
        def older_than(self, age: int) -> List[User]:
            pass

    :param sql: literal SQL, or ``file:<name>`` to load it from the binding's query loader
    :returns: a decorator expecting a function
    """
    return _attach(DirectiveKind.QUERY_MANY, sql)


def query_one(sql: str) -> callable:
    """Mark a function as a query returning zero or one row.

    An ``Optional[X]`` annotation returns None when no row matches, a bare ``X`` returns a zero valued ``X``::

        @query_one("SELECT * FROM users WHERE id = ?")
        def get_user(self, user_id: int) -> Tuple[Optional[User], Optional[Exception]]:
            pass

    :param sql: literal SQL, or ``file:<name>`` to load it from the binding's query loader
    :returns: a decorator expecting a function
    """
    return _attach(DirectiveKind.QUERY_ONE, sql)
