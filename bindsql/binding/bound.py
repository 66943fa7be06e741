"""Callables synthesized for each binding, running resolved SQL against a resource when called."""

import functools
import inspect
import logging
import typing
from abc import ABC, abstractmethod

from bindsql.backend.base import Resource
from bindsql.binding.directives import DirectiveKind
from bindsql.binding.errors import ExecutionError, NoRowsError
from bindsql.binding.mappers import scan_all, scan_one, scan_row
from bindsql.binding.resolver import ResolvedQuery
from bindsql.binding.shapes import ReturnShape, Signature
from bindsql.context import Context


class BoundSQLFunction(ABC):
    """Abstract class for common behaviors between functions bound to resolved SQL.

    A bound function holds nothing that changes between calls, so one instance may be called from many threads at
    once; each call only borrows the resource it runs on.
    """

    def __init__(
        self,
        name: str,
        func: callable,
        query: ResolvedQuery,
        signature: Signature,
        resource: Resource,
        ctx: Context,
    ):
        """Construct a bound function.

        :param name: the attribute name the function is bound to
        :param func: the stub function being bound, kept for its name and documentation
        :param query: the SQL resolved for the binding
        :param signature: the classified signature of the stub
        :param resource: the resource used when a call does not pass one as its first argument
        :param ctx: the cancellation context every call runs under
        """
        functools.update_wrapper(self, func)
        self.logger = logging.getLogger(__name__)
        self._name = name
        self._query = query
        self._signature = signature
        self._call_sig = inspect.Signature(signature.parameters)
        self._resource = resource
        self._ctx = ctx
        self._return_impl = getattr(self, f"_{signature.shape.value}_return")
        self._failure_impl = getattr(self, f"_{signature.shape.value}_failure", None)

    def __str__(self) -> str:
        """Return a simple representation of a SQL bound function."""
        return f"{self.__class__.__name__} of {self._query} ({self._name})"

    @property
    def query(self) -> ResolvedQuery:
        """Return the SQL this function runs."""
        return self._query

    @property
    def shape(self) -> ReturnShape:
        """Return the shape of the values this function returns."""
        return self._signature.shape

    def _arguments(self, args: tuple, kwargs: dict) -> typing.Tuple[Resource, tuple]:
        resource = self._resource
        if not self._signature.resource_parameter and args and isinstance(args[0], Resource):
            resource, args = args[0], args[1:]
        bound = self._call_sig.bind(*args, **kwargs)
        bound.apply_defaults()
        values = []
        for param in self._call_sig.parameters.values():
            value = bound.arguments[param.name]
            if param.kind is param.VAR_POSITIONAL:
                values.extend(value)
            else:
                values.append(value)
        if self._signature.resource_parameter:
            # a declared resource parameter is never forwarded, None selects the default
            override, values = values[0], values[1:]
            if isinstance(override, Resource):
                resource = override
            elif override is not None:
                name = self._signature.parameters[0].name
                raise TypeError(f"{self._name}: '{name}' must be a Resource or None, got {type(override).__name__}")
        return resource, tuple(values)

    @abstractmethod
    def _run(self, resource: Resource, params: tuple):
        pass  # pragma: no cover

    def __call__(self, *args, **kwargs):
        """Run the bound SQL with the given arguments as positional parameters.

        If the first argument is a :class:`~bindsql.backend.base.Resource` it is used in place of the default resource
        and is not passed on to the SQL. A stub may also declare its first parameter with a resource annotation, in
        which case that parameter is never passed on to the SQL.

        :raises: ExecutionError when the shape does not return errors
        """
        resource, params = self._arguments(args, kwargs)
        self.logger.debug(f"Calling {self._name} with {len(params)} parameter(s)")
        try:
            outcome = self._run(resource, params)
        except Exception as x:
            error = ExecutionError(self._name, x)
            self.logger.debug(f"{self._name} failed: {x}")
            if self._failure_impl is None:
                raise error from x
            return self._failure_impl(error)
        return self._return_impl(outcome)


class BoundExecution(BoundSQLFunction):
    """Implementation of a bound function that represents a SQL statement that does not return rows."""

    def __init__(self, *args, last_insert_id_support: bool = False, **kwargs):
        """Construct a bound execution.

        :param last_insert_id_support: whether the backend reports generated ids, the id returned is 0 when not
        """
        super().__init__(*args, **kwargs)
        self._last_insert_id_support = last_insert_id_support

    def _run(self, resource: Resource, params: tuple) -> typing.Tuple[int, int]:
        result = resource.execute_context(self._ctx, self._query.sql, params)
        inserted = result.last_insert_id() if self._last_insert_id_support else 0
        return inserted, result.rows_affected

    @staticmethod
    def _exec_none_return(outcome):
        return None

    @staticmethod
    def _exec_error_return(outcome):
        return None

    @staticmethod
    def _exec_error_failure(error: ExecutionError):
        return error

    @staticmethod
    def _exec_id_count_return(outcome):
        return outcome

    @staticmethod
    def _exec_id_count_error_return(outcome):
        return outcome[0], outcome[1], None

    @staticmethod
    def _exec_id_count_error_failure(error: ExecutionError):
        return 0, 0, error


class BoundQuery(BoundSQLFunction):
    """Implementation of a bound function that represents a SQL query that returns rows."""

    def __str__(self) -> str:
        """Return a simple representation of a SQL bound query, naming the type its rows are mapped to."""
        row_type = self._signature.row_type
        return f"{super().__str__()} -> {getattr(row_type, '__name__', row_type)}"

    def _scan(self, results):
        mapper = self._signature.mapper
        if self._signature.kind is DirectiveKind.QUERY_MANY:
            return scan_all(results, mapper)
        if self._signature.optional:
            try:
                return scan_one(results, mapper)
            except NoRowsError:
                return None
        try:
            return scan_row(results, mapper)
        except NoRowsError:
            return mapper.zero()

    def _run(self, resource: Resource, params: tuple):
        with resource.query_context(self._ctx, self._query.sql, params) as results:
            return self._scan(results)

    @staticmethod
    def _result_return(outcome):
        return outcome

    @staticmethod
    def _result_error_return(outcome):
        return outcome, None

    @staticmethod
    def _result_error_failure(error: ExecutionError):
        return None, error
