"""Classifies the declared signature of a function stub into one of the return shapes a binding supports."""

import enum
import inspect
import types
import typing
from dataclasses import dataclass

from bindsql.backend.base import Resource
from bindsql.binding.directives import DirectiveKind
from bindsql.binding.errors import BadReturnTypeError, CannotInferMappingError, ExecutionError, SignatureError
from bindsql.binding.mappers import LIST_GENERICS, TUPLE_GENERICS, RowMapper, get_row_mapper

NONE_TYPES = (None, type(None), typing.NoReturn)


class ReturnShape(enum.Enum):
    """The closed set of return conventions a bound function can follow."""

    EXEC_NONE = "exec_none"
    EXEC_ERROR = "exec_error"
    EXEC_ID_COUNT = "exec_id_count"
    EXEC_ID_COUNT_ERROR = "exec_id_count_error"
    RESULT = "result"
    RESULT_ERROR = "result_error"

    @property
    def escalates(self) -> bool:
        """Whether failures are raised rather than returned."""
        return self in (ReturnShape.EXEC_NONE, ReturnShape.EXEC_ID_COUNT, ReturnShape.RESULT)


@dataclass(frozen=True)
class Signature:
    """The outcome of classifying a stub: its return shape and, for queries, how rows are mapped."""

    shape: ReturnShape
    kind: DirectiveKind
    parameters: typing.Tuple[inspect.Parameter, ...]
    row_type: typing.Any = None
    mapper: RowMapper = None
    optional: bool = False
    resource_parameter: bool = False


def _unwrap_optional(type_hint: typing.Any) -> typing.Optional[typing.Type]:
    """Extract the inner type from Optional[X] or X | None.

    :param type_hint: A type hint that may be Optional[X] or X | None
    :returns: The inner type X if type_hint is Optional[X], None otherwise
    """
    origin = typing.get_origin(type_hint)
    args = typing.get_args(type_hint)
    # Check for Union types (typing.Union or types.UnionType for X | Y syntax)
    if origin not in (typing.Union, getattr(types, "UnionType", typing.Union)) or not args:
        return None
    # Filter out NoneType from the union args
    non_none_args = [a for a in args if a is not type(None)]
    # Only unwrap if there's exactly one non-None type (true Optional)
    if len(non_none_args) == 1:
        return non_none_args[0]
    return None


def is_error_type(type_hint: typing.Any) -> bool:
    """Return whether a hint can carry the ExecutionError a bound function returns (e.g. Optional[Exception])."""
    inner = _unwrap_optional(type_hint) or type_hint
    return inspect.isclass(inner) and issubclass(inner, BaseException) and issubclass(ExecutionError, inner)


def is_resource_type(type_hint: typing.Any) -> bool:
    """Return whether a hint declares a resource (e.g. Resource, Optional[Transaction])."""
    inner = _unwrap_optional(type_hint) or type_hint
    return inspect.isclass(inner) and issubclass(inner, Resource)


def _classify_exec(name: str, return_type) -> ReturnShape:
    if return_type is inspect.Signature.empty or return_type in NONE_TYPES:
        return ReturnShape.EXEC_NONE
    if is_error_type(return_type):
        return ReturnShape.EXEC_ERROR
    if typing.get_origin(return_type) in TUPLE_GENERICS:
        args = typing.get_args(return_type)
        if len(args) == 2 and args == (int, int):
            return ReturnShape.EXEC_ID_COUNT
        if len(args) == 3 and args[0:2] == (int, int) and is_error_type(args[2]):
            return ReturnShape.EXEC_ID_COUNT_ERROR
    error = (
        f"{name}: execute bindings can only return None, Optional[Exception], Tuple[int, int] or "
        f"Tuple[int, int, Optional[Exception]], got {return_type}"
    )
    raise BadReturnTypeError(error)


def _one_row_type(name: str, result_type) -> typing.Tuple[typing.Any, bool]:
    if result_type is inspect.Signature.empty:
        return tuple, True
    unwrapped = _unwrap_optional(result_type)
    row_type = unwrapped if unwrapped is not None else result_type
    if row_type in NONE_TYPES:
        raise BadReturnTypeError(f"{name}: query_one bindings must return a row type, got {result_type}")
    if row_type in LIST_GENERICS or typing.get_origin(row_type) in LIST_GENERICS:
        raise BadReturnTypeError(f"{name}: query_one bindings return a single row, use query for {result_type}")
    return row_type, unwrapped is not None


def _many_row_type(name: str, result_type) -> typing.Any:
    if result_type is inspect.Signature.empty:
        return tuple
    unwrapped = _unwrap_optional(result_type)
    list_type = unwrapped if unwrapped is not None else result_type
    if list_type in LIST_GENERICS:
        return tuple
    if typing.get_origin(list_type) in LIST_GENERICS:
        args = typing.get_args(list_type)
        return args[0] if args else tuple
    raise BadReturnTypeError(f"{name}: query bindings must return a list of rows (e.g. List[X]), got {result_type}")


def classify(name: str, kind: DirectiveKind, func: callable) -> Signature:
    """Decide the return shape and row mapping of a stub bound with the given directive.

    :param name: the name of the binding, used in error messages
    :param kind: the directive kind attached to the stub
    :param func: the stub's original function
    :returns: the classified signature
    :raises: SignatureError, BadReturnTypeError, CannotInferMappingError
    """
    if inspect.iscoroutinefunction(func) or inspect.isgeneratorfunction(func):
        raise SignatureError(f"{name}: coroutine and generator functions cannot be bound")
    try:
        hints = typing.get_type_hints(func)
    except Exception as x:
        raise SignatureError(f"{name}: unable to resolve type hints: {x}") from x
    parameters = tuple(inspect.signature(func).parameters.values())
    if not parameters or parameters[0].kind not in (inspect.Parameter.POSITIONAL_ONLY,
                                                    inspect.Parameter.POSITIONAL_OR_KEYWORD):
        raise SignatureError(f"{name}: bound functions are declared as methods and must accept self")
    # self is never forwarded, the bound function is installed on the instance
    parameters = parameters[1:]
    for param in parameters:
        if param.kind is param.VAR_KEYWORD:
            raise SignatureError(f"{name}: keyword argument catch-alls (**{param.name}) cannot be bound")
    return_type = hints.get("return", inspect.Signature.empty)
    resource_parameter = bool(parameters) and parameters[0].kind is not parameters[0].VAR_POSITIONAL and \
        is_resource_type(hints.get(parameters[0].name))

    if kind is DirectiveKind.EXEC:
        return Signature(_classify_exec(name, return_type), kind, parameters, resource_parameter=resource_parameter)

    shape = ReturnShape.RESULT
    result_type = return_type
    if typing.get_origin(return_type) in TUPLE_GENERICS:
        args = typing.get_args(return_type)
        if len(args) == 2 and is_error_type(args[1]):
            shape = ReturnShape.RESULT_ERROR
            result_type = args[0]

    optional = False
    if kind is DirectiveKind.QUERY_ONE:
        row_type, optional = _one_row_type(name, result_type)
    else:
        row_type = _many_row_type(name, result_type)
    mapper = get_row_mapper(row_type)
    if mapper is None:
        raise CannotInferMappingError(f"{name}: unable to determine row mapper for {row_type}")
    return Signature(shape, kind, parameters, row_type, mapper, optional, resource_parameter)
