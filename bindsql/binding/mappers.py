"""Row mappers turning raw result tuples into the row types bound functions declare, and the scans built on them."""

import collections.abc
import dataclasses
import inspect
import typing
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from bindsql.backend.base import ColumnDescriptor, ResultSet
from bindsql.binding.errors import NoRowsError, TooManyRowsError, TooManyValuesError

TUPLE_GENERICS = [tuple, typing.Tuple]
DICT_GENERICS = [dict, typing.Dict, typing.Mapping, collections.abc.Mapping]
LIST_GENERICS = [
    list,
    typing.List,
    typing.Iterable,
    typing.Sequence,
    collections.abc.Sequence,
    collections.abc.Iterable,
]
NATIVE_SINGLE = [str, int, float, bool, bytes, complex, Decimal, date, datetime, UUID]

Description = typing.Tuple[ColumnDescriptor, ...]


class RowMapper(ABC):
    """Converts one raw row into a value of the mapped type."""

    @abstractmethod
    def __call__(self, row: tuple, description: Description):
        """Convert a row.

        :param row: the raw values of the row, in column order
        :param description: the columns of the result set the row belongs to
        :returns: the converted row
        """
        pass  # pragma: no cover

    @abstractmethod
    def zero(self):
        """Return what a by-value single row query gives back when no row matched."""
        pass  # pragma: no cover


class TupleRowMapper(RowMapper):
    """Leaves rows as plain tuples."""

    def __call__(self, row: tuple, description: Description):  # noqa: D102
        return tuple(row)

    def zero(self):  # noqa: D102
        return ()


class DictRowMapper(RowMapper):
    """Keys each value of a row by its column name."""

    def __call__(self, row: tuple, description: Description):  # noqa: D102
        return dict(zip((column.name for column in description), row))

    def zero(self):  # noqa: D102
        return {}


class ClassRowMapper(DictRowMapper):
    """Builds an instance of a class from a row, passing each column as the keyword argument of the same name."""

    def __init__(self, mapped_class: type):  # noqa: D107
        self._mapped_class = mapped_class

    def __call__(self, row: tuple, description: Description):  # noqa: D102
        return self._mapped_class(**super().__call__(row, description))

    def zero(self):  # noqa: D102
        return zero_value(self._mapped_class)


class SingleValueRowMapper(RowMapper):
    """Unwraps rows holding a single column."""

    def __init__(self, value_type: typing.Type = None):
        """Construct a single value mapper.

        :param value_type: the declared type of the value; integers are turned into bools when bool is declared, as
                           sqlite has no boolean storage
        """
        self._value_type = value_type

    def __call__(self, row: tuple, description: Description):  # noqa: D102
        if len(row) != 1:
            raise TooManyValuesError(f"Too many values, expected 1, got {len(row)}")
        (value,) = row
        if self._value_type is bool and value is not None:
            return bool(value)
        return value

    def zero(self):  # noqa: D102
        return zero_value(self._value_type)


def zero_value(value_type: typing.Any):
    """Build the zero value of a type: 0, "", an empty container, or a class instance with zero valued fields.

    Types without an obvious zero (datetimes, UUIDs, optional and union types ...) have None as their zero value.

    :param value_type: the type to build a zero value for
    :returns: the zero value
    """
    origin = typing.get_origin(value_type)
    if origin is not None:
        if origin in TUPLE_GENERICS:
            return ()
        if origin in DICT_GENERICS:
            return {}
        if origin in LIST_GENERICS:
            return []
        return None
    if value_type in TUPLE_GENERICS:
        return ()
    if value_type in DICT_GENERICS:
        return {}
    if value_type in (list, typing.List):
        return []
    if value_type in NATIVE_SINGLE:
        try:
            return value_type()
        except TypeError:
            return None
    if not inspect.isclass(value_type):
        return None
    if dataclasses.is_dataclass(value_type):
        hints = typing.get_type_hints(value_type)
        kwargs = {}
        for field in dataclasses.fields(value_type):
            if not field.init:
                continue
            if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
                kwargs[field.name] = zero_value(hints.get(field.name))
        return value_type(**kwargs)
    try:
        hints = typing.get_type_hints(value_type.__init__)
    except (NameError, TypeError):
        hints = {}
    kwargs = {}
    for name, param in inspect.signature(value_type).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD) or param.default is not param.empty:
            continue
        kwargs[name] = zero_value(hints.get(name))
    return value_type(**kwargs)


def get_row_mapper(row_type: typing.Type) -> typing.Optional[RowMapper]:
    """Pick the mapper for a declared row type.

    :param row_type: the row type a query binding declares
    :returns: the mapper, or None when rows cannot be converted to the type
    """
    # parametrized generics (Dict[str, int], Tuple[int, ...]) would need per column casting
    if typing.get_origin(row_type) and typing.get_args(row_type):
        return None
    if row_type in (typing.Union, typing.Optional):
        return None
    if row_type in TUPLE_GENERICS:
        return TupleRowMapper()
    if row_type in DICT_GENERICS:
        return DictRowMapper()
    if row_type in NATIVE_SINGLE:
        return SingleValueRowMapper(row_type)
    if inspect.isclass(row_type):
        return ClassRowMapper(row_type)
    return None


def scan_one(results: ResultSet, mapper: RowMapper):
    """Map the only row of a result set.

    :param results: the result set to read
    :param mapper: the mapper applied to the row
    :returns: the mapped row
    :raises: NoRowsError, TooManyRowsError
    """
    row = results.fetchone()
    if row is None:
        raise NoRowsError("No rows in result set")
    if results.fetchone() is not None:
        raise TooManyRowsError("Only expected one row, but got more than one")
    return mapper(row, results.description)


def scan_row(results: ResultSet, mapper: RowMapper):
    """Map the current row of a result set, ignoring any rows after it.

    :param results: the result set to read
    :param mapper: the mapper applied to the row
    :returns: the mapped row
    :raises: NoRowsError
    """
    row = results.fetchone()
    if row is None:
        raise NoRowsError("No rows in result set")
    return mapper(row, results.description)


def scan_all(results: ResultSet, mapper: RowMapper) -> list:
    """Map every remaining row of a result set.

    :param results: the result set to read
    :param mapper: the mapper applied to each row
    :returns: a list of mapped rows, empty if there are none
    """
    return [mapper(row, results.description) for row in results.fetchall()]
