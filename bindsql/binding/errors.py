"""Defines common errors raised from function binding."""


class BindSQLError(Exception):
    """Base exception for every error raised by binding or by bound functions."""

    pass


class BindingError(BindSQLError):
    """Base exception for configuration errors detected when binding functions."""

    pass


class TargetError(BindingError):
    """Raised when the object given to bind cannot hold bound functions, or the default resource is unusable."""

    pass


class DirectiveError(BindingError):
    """Base exception for binding errors related to the directives attached to a function."""

    pass


class MissingDirectiveError(DirectiveError):
    """Raised when a public function of a bound class has no directive."""

    pass


class MultipleDirectivesError(DirectiveError):
    """Raised when a function carries more than one directive."""

    pass


class QueryLoadError(BindingError):
    """Raised when the SQL referenced by a directive cannot be loaded."""

    pass


class SignatureError(BindingError):
    """Base exception for binding errors related to function signature inspection."""

    pass


class BadReturnTypeError(SignatureError):
    """Raised when a return hint specifies a shape that the binding's directive does not support."""

    pass


class CannotInferMappingError(SignatureError):
    """Raised when the row mapping for a bound function cannot be determined."""

    pass


class NotBoundError(BindSQLError):
    """Raised when a function stub is called before its class instance has been bound."""

    pass


class MappingError(BindSQLError):
    """Base exception for errors related to mapping database results to return types."""

    pass


class NoRowsError(MappingError):
    """Raised when mapping expected a row but the result set was empty."""

    pass


class TooManyValuesError(MappingError):
    """Raised when the number of columns does not match the expected number for mapping."""

    pass


class TooManyRowsError(MappingError):
    """Raised when mapping implies a singular return, but many rows are returned."""

    pass


class ExecutionError(BindSQLError):
    """Raised, or returned, when a bound function fails to execute its SQL or map its results.

    The underlying driver, cancellation or mapping error is available as ``__cause__``.
    """

    def __init__(self, field: str, cause: BaseException):  # noqa: D107
        super().__init__(f"{field}: {cause}")
        self.field = field
        self.__cause__ = cause
