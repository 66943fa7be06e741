"""Implements binding every function stub of a repository instance to a database resource."""

import inspect
import logging
import typing

from bindsql.backend.base import Resource
from bindsql.binding.bound import BoundExecution, BoundQuery, BoundSQLFunction
from bindsql.binding.directives import DirectiveKind, FunctionStub
from bindsql.binding.errors import BindingError, MissingDirectiveError, MultipleDirectivesError, TargetError
from bindsql.binding.resolver import QueryResolver
from bindsql.binding.shapes import classify
from bindsql.context import Context, background
from bindsql.loaders import QueryLoader

logger = logging.getLogger(__name__)


def _binding_targets(cls: type) -> typing.Dict[str, typing.Any]:
    """Collect the public functions of a class and its bases, in declaration order, bases first."""
    members = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if name.startswith("_"):
                continue
            if isinstance(member, FunctionStub) or inspect.isfunction(member):
                members[name] = member
            elif name in members:
                del members[name]
    return members


def _validate(resource, target):
    if not isinstance(resource, Resource):
        raise TargetError(f"The default resource must be a Resource, found: {type(resource).__name__}")
    if inspect.isclass(target):
        raise TargetError(f"Must be an instance of a class, found the class itself: {target.__name__}")
    if not hasattr(target, "__dict__"):
        raise TargetError(f"Must be an instance able to hold attributes, found: {type(target).__name__}")


def _make_binding(
    name: str,
    member: typing.Any,
    resolver: QueryResolver,
    resource: Resource,
    ctx: Context,
    last_insert_id_support: bool,
) -> BoundSQLFunction:
    if not isinstance(member, FunctionStub):
        raise MissingDirectiveError(f"{name}: function is defined but does not have any queries")
    if len(member.directives) != 1:
        kinds = ", ".join(d.kind.value for d in member.directives)
        raise MultipleDirectivesError(f"{name}: function has {len(member.directives)} directives ({kinds}), "
                                      f"exactly one is allowed")
    directive = member.directives[0]
    query = resolver.resolve(directive.text, name)
    signature = classify(name, directive.kind, member.func)
    if directive.kind is DirectiveKind.EXEC:
        return BoundExecution(name, member.func, query, signature, resource, ctx,
                              last_insert_id_support=last_insert_id_support)
    return BoundQuery(name, member.func, query, signature, resource, ctx)


def bind(
    ctx: typing.Optional[Context],
    resource: Resource,
    target: typing.Any,
    loader: QueryLoader = None,
    last_insert_id_support: bool = False,
    verbose_trace: bool = False,
):
    """Bind every public function of the target's class to the SQL given by its directive.

    Example::

        class UserRepository:
            @execute("INSERT INTO users (name, age) VALUES (?, ?)")
            def add_user(self, name: str, age: int) -> Tuple[int, int]:
                pass

            @query_one("file:select_user")
            def get_user(self, user_id: int) -> Tuple[Optional[User], Optional[Exception]]:
                pass

        users = UserRepository()
        bind(None, create_database("sqlite3:///tmp/app.db"), users, FileSystemQueryLoader("./sql"), True)
        user_id, _ = users.add_user("john", 65)
        user, err = users.get_user(user_id)

    Either every function is bound, or a BindingError is raised and the target is left untouched.

    .. warning::
        Some database systems (PostgreSQL) do not report the last inserted id, last_insert_id_support must be False
        for them.

    :param ctx: the cancellation context every call of the bound functions runs under, None for no cancellation
    :param resource: the resource used by calls that do not pass one as their first argument
    :param target: the instance whose functions are bound
    :param loader: the loader used to resolve ``file:`` directives
    :param last_insert_id_support: whether execute bindings report the last inserted id, 0 is reported when not
    :param verbose_trace: keep the full internal traceback of binding errors
    :raises: BindingError
    """
    ctx = ctx or background()
    resolver = QueryResolver(loader)
    try:
        _validate(resource, target)
        bindings = {}
        for name, member in _binding_targets(type(target)).items():
            bindings[name] = _make_binding(name, member, resolver, resource, ctx, last_insert_id_support)
    except BindingError as x:
        if verbose_trace:
            raise  # pragma: no cover
        # Try to cut down on the traces so the user gets closer to the issue in their code
        raise x.with_traceback(None)
    for name, bound in bindings.items():
        setattr(target, name, bound)
        logger.debug(f"Bound {type(target).__name__}.{name} as {bound.shape.value}: {bound}")
