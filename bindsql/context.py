"""Cancellation contexts threaded from bound functions through to the database driver."""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CancelledError(Exception):
    """Raised when a database operation is attempted or interrupted under a cancelled context."""

    pass


class Context:
    """A cancellation signal shared between a caller and the database operations it starts.

    Contexts form a tree: cancelling a parent cancels every child derived from it, cancelling a child leaves the parent
    untouched.  A context can be used as a context manager, in which case it is cancelled on exit, releasing any
    deadline timer and parent registration it holds.

    Example::

        with with_timeout(2.5) as ctx:
            bind(ctx, database, repository)
            repository.slow_report()
    """

    def __init__(self, parent: "Context" = None):
        """Construct a cancellation context.

        :param parent: an optional parent whose cancellation propagates to this context
        """
        self._lock = threading.Lock()
        self._cancelled = False
        self._reason = None
        self._callbacks = {}
        self._next_token = 0
        self._parent = parent
        self._parent_token = None
        if parent is not None:
            self._parent_token = parent.on_cancel(lambda: self.cancel(parent.reason))

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()

    @property
    def cancelled(self) -> bool:
        """Whether this context has been cancelled."""
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        """Return the reason given when the context was cancelled, None if it has not been."""
        return self._reason

    def cancel(self, reason: str = "context cancelled"):
        """Cancel the context, running every registered callback once.

        Cancelling an already cancelled context does nothing.

        :param reason: a description of why the context was cancelled
        """
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._reason = reason
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        if self._parent is not None and self._parent_token is not None:
            self._parent.remove_callback(self._parent_token)
        logger.debug(f"Context cancelled: {reason}")
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Optional[int]:
        """Register a callback to run when the context is cancelled.

        If the context is already cancelled the callback runs immediately and no token is returned.

        :param callback: a callable taking no arguments
        :returns: a token usable with remove_callback, or None
        """
        with self._lock:
            if not self._cancelled:
                token = self._next_token
                self._next_token += 1
                self._callbacks[token] = callback
                return token
        callback()
        return None

    def remove_callback(self, token: Optional[int]):
        """Unregister a callback previously registered with on_cancel."""
        if token is None:
            return
        with self._lock:
            self._callbacks.pop(token, None)

    def raise_if_cancelled(self):
        """Raise CancelledError if this context has been cancelled.

        :raises: CancelledError
        """
        if self._cancelled:
            raise CancelledError(self._reason)

    @contextmanager
    def interrupt_on_cancel(self, interrupt: Callable[[], None]):
        """Provide a scope during which cancelling this context calls the given interrupt.

        :param interrupt: typically a driver level call aborting the statement in flight
        """
        token = self.on_cancel(interrupt)
        try:
            yield
        finally:
            self.remove_callback(token)


class _BackgroundContext(Context):
    """The root context, never cancelled."""

    def cancel(self, reason: str = "context cancelled"):  # noqa: D102
        raise TypeError("The background context cannot be cancelled")

    def on_cancel(self, callback: Callable[[], None]) -> Optional[int]:  # noqa: D102
        return None

    def __exit__(self, exc_type, exc_val, exc_tb):
        return


_BACKGROUND = _BackgroundContext()


def background() -> Context:
    """Return the shared context that is never cancelled."""
    return _BACKGROUND


def with_cancel(parent: Context = None) -> Context:
    """Derive a cancellable context from the given parent (or the background context).

    :param parent: the context whose cancellation propagates to the new one
    :returns: a new cancellable context
    """
    return Context(parent or _BACKGROUND)


def with_timeout(seconds: float, parent: Context = None) -> Context:
    """Derive a context that cancels itself after the given number of seconds.

    :param seconds: the time after which the context is cancelled
    :param parent: the context whose cancellation propagates to the new one
    :returns: a new context with a deadline
    """
    ctx = Context(parent or _BACKGROUND)
    timer = threading.Timer(seconds, ctx.cancel, args=(f"deadline of {seconds}s exceeded",))
    timer.daemon = True
    ctx.on_cancel(timer.cancel)
    timer.start()
    return ctx
