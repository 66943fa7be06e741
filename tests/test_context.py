"""Tests the cancellation contexts in bindsql.context."""

import threading

from bindsql.context import CancelledError, Context, background, with_cancel, with_timeout

import pytest


def test_cancel_runs_callbacks_once():
    """Tests callbacks run on the first cancel only, and removed callbacks never run."""
    ctx = with_cancel()
    calls = []
    ctx.on_cancel(lambda: calls.append("first"))
    token = ctx.on_cancel(lambda: calls.append("removed"))
    ctx.remove_callback(token)

    assert not ctx.cancelled
    assert ctx.reason is None
    ctx.cancel("stop")
    ctx.cancel("stop again")
    assert calls == ["first"]
    assert ctx.cancelled
    assert ctx.reason == "stop"


def test_on_cancel_after_cancel_runs_immediately():
    """Tests registering on a cancelled context runs the callback right away."""
    ctx = with_cancel()
    ctx.cancel()
    calls = []
    assert ctx.on_cancel(lambda: calls.append(1)) is None
    assert calls == [1]
    ctx.remove_callback(None)


def test_raise_if_cancelled():
    """Tests a cancelled context raises with its reason."""
    ctx = with_cancel()
    ctx.raise_if_cancelled()
    ctx.cancel("client went away")
    with pytest.raises(CancelledError, match="client went away"):
        ctx.raise_if_cancelled()


def test_parent_cancellation_propagates():
    """Tests cancelling a parent cancels its children, but not the other way around."""
    parent = with_cancel()
    child = with_cancel(parent)
    grandchild = Context(child)
    sibling = with_cancel(parent)

    sibling.cancel("sibling only")
    assert not parent.cancelled
    assert not child.cancelled

    parent.cancel("shutdown")
    assert child.cancelled and grandchild.cancelled
    assert grandchild.reason == "shutdown"
    assert sibling.reason == "sibling only"


def test_child_of_cancelled_parent_starts_cancelled():
    """Tests deriving from a cancelled context yields a cancelled context."""
    parent = with_cancel()
    parent.cancel("done")
    child = with_cancel(parent)
    assert child.cancelled
    assert child.reason == "done"


def test_context_manager_cancels_on_exit():
    """Tests leaving a with block cancels the context."""
    with with_cancel() as ctx:
        assert not ctx.cancelled
    assert ctx.cancelled


def test_interrupt_on_cancel_scope():
    """Tests the interrupt only fires while the scope is active."""
    ctx = with_cancel()
    interrupts = []
    with ctx.interrupt_on_cancel(lambda: interrupts.append("in flight")):
        pass
    ctx.cancel()
    assert interrupts == []

    ctx = with_cancel()
    with ctx.interrupt_on_cancel(lambda: interrupts.append("in flight")):
        ctx.cancel()
    assert interrupts == ["in flight"]


def test_background_is_never_cancelled():
    """Tests the background context cannot be cancelled and ignores callbacks."""
    ctx = background()
    assert ctx is background()
    assert ctx.on_cancel(lambda: None) is None
    with pytest.raises(TypeError, match="cannot be cancelled"):
        ctx.cancel()
    with ctx:
        pass
    assert not ctx.cancelled
    ctx.raise_if_cancelled()


def test_with_timeout():
    """Tests a context with a deadline cancels itself."""
    fired = threading.Event()
    ctx = with_timeout(0.05)
    ctx.on_cancel(fired.set)
    assert fired.wait(5)
    assert ctx.cancelled
    assert "deadline of 0.05s exceeded" == ctx.reason


def test_with_timeout_cancelled_early():
    """Tests cancelling a context with a deadline before it expires keeps the original reason."""
    with with_timeout(60) as ctx:
        pass
    assert ctx.cancelled
    assert ctx.reason == "context cancelled"
