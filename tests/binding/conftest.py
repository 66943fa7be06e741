"""Helpful fixtures for testing bindsql.binding functionality."""

import pytest

from tests.binding.mocks import MockDatabase


@pytest.fixture()
def database(request):
    """Fixture that yields a MockDatabase initialized with a set of mock cursors.

    .. note::
        Can use the `indirect` parametrize functionality in fixture to specify the mocked cursors.
    """
    cursor_stack = []
    if hasattr(request, "param"):
        cursor_stack = request.param
    database = MockDatabase(cursor_stack)
    yield database
    database.dispose()
