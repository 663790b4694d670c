"""Shared pytest fixtures for ImmoVA booking tests."""
import sys
sys.dont_write_bytecode = True

from contextlib import contextmanager  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Drop the process-wide price resolver and tasks client between tests.

    Both are module-level globals; a cache filled by one test would
    otherwise answer the next one.
    """
    from immova.domain.pricing import reset_price_resolver
    from immova.tasks.client import reset_tasks_client

    reset_price_resolver()
    reset_tasks_client()
    yield
    reset_price_resolver()
    reset_tasks_client()


@pytest.fixture
def mock_cur():
    return MagicMock()


@pytest.fixture
def mock_txn(mock_cur):
    """A txn() replacement yielding mock_cur."""

    @contextmanager
    def _txn(conn=None):
        yield mock_cur

    return _txn
