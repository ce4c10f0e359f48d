"""Shared fixtures: in-memory repository, fake clock and a mock DB session."""

from unittest.mock import AsyncMock

import pytest

from test_sessions import FakeClock, MockRepository


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_repo():
    """Fresh MockRepository for each test."""
    return MockRepository()


@pytest.fixture
def mock_db():
    """AsyncMock standing in for AsyncSession — flush/commit are no-ops."""
    return AsyncMock()
