"""Pytest configuration and shared fixtures for all tests.

This module provides:
- Test configuration and markers
- Shared fixtures for core components (clock, request registry, tool dispatcher)
- Mediator and service provider mocks
- Test settings
"""

import os
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from _pytest.config import Config

from application.orchestrator import ToolDispatcher
from application.services import RequestRegistry
from application.settings import Settings
from tests.fixtures.fakes import FakeClock, RecordingExecutor

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config: Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (may use external services)")
    config.addinivalue_line("markers", "adapter: LLM stream adapter tests")
    config.addinivalue_line("markers", "controller: API controller tests")


# ============================================================================
# CORE COMPONENT FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def registry() -> RequestRegistry:
    """Provide an empty request registry."""
    return RequestRegistry()


@pytest.fixture
def web_search() -> RecordingExecutor:
    return RecordingExecutor("web_search", result_text="web results")


@pytest.fixture
def email_search() -> RecordingExecutor:
    return RecordingExecutor("search_emails", result_text="email results")


@pytest.fixture
def browse() -> RecordingExecutor:
    return RecordingExecutor("browse_url", argument_name="url", result_text="page")


@pytest.fixture
def dispatcher(web_search: RecordingExecutor, email_search: RecordingExecutor, browse: RecordingExecutor) -> ToolDispatcher:
    """Provide a dispatcher with every server-side tool backed by a recording executor."""
    return ToolDispatcher([web_search, email_search, browse])


# ============================================================================
# MEDIATION FIXTURES
# ============================================================================


@pytest.fixture
def mock_mediator() -> MagicMock:
    """Provide a mock mediator whose execute_async is awaitable."""
    mock = MagicMock()
    mock.execute_async = AsyncMock()
    return mock


@pytest.fixture
def mock_mapper() -> MagicMock:
    return MagicMock()


# ============================================================================
# TEST SETTINGS FIXTURES
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide application settings with defaults."""
    return Settings()


# ============================================================================
# CLEANUP FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables after each test."""
    original_env: dict[str, str] = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
