"""
Pytest configuration and shared fixtures for the herd test suite.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from herd import TestClient  # noqa: E402
from tests.handlers import Chained, Failing, Widgets  # noqa: E402


@pytest.fixture
def widgets_client() -> TestClient:
    """Client for the plain CRUD handler."""
    return TestClient(Widgets())


@pytest.fixture
def chained_client() -> TestClient:
    """Client for the multi-step handler."""
    return TestClient(Chained())


@pytest.fixture
def failing_client() -> TestClient:
    """Client for the handler without error handlers."""
    return TestClient(Failing())


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ``HERD_*`` variables from leaking into tests."""
    for name in (
        "HERD_ENV",
        "HERD_DEBUG",
        "HERD_LOG_LEVEL",
        "HERD_MERGE_RESPONSE_HEADERS",
        "HERD_HOST",
        "HERD_PORT",
        "HERD_APP",
        "HOST",
        "PORT",
    ):
        monkeypatch.delenv(name, raising=False)
