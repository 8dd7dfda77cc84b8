"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the entire test suite.
"""

import os
import tempfile
import time
from pathlib import Path

import pytest

from tests.fixtures.fake_http import FakeSession

from upbudget.budgets.repository import BudgetRepository
from upbudget.budgets.store import BudgetStore
from upbudget.core.credentials import InMemoryCredentialStore
from upbudget.up.client import UpBankClient
from upbudget.up.http import UpHttpTransport

TEST_BASE_URL = "https://api.up.test/api/v1"
TEST_TOKEN = "up:yeah:test-token-123"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture
def sydney_tz():
    """Run with the local timezone set to Australia/Sydney (UTC+11 in January)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "Australia/Sydney"
    time.tzset()
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = previous
        time.tzset()


@pytest.fixture
def fake_session() -> FakeSession:
    """Scripted stand-in for requests.Session."""
    return FakeSession()


@pytest.fixture
def credentials() -> InMemoryCredentialStore:
    """Credential store holding a test token."""
    return InMemoryCredentialStore(TEST_TOKEN)


@pytest.fixture
def transport(fake_session) -> UpHttpTransport:
    """HTTP transport wired to the fake session."""
    return UpHttpTransport(base_url=TEST_BASE_URL, timeout=5, session=fake_session)


@pytest.fixture
def client(credentials, transport) -> UpBankClient:
    """Up API client over the fake session."""
    return UpBankClient(credentials, transport)


@pytest.fixture
def budget_store(temp_dir):
    """Budget store in a temporary database file."""
    store = BudgetStore(temp_dir / "budgets.db")
    yield store
    store.close()


@pytest.fixture
def repository(budget_store) -> BudgetRepository:
    """Empty budget repository over the temporary store."""
    return BudgetRepository(budget_store)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, temp_dir):
    """Set up test environment variables."""
    # Ensure tests don't use production data
    monkeypatch.setenv("UPBUDGET_ENV", "test")
    monkeypatch.setenv("UPBUDGET_DATA_DIR", str(temp_dir / "data"))

    # Never pick up a developer's real settings
    for name in ("UP_API_BASE_URL", "UP_TIMEOUT", "UP_PAGE_SIZE", "UP_SYNC_PAGE_SIZE", "UP_TOKEN_FILE",
                 "UPBUDGET_DB_PATH", "LOG_LEVEL", "DEBUG"):
        monkeypatch.delenv(name, raising=False)


# Test markers for categorizing tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for complete workflows"
    )
    config.addinivalue_line(
        "markers", "currency: Tests for currency handling and precision"
    )
    config.addinivalue_line(
        "markers", "up: Tests for the Up API client and models"
    )
    config.addinivalue_line(
        "markers", "sync: Tests for the sync engine"
    )
    config.addinivalue_line(
        "markers", "budgets: Tests for budget storage and aggregation"
    )
