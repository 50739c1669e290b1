"""Root-level pytest fixtures for all tests.

Provides shared fixtures including:
- Fake order API clients pre-loaded with orders
- A no-wait sleep for retry backoff
- Environment isolation for STATUSMIGRATOR_ variables
"""

import os

import pytest

from src.clients.models import FinancialStatus
from tests.helpers import FakeOrderClient, make_order


# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that call a live store"
    )
    config.addinivalue_line(
        "markers", "shopify: marks tests requiring Shopify credentials"
    )


# ============================================================================
# Skip Conditions
# ============================================================================

requires_shopify_credentials = pytest.mark.skipif(
    not (
        os.environ.get("STATUSMIGRATOR_SHOPIFY_ACCESS_TOKEN")
        and os.environ.get("STATUSMIGRATOR_SHOPIFY_STORE_URL")
    ),
    reason="Shopify credentials not set",
)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _clean_statusmigrator_env(monkeypatch):
    """Remove STATUSMIGRATOR_ env vars so host settings never leak into tests."""
    for key in list(os.environ):
        if key.startswith("STATUSMIGRATOR_"):
            monkeypatch.delenv(key, raising=False)


# ============================================================================
# Engine Fixtures
# ============================================================================


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> SleepRecorder:
    """Backoff sleep that returns immediately and records requested delays."""
    return SleepRecorder()


@pytest.fixture
def pending_orders():
    """Five pending orders, #1001..#1005."""
    return [make_order(n, FinancialStatus.PENDING) for n in range(1, 6)]


@pytest.fixture
def fake_client(pending_orders) -> FakeOrderClient:
    """Fake client holding the five pending orders."""
    return FakeOrderClient(pending_orders)
