"""Pytest fixtures for API tests.

Provides a TestClient whose app runs against a JobOrchestrator backed by
the in-memory fake order client.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.orchestrator.job import JobOrchestrator
from tests.helpers import FakeOrderClient


@pytest.fixture
def orchestrator(fake_client: FakeOrderClient, no_sleep) -> JobOrchestrator:
    return JobOrchestrator(fake_client, sleep=no_sleep)


@pytest.fixture
def client(orchestrator: JobOrchestrator) -> Generator[TestClient, None, None]:
    """TestClient with the orchestrator attached before startup.

    The lifespan keeps a pre-attached orchestrator instead of building one
    from config, and the ``with`` block keeps background tasks alive
    across requests.
    """
    app.state.orchestrator = orchestrator
    app.state.platform = "fake"
    with TestClient(app) as test_client:
        yield test_client
    app.state.orchestrator = None
    app.state.platform = None

