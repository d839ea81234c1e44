"""
SCM Adapter - Pytest Configuration and Fixtures

Shared fixtures and test configuration for all test modules.
"""

import os

# Add project root to path for imports
import sys
from typing import Any

import pytest
from httpx import AsyncClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.settings import BreakerSettings, GitLabSettings  # noqa: E402
from tests.fixtures.fakes import GITLAB_HOST, FakeClock, FakeTransport, no_sleep  # noqa: E402
from tests.fixtures.webhook_payloads import (  # noqa: E402
    gitlab_merge_request_payload,
    gitlab_push_payload,
)


# =============================================================================
# Settings and Adapter Fixtures
# =============================================================================


@pytest.fixture
def breaker_settings() -> BreakerSettings:
    """Breaker settings without retries so failures are counted one by one."""
    return BreakerSettings(failure_threshold=3, reset_timeout=30.0, max_retries=0, backoff_base=0.0)


@pytest.fixture
def gitlab_settings(breaker_settings) -> GitLabSettings:
    """GitLab settings pointing at a fake host."""
    return GitLabSettings(
        host=GITLAB_HOST,
        protocol="https",
        username="ci-buildbot",
        email="ci@example.com",
        status_context="CI",
        breaker=breaker_settings,
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gitlab_adapter(gitlab_settings, fake_transport, fake_clock):
    """GitLabAdapter wired to the fake transport and clock."""
    from adapters.gitlab import GitLabAdapter

    return GitLabAdapter(gitlab_settings, transport=fake_transport, clock=fake_clock, sleep=no_sleep)


# =============================================================================
# Sample Webhook Payload Fixtures
# =============================================================================


@pytest.fixture
def push_payload() -> dict[str, Any]:
    """Sample GitLab push webhook payload."""
    return gitlab_push_payload()


@pytest.fixture
def merge_request_payload() -> dict[str, Any]:
    """Sample GitLab merge request webhook payload (state: opened)."""
    return gitlab_merge_request_payload()


@pytest.fixture
def gitlab_headers() -> dict[str, str]:
    """Headers GitLab sends with a push delivery."""
    return {"X-Gitlab-Event": "Push Hook", "Content-Type": "application/json"}


# =============================================================================
# Environment Override Fixture
# =============================================================================


@pytest.fixture
def override_test_env(monkeypatch, tmp_path):
    """
    Override environment variables for testing.

    Ensures tests run with consistent test configuration.
    """
    monkeypatch.setenv("GITLAB_HOST", GITLAB_HOST)
    monkeypatch.setenv("GITLAB_PROTOCOL", "https")
    monkeypatch.setenv("GITLAB_WEBHOOK_SECRET", "webhook_secret")
    monkeypatch.setenv("SCM_MAX_RETRIES", "0")
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "app.log"))


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
async def async_test_client(override_test_env) -> AsyncClient:
    """
    Async test client for FastAPI application.

    Runs the application lifespan so the registry is built from the test
    environment.
    """
    from httpx import ASGITransport

    from main import app

    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def client(override_test_env):
    """
    FastAPI test client for endpoint testing.

    Provides a sync test client for testing API endpoints.
    """
    from fastapi.testclient import TestClient

    from main import app

    with TestClient(app) as test_client:
        yield test_client


def pytest_configure(config):
    """
    Pytest configuration hook.

    Registers custom markers and test configuration.
    """
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "contract: mark test as contract/endpoint test")
