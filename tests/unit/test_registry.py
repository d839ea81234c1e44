"""
Unit Tests for the Adapter Registry

Tests registration, routing by identity tag and webhook dispatch.
"""

import pytest

from adapters.gitlab import GitLabAdapter
from adapters.registry import ScmRegistry
from models.platform import BreakerState
from models.settings import GitLabSettings
from tests.fixtures.fakes import FakeTransport, no_sleep


def make_adapter(host, transport=None):
    return GitLabAdapter(
        GitLabSettings(host=host), transport=transport or FakeTransport(), sleep=no_sleep
    )


class TestScmRegistry:
    def test_register_and_get(self):
        """GIVEN two adapters for different hosts WHEN registered THEN each is found by its tag."""
        first = make_adapter("gitlab.com")
        second = make_adapter("gitlab.internal")

        registry = ScmRegistry([first, second])

        assert len(registry) == 2
        assert registry.get("gitlab:gitlab.com") is first
        assert registry.get("gitlab:gitlab.internal") is second
        assert registry.tags() == ["gitlab:gitlab.com", "gitlab:gitlab.internal"]
        assert "gitlab:gitlab.com" in registry

    def test_duplicate_tag_rejected(self):
        registry = ScmRegistry([make_adapter("gitlab.com")])

        with pytest.raises(ValueError):
            registry.register(make_adapter("gitlab.com"))

    def test_unknown_tag(self):
        with pytest.raises(KeyError):
            ScmRegistry().get("gitlab:nowhere")

    def test_stats_are_isolated_per_host(self):
        """GIVEN two adapters WHEN reading stats THEN each host has its own breaker snapshot."""
        registry = ScmRegistry([make_adapter("a.example"), make_adapter("b.example")])

        stats = registry.stats()

        assert set(stats) == {"gitlab:a.example", "gitlab:b.example"}
        assert all(s.state == BreakerState.CLOSED for s in stats.values())

    @pytest.mark.asyncio
    async def test_for_webhook(self, gitlab_headers, push_payload):
        adapter = make_adapter("gitlab.com")
        registry = ScmRegistry([adapter])

        assert await registry.for_webhook(gitlab_headers, push_payload) is adapter
        assert await registry.for_webhook({}, push_payload) is None

    @pytest.mark.asyncio
    async def test_aclose_closes_every_adapter(self):
        transports = [FakeTransport(), FakeTransport()]
        registry = ScmRegistry(
            [
                GitLabAdapter(GitLabSettings(host="a.example"), transport=transports[0]),
                GitLabAdapter(GitLabSettings(host="b.example"), transport=transports[1]),
            ]
        )

        await registry.aclose()

        # Injected transports belong to the caller
        assert not any(t.closed for t in transports)
