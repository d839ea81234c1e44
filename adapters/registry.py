"""
Adapter registry.

The orchestrator keeps one adapter per provider host and routes by
identity_tag (tokens, webhooks, stats) instead of by inheritance.
"""

from typing import Any

from loguru import logger

from adapters.base import ScmAdapter
from models.platform import BreakerStats


class ScmRegistry:
    """Maps identity tags to adapters."""

    def __init__(self, adapters: list[ScmAdapter] | None = None):
        self._adapters: dict[str, ScmAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ScmAdapter) -> None:
        """
        Add an adapter.

        Raises:
            ValueError: If an adapter with the same identity tag is registered
        """
        tag = adapter.identity_tag
        if tag in self._adapters:
            raise ValueError(f"Adapter already registered for {tag}")

        self._adapters[tag] = adapter
        logger.info(f"Registered SCM adapter {tag}")

    def get(self, tag: str) -> ScmAdapter:
        """
        Adapter for an identity tag.

        Raises:
            KeyError: If no adapter is registered for the tag
        """
        try:
            return self._adapters[tag]
        except KeyError:
            raise KeyError(f"No SCM adapter registered for {tag}")

    def tags(self) -> list[str]:
        return list(self._adapters)

    def __contains__(self, tag: str) -> bool:
        return tag in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    async def for_webhook(self, headers: dict[str, str], payload: Any) -> ScmAdapter | None:
        """First adapter that can handle the delivery, or None."""
        for adapter in self._adapters.values():
            if await adapter.can_handle_webhook(headers, payload):
                return adapter
        return None

    def stats(self) -> dict[str, BreakerStats]:
        """Breaker statistics of every adapter, keyed by identity tag."""
        merged: dict[str, BreakerStats] = {}
        for adapter in self._adapters.values():
            merged.update(adapter.breaker_stats())
        return merged

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()
