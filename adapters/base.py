"""
Base adapter interface for SCM provider abstraction.

Defines the contract the build orchestrator consumes, so one provider
implementation can be swapped for another. The orchestrator dispatches by
identity_tag through adapters.registry.ScmRegistry.
"""

from abc import ABC, abstractmethod
from typing import Any

from models.platform import (
    Author,
    BreakerStats,
    BuildStatus,
    CanonicalWebhookEvent,
    CheckoutCommand,
    CheckoutDescriptor,
    CommitDecoration,
    CredentialMode,
    Permissions,
    PullRequestRef,
    UrlDecoration,
)


class ScmAdapter(ABC):
    """
    Abstract base class for SCM adapters.

    All network operations are coroutines and take the caller's token;
    addresses are the internal ``hostname:repositoryId:branch`` form.
    """

    @property
    @abstractmethod
    def identity_tag(self) -> str:
        """Stable provider+host tag, e.g. ``gitlab:gitlab.com``."""
        pass

    @abstractmethod
    async def resolve_address(self, address: str, token: str) -> CheckoutDescriptor:
        """
        Recover hostname, owner, repo name and branch for an internal address.

        Raises:
            MalformedAddress: If the address fails the 3-part grammar
            RemoteRejected: If the provider lookup fails
        """
        pass

    @abstractmethod
    async def register_webhook(self, address: str, notify_url: str, token: str) -> None:
        """Create the notification webhook, or update it in place if it already exists."""
        pass

    @abstractmethod
    async def translate_checkout_url(self, checkout_url: str, token: str) -> str:
        """
        Translate a checkout URL into an internal address.

        Raises:
            UnsupportedUrl: If the URL fails the checkout URL grammar
            HostMismatch: If the URL host is not the configured host
        """
        pass

    @abstractmethod
    def build_checkout_command(
        self,
        host: str,
        org: str,
        repo: str,
        branch: str,
        sha: str,
        credential_mode: CredentialMode,
        pr_ref: str | None = None,
    ) -> CheckoutCommand:
        """Shell command that checks out the sources for a build."""
        pass

    @abstractmethod
    async def latest_commit_sha(self, address: str, token: str) -> str:
        """Head commit SHA of the address's branch."""
        pass

    @abstractmethod
    async def file_contents(
        self, address: str, path: str, token: str, ref: str | None = None
    ) -> str:
        """Decoded contents of a file; ref defaults to the address's branch."""
        pass

    @abstractmethod
    async def open_pull_requests(self, address: str, token: str) -> list[PullRequestRef]:
        """Open pull (merge) requests of the repository."""
        pass

    @abstractmethod
    async def decorate_url(self, address: str, token: str) -> UrlDecoration:
        """Display name and web URL of a repository branch."""
        pass

    @abstractmethod
    async def decorate_commit(self, address: str, sha: str, token: str) -> CommitDecoration:
        """Commit message, web URL and author of a commit."""
        pass

    @abstractmethod
    async def decorate_author(self, username: str, token: str) -> Author:
        """Author display data for a provider username."""
        pass

    @abstractmethod
    async def permissions_for(self, address: str, token: str) -> Permissions:
        """Capabilities the token's user has on the repository."""
        pass

    @abstractmethod
    async def report_build_status(
        self,
        address: str,
        sha: str,
        build_status: BuildStatus | str,
        target_url: str,
        token: str,
        job_name: str | None = None,
    ) -> None:
        """
        Set the commit status for a build.

        Best effort: provider and breaker failures are logged, never raised.
        """
        pass

    @abstractmethod
    async def can_handle_webhook(self, headers: dict[str, str], payload: Any) -> bool:
        """True if this adapter recognises and accepts the delivery. Never raises."""
        pass

    @abstractmethod
    async def normalize_webhook(
        self, headers: dict[str, str], payload: Any
    ) -> CanonicalWebhookEvent | None:
        """
        Normalize a webhook delivery.

        Returns:
            CanonicalWebhookEvent, or None when the delivery is not actionable
        """
        pass

    @abstractmethod
    async def changed_files(self, *args: Any, **kwargs: Any) -> list[str] | None:
        """Files changed by an event; None means the provider cannot tell."""
        pass

    @abstractmethod
    def breaker_stats(self) -> dict[str, BreakerStats]:
        """Breaker statistics keyed by identity_tag."""
        pass

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        return None
