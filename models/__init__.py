"""
Models package for the SCM adapter.

Exports all Pydantic models shared between the codec, the resilient client
and the adapters.
"""

# Platform models (addresses, webhook events, decorations, breaker stats)
from .platform import (
    DEFAULT_AUTHOR,
    DEFAULT_BRANCH,
    Author,
    BreakerState,
    BreakerStats,
    BuildStatus,
    CanonicalWebhookEvent,
    CheckoutCommand,
    CheckoutDescriptor,
    CommitDecoration,
    CommitState,
    CommitStatus,
    CredentialMode,
    Permissions,
    PullRequestRef,
    RepositoryAddress,
    ScmRequest,
    TransportResponse,
    UrlDecoration,
)

# Settings models (adapter and breaker configuration)
from .settings import BreakerSettings, GitLabSettings

__all__ = [
    # Platform
    "DEFAULT_AUTHOR",
    "DEFAULT_BRANCH",
    "Author",
    "BreakerState",
    "BreakerStats",
    "BuildStatus",
    "CanonicalWebhookEvent",
    "CheckoutCommand",
    "CheckoutDescriptor",
    "CommitDecoration",
    "CommitState",
    "CommitStatus",
    "CredentialMode",
    "Permissions",
    "PullRequestRef",
    "RepositoryAddress",
    "ScmRequest",
    "TransportResponse",
    "UrlDecoration",
    # Settings
    "BreakerSettings",
    "GitLabSettings",
]
