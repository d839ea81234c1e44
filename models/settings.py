"""
Typed adapter settings.

Built by utils.config.Config from the environment, or directly in code and
tests. Frozen so a constructed adapter cannot drift from its configuration.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class BreakerSettings(BaseModel):
    """Circuit breaker and retry configuration for one adapter instance."""

    model_config = ConfigDict(frozen=True)

    failure_threshold: int = Field(default=5, ge=1, description="Consecutive failures before opening")
    reset_timeout: float = Field(default=30.0, gt=0, description="Cool-down in seconds while open")
    max_retries: int = Field(default=2, ge=0, description="Retries for retryable-unavailable outcomes")
    backoff_base: float = Field(default=0.5, ge=0, description="First retry delay in seconds")


class GitLabSettings(BaseModel):
    """Configuration for the GitLab adapter."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="gitlab.com", min_length=1, description="host[:port] of the instance")
    protocol: Literal["http", "https"] = Field(default="https")
    username: str = Field(default="ci-buildbot", description="git user.name used by checkouts")
    email: str = Field(default="dev-null@example.com", description="git user.email used by checkouts")
    status_context: str = Field(default="CI", description="Commit status context prefix")
    webhook_secret: str | None = Field(default=None, description="Expected X-Gitlab-Token value")
    request_timeout: float = Field(default=10.0, gt=0, description="Transport timeout in seconds")
    breaker: BreakerSettings = Field(default_factory=BreakerSettings)

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}"

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api/v4"
