import os
from dotenv import load_dotenv
from loguru import logger

from models.settings import BreakerSettings, GitLabSettings


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


class Config:
    """
    Centralized configuration loader using python-dotenv.

    Loads all environment variables from .env file and provides
    typed access throughout the application. Optional settings fall
    back to defaults; GITLAB_HOST is required.
    """

    # GitLab Configuration
    GITLAB_HOST: str
    GITLAB_PROTOCOL: str
    GITLAB_WEBHOOK_SECRET: str | None

    # Checkout identity
    GITLAB_BOT_USERNAME: str
    GITLAB_BOT_EMAIL: str

    # Commit statuses
    SCM_STATUS_CONTEXT: str

    # Resilience
    SCM_REQUEST_TIMEOUT: float
    SCM_MAX_RETRIES: int
    BREAKER_FAILURE_THRESHOLD: int
    BREAKER_RESET_TIMEOUT: float

    def __init__(self, config_file: str | None = None) -> None:
        """
        Load configuration from .env file.

        Args:
            config_file: Optional path to custom .env file

        Raises:
            ValueError: If GITLAB_HOST is missing or a numeric setting is invalid
        """
        load_dotenv(config_file)

        # GitLab Configuration (Required)
        self.GITLAB_HOST = os.getenv("GITLAB_HOST")
        self.GITLAB_PROTOCOL = os.getenv("GITLAB_PROTOCOL", "https").lower()
        self.GITLAB_WEBHOOK_SECRET = os.getenv("GITLAB_WEBHOOK_SECRET") or None

        self.GITLAB_BOT_USERNAME = os.getenv("GITLAB_BOT_USERNAME", "ci-buildbot")
        self.GITLAB_BOT_EMAIL = os.getenv("GITLAB_BOT_EMAIL", "dev-null@example.com")
        self.SCM_STATUS_CONTEXT = os.getenv("SCM_STATUS_CONTEXT", "CI")

        self.SCM_REQUEST_TIMEOUT = _float_env("SCM_REQUEST_TIMEOUT", 10.0)
        self.SCM_MAX_RETRIES = _int_env("SCM_MAX_RETRIES", 2)
        self.BREAKER_FAILURE_THRESHOLD = _int_env("BREAKER_FAILURE_THRESHOLD", 5)
        self.BREAKER_RESET_TIMEOUT = _float_env("BREAKER_RESET_TIMEOUT", 30.0)

        if not self.GITLAB_WEBHOOK_SECRET:
            logger.warning("GITLAB_WEBHOOK_SECRET not set, webhook token verification disabled")

        self._validate()

    def _validate(self) -> None:
        """Validate required configuration is present."""
        if not self.GITLAB_HOST:
            raise ValueError("GITLAB_HOST is required")

        if self.GITLAB_PROTOCOL not in ("http", "https"):
            raise ValueError(f"GITLAB_PROTOCOL must be 'http' or 'https', got {self.GITLAB_PROTOCOL!r}")

        if self.SCM_REQUEST_TIMEOUT <= 0:
            raise ValueError("SCM_REQUEST_TIMEOUT must be positive")

        if self.SCM_MAX_RETRIES < 0:
            raise ValueError("SCM_MAX_RETRIES must not be negative")

        if self.BREAKER_FAILURE_THRESHOLD < 1:
            raise ValueError("BREAKER_FAILURE_THRESHOLD must be at least 1")

        if self.BREAKER_RESET_TIMEOUT <= 0:
            raise ValueError("BREAKER_RESET_TIMEOUT must be positive")

    def gitlab_settings(self) -> GitLabSettings:
        """Typed adapter settings built from the loaded environment."""
        return GitLabSettings(
            host=self.GITLAB_HOST,
            protocol=self.GITLAB_PROTOCOL,
            username=self.GITLAB_BOT_USERNAME,
            email=self.GITLAB_BOT_EMAIL,
            status_context=self.SCM_STATUS_CONTEXT,
            webhook_secret=self.GITLAB_WEBHOOK_SECRET,
            request_timeout=self.SCM_REQUEST_TIMEOUT,
            breaker=BreakerSettings(
                failure_threshold=self.BREAKER_FAILURE_THRESHOLD,
                reset_timeout=self.BREAKER_RESET_TIMEOUT,
                max_retries=self.SCM_MAX_RETRIES,
            ),
        )
