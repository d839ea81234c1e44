"""
Typed error kinds for the SCM adapter.

Every failure the adapter surfaces to the orchestrator is a subclass of
ScmError, so callers can catch the whole family or a single kind.
"""


class ScmError(Exception):
    """Base class for all SCM adapter errors."""

    pass


class MalformedAddress(ScmError, ValueError):
    """Raised when an internal repository address fails the 3-part grammar."""

    pass


class UnsupportedUrl(ScmError, ValueError):
    """Raised when a checkout URL does not match the supported URL grammar."""

    pass


class HostMismatch(ScmError):
    """Raised when a checkout URL points at a host other than the configured one."""

    def __init__(self, hostname: str, expected: str):
        self.hostname = hostname
        self.expected = expected
        super().__init__(
            f"This checkoutUrl is not supported for your current login host "
            f"(got '{hostname}', expected '{expected}')."
        )


class RemoteRejected(ScmError):
    """Raised when the provider answers with a non-2xx status code."""

    def __init__(self, status_code: int, reason: str, caller: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.caller = caller
        super().__init__(f'{status_code} Reason "{reason}" Caller "{caller}"')


class CircuitOpen(ScmError):
    """Raised when the breaker short-circuits a call without touching the network."""

    def __init__(self, scm_context: str, retry_in: float = 0.0):
        self.scm_context = scm_context
        self.retry_in = retry_in
        super().__init__(
            f"Circuit breaker open for {scm_context}, retry in {retry_in:.1f}s"
        )


class TransportTimeout(ScmError):
    """Raised when the transport gives up waiting for the provider."""

    pass


class TransportError(ScmError):
    """Raised when the transport fails before a response is received."""

    pass


__all__ = [
    "CircuitOpen",
    "HostMismatch",
    "MalformedAddress",
    "RemoteRejected",
    "ScmError",
    "TransportError",
    "TransportTimeout",
    "UnsupportedUrl",
]
