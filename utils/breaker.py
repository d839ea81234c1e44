"""
Resilient provider calls: circuit breaker plus response classification.

Every outbound request goes through a ResilientClient, which owns exactly
one CircuitBreaker. Outcomes fall into three classes:

1. SUCCESS: HTTP 2xx
2. UNAVAILABLE: transport errors, timeouts, HTTP 5xx and 429. These count
   against the breaker. GET, PUT and DELETE are retried with exponential
   backoff; POST is sent once.
3. REJECTED: any other non-2xx. The provider answered, so the breaker treats
   it as healthy, but the caller gets RemoteRejected.

Breaker states:
- CLOSED: calls pass through; consecutive failures are counted
- OPEN: calls fail fast with CircuitOpen for reset_timeout seconds
- HALF_OPEN: one probe call is admitted; its success closes, its failure
  re-opens. Outcomes of calls admitted earlier only update the counters.
"""

import asyncio
import json
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from models.platform import BreakerState, BreakerStats, ScmRequest, TransportResponse
from models.settings import BreakerSettings
from utils.errors import CircuitOpen, RemoteRejected, TransportError, TransportTimeout
from utils.logger import scm_logger
from utils.metrics import (
    breaker_rejections_total,
    breaker_state,
    breaker_transitions_total,
    scm_request_duration_seconds,
    scm_request_retry_total,
    scm_requests_total,
)

STATE_GAUGE_VALUES = {
    BreakerState.CLOSED: 0,
    BreakerState.HALF_OPEN: 1,
    BreakerState.OPEN: 2,
}

IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "DELETE"})


class Transport(Protocol):
    """Anything that can issue one HTTP request (see utils.transport.HttpxTransport)."""

    async def request(
        self,
        method: str,
        url: str,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> TransportResponse: ...


def is_unavailable(status_code: int) -> bool:
    """Status codes that mean the provider could not serve the request."""
    return status_code >= 500 or status_code == 429


def extract_reason(body: Any) -> str:
    """
    Pull a human-readable reason out of an error response body.

    Prefers the structured ``message`` (or ``error``) field and falls back to
    serializing the raw body.
    """
    if isinstance(body, dict):
        message = body.get("message", body.get("error"))
        if isinstance(message, str):
            return message
        if message is not None:
            return json.dumps(message, default=str)
    if isinstance(body, str):
        return body

    return json.dumps(body, default=str)


class CircuitBreaker:
    """
    Tracks failures for one provider host and decides whether calls may pass.

    All transitions run inside a single lock so concurrent callers (coroutines
    or threads) never observe a half-applied transition.
    """

    def __init__(
        self,
        scm_context: str,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scm_context = scm_context
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.Lock()

        self._state = BreakerState.CLOSED
        self._opened_at: float | None = None
        self._probe_in_flight = False

        self._success_count = 0
        self._failure_count = 0
        self._consecutive_failures = 0
        self._rejected_count = 0
        self._total_requests = 0

        breaker_state.labels(scm_context=scm_context).set(STATE_GAUGE_VALUES[self._state])

    @property
    def state(self) -> BreakerState:
        return self._state

    def _transition(self, to_state: BreakerState) -> None:
        # Caller holds the lock
        if to_state == self._state:
            return

        scm_logger(self.scm_context).info(
            f"Circuit breaker {self.scm_context}: {self._state.value} -> {to_state.value}"
        )
        self._state = to_state
        breaker_state.labels(scm_context=self.scm_context).set(STATE_GAUGE_VALUES[to_state])
        breaker_transitions_total.labels(scm_context=self.scm_context, to_state=to_state.value).inc()

        if to_state == BreakerState.OPEN:
            self._opened_at = self._clock()

    def _retry_in(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self.reset_timeout - (self._clock() - self._opened_at))

    def _reject(self) -> CircuitOpen:
        self._rejected_count += 1
        breaker_rejections_total.labels(scm_context=self.scm_context).inc()
        return CircuitOpen(self.scm_context, retry_in=self._retry_in())

    def before_call(self) -> bool:
        """
        Admit a call or refuse it.

        Returns:
            True if the admitted call is the half-open probe. Pass it back to
            record_success/record_failure/abandon; only the probe's outcome
            moves the breaker out of half-open.

        Raises:
            CircuitOpen: If the breaker is open, or half-open with a probe already in flight
        """
        with self._lock:
            if self._state == BreakerState.OPEN:
                if self._retry_in() > 0:
                    raise self._reject()
                self._transition(BreakerState.HALF_OPEN)

            is_probe = False
            if self._state == BreakerState.HALF_OPEN:
                if self._probe_in_flight:
                    raise self._reject()
                self._probe_in_flight = True
                is_probe = True

            self._total_requests += 1
            return is_probe

    def record_success(self, is_probe: bool = False) -> None:
        """Record a call the provider served."""
        with self._lock:
            if is_probe and self._state == BreakerState.HALF_OPEN:
                self._probe_in_flight = False
                self._transition(BreakerState.CLOSED)
                self._success_count = 0
                self._failure_count = 0
                self._consecutive_failures = 0
                return

            self._success_count += 1
            # Calls admitted before the breaker opened do not end the streak
            if self._state == BreakerState.CLOSED:
                self._consecutive_failures = 0

    def record_failure(self, is_probe: bool = False) -> None:
        """Record a call the provider could not serve."""
        with self._lock:
            self._failure_count += 1
            self._consecutive_failures += 1

            if is_probe and self._state == BreakerState.HALF_OPEN:
                self._probe_in_flight = False
                self._transition(BreakerState.OPEN)
            elif (
                self._state == BreakerState.CLOSED
                and self._consecutive_failures >= self.failure_threshold
            ):
                self._transition(BreakerState.OPEN)

    def abandon(self, is_probe: bool = False) -> None:
        """Release an admitted call that never produced an outcome (e.g. cancelled)."""
        if not is_probe:
            return
        with self._lock:
            self._probe_in_flight = False

    def stats(self) -> BreakerStats:
        """Snapshot of the breaker. Does not change state."""
        with self._lock:
            state = self._state
            if state == BreakerState.OPEN and self._retry_in() <= 0:
                state = BreakerState.HALF_OPEN

            return BreakerStats(
                state=state,
                success_count=self._success_count,
                failure_count=self._failure_count,
                consecutive_failures=self._consecutive_failures,
                rejected_count=self._rejected_count,
                total_requests=self._total_requests,
            )


class ResilientClient:
    """
    Wraps a transport with a circuit breaker, retries and typed outcomes.

    One instance per adapter; the breaker state it owns is never shared
    between provider hosts.
    """

    def __init__(
        self,
        transport: Transport,
        scm_context: str,
        settings: BreakerSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize resilient client.

        Args:
            transport: Transport used for every request
            scm_context: Identity tag used in logs, metrics and CircuitOpen errors
            settings: Breaker and retry settings
            clock: Monotonic clock, injectable for tests
            sleep: Backoff sleep, injectable for tests
        """
        self.transport = transport
        self.scm_context = scm_context
        self.settings = settings or BreakerSettings()
        self.breaker = CircuitBreaker(
            scm_context,
            failure_threshold=self.settings.failure_threshold,
            reset_timeout=self.settings.reset_timeout,
            clock=clock,
        )
        self._sleep = sleep

    async def _attempt(self, request: ScmRequest, caller: str) -> TransportResponse:
        is_probe = self.breaker.before_call()

        log = scm_logger(self.scm_context, caller)
        started = time.perf_counter()
        try:
            response = await self.transport.request(
                request.method,
                request.url,
                token=request.token,
                params=request.params,
                json_body=request.json_body,
            )
        except (TransportTimeout, TransportError):
            self.breaker.record_failure(is_probe)
            scm_requests_total.labels(
                scm_context=self.scm_context, caller=caller, outcome="unavailable"
            ).inc()
            raise
        except BaseException:
            self.breaker.abandon(is_probe)
            raise
        finally:
            elapsed = time.perf_counter() - started
            scm_request_duration_seconds.labels(scm_context=self.scm_context, caller=caller).observe(
                elapsed
            )

        if is_unavailable(response.status_code):
            self.breaker.record_failure(is_probe)
            outcome = "unavailable"
        else:
            self.breaker.record_success(is_probe)
            outcome = "success" if response.ok else "rejected"

        scm_requests_total.labels(scm_context=self.scm_context, caller=caller, outcome=outcome).inc()
        log.bind(status=response.status_code, latency_ms=int(elapsed * 1000)).debug(
            f"{request.method} {request.url} -> {response.status_code} ({caller})"
        )
        return response

    async def _backoff(self, attempt: int, max_retries: int, caller: str, reason: str) -> None:
        wait_time = self.settings.backoff_base * 2**attempt
        scm_request_retry_total.labels(scm_context=self.scm_context, caller=caller).inc()
        scm_logger(self.scm_context, caller).warning(
            f"{caller}: provider unavailable ({reason}), retrying in {wait_time:.2f}s... "
            f"(attempt {attempt + 1}/{max_retries})"
        )
        await self._sleep(wait_time)

    async def call(
        self, request: ScmRequest, caller: str, best_effort: bool = False
    ) -> TransportResponse:
        """
        Issue a request through the breaker and classify the response.

        Args:
            request: Outbound request
            caller: Name of the calling operation, used in errors and logs
            best_effort: Return non-2xx responses instead of raising

        Returns:
            TransportResponse (always 2xx unless best_effort)

        Raises:
            CircuitOpen: If the breaker refused the call
            TransportTimeout: If the transport timed out on the last attempt
            TransportError: If the transport failed on the last attempt
            RemoteRejected: If the provider answered non-2xx and best_effort is False
        """
        # A POST may have landed before the failure; repeating it could duplicate the resource
        max_retries = self.settings.max_retries if request.method in IDEMPOTENT_METHODS else 0

        attempt = 0
        while True:
            try:
                response = await self._attempt(request, caller)
            except (TransportTimeout, TransportError) as e:
                if attempt >= max_retries:
                    raise
                await self._backoff(attempt, max_retries, caller, str(e))
                attempt += 1
                continue

            if is_unavailable(response.status_code) and attempt < max_retries:
                await self._backoff(attempt, max_retries, caller, f"HTTP {response.status_code}")
                attempt += 1
                continue

            break

        if response.ok:
            return response

        reason = extract_reason(response.body)
        log = scm_logger(self.scm_context, caller).bind(status=response.status_code)
        if best_effort:
            log.warning(f"{caller}: ignoring provider response {response.status_code} \"{reason}\"")
            return response

        log.error(f"{caller}: provider rejected request {response.status_code} \"{reason}\"")
        raise RemoteRejected(response.status_code, reason, caller)

    def stats(self) -> BreakerStats:
        """Breaker statistics; read only."""
        return self.breaker.stats()


__all__ = [
    "CircuitBreaker",
    "ResilientClient",
    "Transport",
    "extract_reason",
    "is_unavailable",
]
