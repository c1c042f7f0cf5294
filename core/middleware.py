"""Request admission: a debounce gate shared by every request of a client."""

import time
from collections.abc import Callable

from core.exceptions import AdmissionDenied, ConfigurationError
from core.request_types import AdmissionDecision, Allowed, Denied, RequestDescriptor

DEFAULT_DEBOUNCE_INTERVAL_MS = 400


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class DebounceRateLimit:
    """Admit at most one request per interval.

    ``denied`` reads and updates ``last_admitted_at`` without awaiting, so
    under asyncio two interleaved tasks can never both be admitted inside the
    same window. Wrap it in a lock before sharing it between threads.
    """

    def __init__(
        self,
        interval_ms: int = DEFAULT_DEBOUNCE_INTERVAL_MS,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        if interval_ms < 0:
            raise ConfigurationError(f"Debounce interval must be >= 0, got {interval_ms}")
        self.interval_ms = interval_ms
        self.last_admitted_at: float | None = None
        self._clock = clock

    def denied(self, request: RequestDescriptor) -> AdmissionDenied | None:
        now = self._clock()
        if self.last_admitted_at is not None and now - self.last_admitted_at < self.interval_ms:
            waited = now - self.last_admitted_at
            return AdmissionDenied(
                "rate_limited",
                f"{request.method} {request.url} denied: {waited:.0f}ms since last request "
                f"(minimum {self.interval_ms}ms)",
            )
        self.last_admitted_at = now
        return None

    def reset(self) -> None:
        self.last_admitted_at = None


class AdmissionMiddleware:
    """Decide whether a request may proceed to the transport."""

    def __init__(
        self,
        debounce_interval_ms: int = DEFAULT_DEBOUNCE_INTERVAL_MS,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        self.rate_limit = DebounceRateLimit(debounce_interval_ms, clock)

    @property
    def debounce_interval_ms(self) -> int:
        return self.rate_limit.interval_ms

    def denied(self, request: RequestDescriptor) -> AdmissionDenied | None:
        return self.rate_limit.denied(request)

    def evaluate(self, request: RequestDescriptor) -> AdmissionDecision:
        error = self.denied(request)
        if error is not None:
            return Denied(error)
        return Allowed()
