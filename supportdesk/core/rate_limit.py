"""Fixed-window request throttling for the message endpoints.

The counter is injected through :func:`get_rate_counter` so tests and
deployments can swap it out (``RATE_LIMIT_STORAGE_URI=redis://...`` shares the
window across workers). Requests are keyed by client IP and path.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Protocol

from fastapi import Depends, Request, Response
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

from ..config import get_settings
from ..errors import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def headers(self, now: float | None = None) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(self.remaining, 0)),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            now = time.time() if now is None else now
            headers["Retry-After"] = str(max(math.ceil(self.reset_at - now), 0))
        return headers


class RateCounter(Protocol):
    def check(self, key: str) -> RateLimitResult: ...


class FixedWindowRateCounter:
    """:class:`RateCounter` backed by the ``limits`` fixed-window strategy."""

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: int = 60,
        storage_uri: str = "memory://",
    ) -> None:
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._limiter = FixedWindowRateLimiter(storage_from_string(storage_uri))

    def check(self, key: str) -> RateLimitResult:
        allowed = self._limiter.hit(self._item, key)
        reset_at, remaining = self._limiter.get_window_stats(self._item, key)
        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_at=reset_at,
            limit=self._item.amount,
        )


def get_client_ip(request: Request) -> str:
    """Best-effort client IP: first ``X-Forwarded-For`` hop, else the peer."""

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


_RATE_COUNTER: RateCounter | None = None


def get_rate_counter() -> RateCounter:
    global _RATE_COUNTER
    if _RATE_COUNTER is None:
        settings = get_settings()
        _RATE_COUNTER = FixedWindowRateCounter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            storage_uri=settings.rate_limit_storage_uri,
        )
    return _RATE_COUNTER


def reset_rate_counter(counter: RateCounter | None = None) -> None:
    """Replace (or drop) the process-wide counter."""

    global _RATE_COUNTER
    _RATE_COUNTER = counter


def enforce_rate_limit(
    request: Request,
    response: Response,
    counter: RateCounter = Depends(get_rate_counter),
) -> RateLimitResult:
    """FastAPI dependency rejecting callers over their window budget.

    The rate headers are set on the response and stashed on
    ``request.state.rate_limit_headers`` for routes that build their own
    response object. Declared sync so FastAPI runs it in the threadpool, since
    ``limits`` storages do blocking I/O.
    """

    key = f"{get_client_ip(request)}:{request.url.path}"
    result = counter.check(key)
    headers = result.headers()
    if not result.allowed:
        logger.info("Rate limit exceeded for %s", key)
        raise RateLimitExceededError(headers=headers)
    response.headers.update(headers)
    request.state.rate_limit_headers = headers
    return result
