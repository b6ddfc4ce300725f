"""
app/stores/rate_limiter.py

Per-tenant hourly quota for AI-backed calls.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable

from app.domain.errors import RateLimitExceededError

WINDOW_SECONDS: float = 3600.0


class TenantRateLimiter:
    """
    Sliding one-hour window of call timestamps per (tenant, bucket).

    The check-then-record sequence is not atomic. Under heavy concurrency a
    tenant may slightly exceed its limit; the counter is a soft guard, not a
    billing control.
    """

    def __init__(
        self,
        *,
        limits: dict[str, int],
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits = {bucket: max(1, limit) for bucket, limit in limits.items()}
        self._window_seconds = window_seconds
        self._clock = clock
        self._calls: dict[tuple[str, str], deque[float]] = {}

    def limit_for(self, bucket: str) -> int:
        try:
            return self._limits[bucket]
        except KeyError as exc:
            raise ValueError(f"Unknown rate-limit bucket '{bucket}'.") from exc

    def _window(self, tenant_id: str, bucket: str) -> deque[float]:
        calls = self._calls.setdefault((tenant_id, bucket), deque())
        cutoff = self._clock() - self._window_seconds
        while calls and calls[0] <= cutoff:
            calls.popleft()
        return calls

    def remaining(self, tenant_id: str, bucket: str) -> int:
        return max(0, self.limit_for(bucket) - len(self._window(tenant_id, bucket)))

    def acquire(self, tenant_id: str, bucket: str) -> None:
        """
        Record one call, or raise if the tenant's window is full.

        Raises
        ------
        RateLimitExceededError
            With ``retry_after_seconds`` set to when the oldest call in the
            window expires.
        """
        limit = self.limit_for(bucket)
        calls = self._window(tenant_id, bucket)
        now = self._clock()
        if len(calls) >= limit:
            retry_after = max(1, int(calls[0] + self._window_seconds - now) + 1)
            raise RateLimitExceededError(tenant_id, bucket, limit, retry_after)
        calls.append(now)

    def reset(self, tenant_id: str | None = None) -> None:
        if tenant_id is None:
            self._calls.clear()
            return
        for key in [key for key in self._calls if key[0] == tenant_id]:
            self._calls.pop(key, None)
