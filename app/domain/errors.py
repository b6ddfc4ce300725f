"""
app/domain/errors.py

Domain exceptions raised by the engine and its service layer.
"""

from __future__ import annotations


class InvalidPeriodError(ValueError):
    """Raised when a requested date range is malformed or reversed."""


class UnknownPlanningMetricError(ValueError):
    """Raised when a planning write names a metric the cascade does not know."""


class ProviderError(RuntimeError):
    """Raised by a metrics provider when a fetch fails."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


class RequiredSourceError(RuntimeError):
    """Raised when a source the analysis cannot run without has failed."""

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"Required source '{source}' is unavailable.")


class PersistenceError(RuntimeError):
    """Raised by repositories when a write cannot be completed."""


class RateLimitExceededError(RuntimeError):
    """Raised when a tenant has exhausted its hourly AI quota."""

    def __init__(self, tenant_id: str, bucket: str, limit: int, retry_after_seconds: int) -> None:
        self.tenant_id = tenant_id
        self.bucket = bucket
        self.limit = limit
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Rate limit of {limit}/h exceeded for tenant '{tenant_id}' ({bucket})."
        )


class NarratorError(RuntimeError):
    """Raised when narrative generation fails or times out."""
