"""
app/stores package marker.
"""

from app.stores.rate_limiter import TenantRateLimiter
from app.stores.ttl_cache import TTLCache

__all__ = ["TTLCache", "TenantRateLimiter"]
