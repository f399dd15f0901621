"""
Pending Request Module
======================
Captures unauthenticated requests so they can be replayed after a challenge.
"""

from .models import PendingRequest, CacheEntry, new_request_id
from .cache import (
    PendingRequestCache,
    DEFAULT_TTL_SECONDS,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
)

__all__ = [
    # Models
    "PendingRequest",
    "CacheEntry",
    "new_request_id",
    # Cache
    "PendingRequestCache",
    "DEFAULT_TTL_SECONDS",
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
]
