"""
Pending Request Cache
=====================
Time-bounded in-memory store of captured requests keyed by request ID.
"""

import asyncio
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from .models import CacheEntry, PendingRequest, new_request_id

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60


class PendingRequestCache:
    """
    In-memory pending request cache.

    Entries expire after ``ttl_seconds``; lookups never return an expired
    entry even if the background sweep has not removed it yet. ``take`` is
    single-use: the entry is removed as it is returned, so one captured
    request can be replayed at most once.

    All access goes through one lock, which makes the cache safe to share
    between the event loop and worker threads.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def put(
        self,
        body: bytes,
        method: str,
        headers: List[Tuple[str, str]],
        url: str,
    ) -> str:
        """
        Capture a request and return its new ID.

        Args:
            body: Full request body
            method: HTTP method
            headers: Header multimap as (name, value) pairs
            url: Absolute request URL including query string

        Returns:
            Hex-encoded 128-bit request ID
        """
        request_id = new_request_id()
        entry = CacheEntry(
            request=PendingRequest(method=method, body=body, headers=list(headers), url=url),
            expires_at=self._clock() + self.ttl_seconds,
            request_id=request_id,
        )
        with self._lock:
            self._entries[request_id] = entry
        return request_id

    def take(self, request_id: str) -> Optional[PendingRequest]:
        """
        Remove and return the request stored under an ID.

        Returns:
            The captured request, or None if unknown, expired or already taken
        """
        with self._lock:
            entry = self._entries.pop(request_id, None)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.request

    def peek(self, request_id: str) -> Optional[PendingRequest]:
        """Return the request stored under an ID without consuming it."""
        with self._lock:
            entry = self._entries.get(request_id)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.request

    def sweep(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [
                request_id for request_id, entry in self._entries.items()
                if entry.expires_at <= now
            ]
            for request_id in expired:
                del self._entries[request_id]
        if expired:
            logger.debug("pending_requests_swept", removed=len(expired))
        return len(expired)

    # =========================================================================
    # Background sweeper
    # =========================================================================

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.sweeper_running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())
        logger.info("pending_request_sweeper_started", interval=self.sweep_interval, ttl=self.ttl_seconds)

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("pending_request_sweeper_stopped")

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
