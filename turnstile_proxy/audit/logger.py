"""
Request Logger
==============
Best-effort delivery of request log entries.
"""

import asyncio
from typing import List, Protocol, Set

import structlog

from .models import RequestLog

logger = structlog.get_logger(__name__)


class RequestLogger(Protocol):
    """Sink for request log entries."""

    async def log_request(self, entry: RequestLog) -> None:
        ...


class StructlogRequestLogger:
    """Writes entries to the log stream instead of a store."""

    async def log_request(self, entry: RequestLog) -> None:
        logger.info("request_logged", **entry.to_dict())


class MemoryRequestLogger:
    """Keeps entries in a list. For development and testing."""

    def __init__(self):
        self.entries: List[RequestLog] = []

    async def log_request(self, entry: RequestLog) -> None:
        self.entries.append(entry)


class AuditDispatcher:
    """
    Fire-and-forget wrapper around a RequestLogger.

    Each entry is delivered on its own task so the request that produced it
    never waits on the sink. Delivery failures are logged and dropped.
    """

    def __init__(self, sink: RequestLogger):
        self.sink = sink
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, entry: RequestLog) -> None:
        """Schedule delivery of an entry on the running loop."""
        task = asyncio.get_running_loop().create_task(self._deliver(entry))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, entry: RequestLog) -> None:
        try:
            await self.sink.log_request(entry)
        except Exception as e:
            logger.error(
                "request_log_failed",
                error=str(e),
                error_type=type(e).__name__,
                url=entry.url,
            )

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
