"""
Audit Module
============
Request log entries for every terminal outcome of the gate, delivered
best-effort to a database or the log stream.
"""

from .models import RequestLog
from .logger import (
    RequestLogger,
    AuditDispatcher,
    StructlogRequestLogger,
    MemoryRequestLogger,
)
from .database import (
    Base,
    RequestLogRecord,
    DatabaseRequestLogger,
    create_async_engine,
)

__all__ = [
    # Models
    "RequestLog",
    # Loggers
    "RequestLogger",
    "AuditDispatcher",
    "StructlogRequestLogger",
    "MemoryRequestLogger",
    # Database
    "Base",
    "RequestLogRecord",
    "DatabaseRequestLogger",
    "create_async_engine",
]
