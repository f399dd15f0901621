"""
Proxy Module
============
Transparent replay of requests to the protected upstream.
"""

from .dispatcher import ReplayDispatcher, Dispatcher, PROXY_HOP_HEADERS
from .exceptions import UpstreamError, UpstreamTimeoutError

__all__ = [
    "ReplayDispatcher",
    "Dispatcher",
    "PROXY_HOP_HEADERS",
    "UpstreamError",
    "UpstreamTimeoutError",
]
