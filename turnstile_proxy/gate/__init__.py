"""
Gate Module
===========
Request-gating core: session check, challenge, verification and replay.
"""

from .controller import (
    GateController,
    GateMiddleware,
    Submission,
    get_client_ip,
    original_url,
    original_path,
    RESPONSE_FIELD,
    REQUEST_ID_FIELD,
)
from .responses import GateErrors, error_response

__all__ = [
    "GateController",
    "GateMiddleware",
    "Submission",
    "get_client_ip",
    "original_url",
    "original_path",
    "RESPONSE_FIELD",
    "REQUEST_ID_FIELD",
    "GateErrors",
    "error_response",
]
