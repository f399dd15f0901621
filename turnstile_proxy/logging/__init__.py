"""
TPS Logging Module

Structured logging shared by the gate, its collaborators and the CLI.
"""

from .structured import (
    setup_logging,
    get_logger,
    service_name_var,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "service_name_var",
]
