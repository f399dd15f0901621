"""
Audit Models
=============
Data model for request log entries.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class RequestLog:
    """One terminal outcome of the gate."""
    client_ip: str
    timestamp: datetime
    url: str
    had_valid_token: bool = False
    was_presented_challenge: bool = False
    challenge_succeeded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d
