"""
Pending Request Models
======================
Snapshot of an unauthenticated request held while its client is challenged.
"""

import secrets
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


def new_request_id() -> str:
    """Generate a random 128-bit request ID, hex encoded."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class PendingRequest:
    """A captured request, replayable once the challenge is passed."""
    method: str
    body: bytes
    headers: List[Tuple[str, str]]  # multimap, original order and casing
    url: str  # absolute, including query string

    def header_values(self, name: str) -> List[str]:
        """Return every value sent for a header, case-insensitively."""
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]


@dataclass
class CacheEntry:
    """A pending request and its absolute expiry on the cache clock."""
    request: PendingRequest
    expires_at: float
    request_id: Optional[str] = field(default=None)
