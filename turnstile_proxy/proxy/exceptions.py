from typing import Optional


class UpstreamError(Exception):
    """Raised when the proxy target cannot be reached."""
    status_code = 502

    def __init__(self, message: str, target: Optional[str] = None):
        self.message = message
        self.target = target
        super().__init__(f"[{target}] {message}")


class UpstreamTimeoutError(UpstreamError):
    """Raised when the proxy target does not answer in time."""
    status_code = 504
