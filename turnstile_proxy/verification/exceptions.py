from typing import Optional, Any


class VerificationError(Exception):
    """Base exception for failures talking to the verification authority."""
    def __init__(self, message: str, provider: str = "turnstile", status_code: Optional[int] = None, details: Any = None):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.details = details
        super().__init__(f"[{provider}] {message} (Status: {status_code})")


class ProviderUnreachableError(VerificationError):
    """Raised on transport failures, timeouts and non-2xx responses."""
    pass


class ProviderMalformedResponseError(VerificationError):
    """Raised when the response body is not the expected JSON document."""
    pass
