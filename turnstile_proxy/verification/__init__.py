from .client import TurnstileVerifier, Verifier
from .models import VerificationResult
from .exceptions import (
    VerificationError,
    ProviderUnreachableError,
    ProviderMalformedResponseError,
)

__all__ = [
    "TurnstileVerifier",
    "Verifier",
    "VerificationResult",
    "VerificationError",
    "ProviderUnreachableError",
    "ProviderMalformedResponseError",
]
