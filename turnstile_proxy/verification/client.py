import json
from typing import Optional, Protocol

import httpx
import structlog
from pydantic import ValidationError

from ..config import TURNSTILE_VERIFY_URL
from .exceptions import (
    ProviderMalformedResponseError,
    ProviderUnreachableError,
)
from .models import VerificationResult

logger = structlog.get_logger(__name__)


class Verifier(Protocol):
    """Anything that can check a challenge response token."""

    async def verify(self, response_token: str) -> VerificationResult:
        ...


class TurnstileVerifier:
    """
    Async client for Cloudflare Turnstile's siteverify endpoint.

    One POST per call, no retries: a provider failure fails the request
    it belongs to. Transport problems and bad bodies raise distinct
    exceptions so callers never mistake an outage for a failed challenge.
    """

    def __init__(
        self,
        secret_key: str,
        verify_url: str = TURNSTILE_VERIFY_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.timeout = timeout

        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def verify(self, response_token: str) -> VerificationResult:
        """
        Ask the verification authority whether a widget response is genuine.

        Args:
            response_token: Value the widget placed in cf-turnstile-response

        Returns:
            The parsed VerificationResult; ``success`` may be False

        Raises:
            ProviderUnreachableError: timeout, connection failure or non-2xx
            ProviderMalformedResponseError: body is not the expected JSON
        """
        try:
            response = await self.client.post(
                self.verify_url,
                data={"secret": self.secret_key, "response": response_token},
            )
            response.raise_for_status()
        except httpx.TimeoutException:
            raise ProviderUnreachableError(f"Request timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderUnreachableError("Server error", status_code=status, details=e.response.text)
        except httpx.HTTPError as e:
            raise ProviderUnreachableError(f"Failed to connect: {str(e)}")

        try:
            return VerificationResult.model_validate(response.json())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProviderMalformedResponseError(
                f"Response is not JSON: {str(e)}",
                status_code=response.status_code,
            )
        except ValidationError as e:
            raise ProviderMalformedResponseError(
                "Response does not match the siteverify schema",
                status_code=response.status_code,
                details=e.errors(include_url=False),
            )
