"""
Session Token
=============
Issues and verifies the signed cookie proving a client passed a challenge.
"""

import time
from datetime import timedelta
from typing import Callable, Optional

import jwt
import structlog
from starlette.responses import Response

logger = structlog.get_logger(__name__)

COOKIE_NAME = "tps-jwt"
TOKEN_LIFETIME = timedelta(hours=24)
ISSUER = "tps"
AUDIENCE = "caddy"
SIGNING_ALGORITHM = "HS256"

# Only symmetric HMAC tokens are accepted; anything else ("none", RS256
# signed with the shared secret as a public key, ...) is rejected.
ACCEPTED_ALGORITHMS = ["HS256", "HS384", "HS512"]


class SessionTokenCodec:
    """Signs and verifies stateless session tokens."""

    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret:
            raise ValueError("empty JWT signing key")
        self.secret = secret
        self._clock = clock

    def issue(self) -> str:
        """
        Issue a token valid from now for TOKEN_LIFETIME.

        Returns:
            Compact JWT string
        """
        now = int(self._clock())
        claims = {
            "iss": ISSUER,
            "aud": AUDIENCE,
            "iat": now,
            "nbf": now,
            "exp": now + int(TOKEN_LIFETIME.total_seconds()),
        }
        return jwt.encode(claims, self.secret, algorithm=SIGNING_ALGORITHM)

    def verify(self, token: Optional[str]) -> bool:
        """
        Check a token's algorithm, signature and validity window.

        Never raises: malformed, expired, not-yet-valid, foreign-algorithm
        and badly signed tokens all return False.
        """
        if not token:
            return False
        try:
            header = jwt.get_unverified_header(token)
            if header.get("alg") not in ACCEPTED_ALGORITHMS:
                logger.warning("session_token_rejected", reason="unexpected_algorithm", alg=header.get("alg"))
                return False

            claims = jwt.decode(
                token,
                self.secret,
                algorithms=ACCEPTED_ALGORITHMS,
                audience=AUDIENCE,
                issuer=ISSUER,
                options={"require": ["exp", "iat", "nbf"], "verify_exp": False, "verify_nbf": False, "verify_iat": False},
            )
        except jwt.PyJWTError as e:
            logger.warning("session_token_rejected", reason=type(e).__name__)
            return False

        not_before, expires = claims["nbf"], claims["exp"]
        if not all(isinstance(v, (int, float)) for v in (not_before, expires)):
            logger.warning("session_token_rejected", reason="non_numeric_timestamps")
            return False

        if not not_before <= self._clock() <= expires:
            logger.info("session_token_rejected", reason="outside_validity_window")
            return False
        return True


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session cookie to a response."""
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(TOKEN_LIFETIME.total_seconds()),
        path="/",
        secure=True,
        httponly=True,
    )
