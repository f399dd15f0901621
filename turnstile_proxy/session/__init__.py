"""
Session Module
==============
Signed, time-bounded proof that a client completed a challenge.
"""

from .token import (
    SessionTokenCodec,
    set_session_cookie,
    COOKIE_NAME,
    TOKEN_LIFETIME,
    ISSUER,
    AUDIENCE,
    ACCEPTED_ALGORITHMS,
)

__all__ = [
    "SessionTokenCodec",
    "set_session_cookie",
    "COOKIE_NAME",
    "TOKEN_LIFETIME",
    "ISSUER",
    "AUDIENCE",
    "ACCEPTED_ALGORITHMS",
]
