"""
Session Token Tests
===================
"""

import time

import jwt
import pytest
from starlette.responses import Response

from turnstile_proxy.session import (
    AUDIENCE,
    COOKIE_NAME,
    ISSUER,
    SessionTokenCodec,
    set_session_cookie,
)

from .conftest import SIGNING_KEY


def make_token(claims=None, key=SIGNING_KEY, algorithm="HS256", **overrides):
    now = int(time.time())
    payload = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "nbf": now, "exp": now + 3600}
    payload.update(claims or {})
    payload.update(overrides)
    return jwt.encode(payload, key, algorithm=algorithm)


class TestIssue:

    def test_issued_token_verifies(self):
        """A freshly issued token should be valid under the same secret."""
        codec = SessionTokenCodec(SIGNING_KEY)
        assert codec.verify(codec.issue()) is True

    def test_claims_and_lifetime(self):
        """Should carry the fixed issuer/audience and a 24 hour lifetime."""
        codec = SessionTokenCodec(SIGNING_KEY, clock=lambda: 1_700_000_000)
        claims = jwt.decode(
            codec.issue(), SIGNING_KEY, algorithms=["HS256"],
            audience=AUDIENCE, options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
        )

        assert claims["iss"] == "tps"
        assert claims["aud"] == "caddy"
        assert claims["iat"] == claims["nbf"] == 1_700_000_000
        assert claims["exp"] - claims["iat"] == 24 * 3600

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            SessionTokenCodec("")


class TestVerify:

    def test_valid_inside_window(self):
        issued_at = 1_700_000_000
        token = SessionTokenCodec(SIGNING_KEY, clock=lambda: issued_at).issue()

        later = SessionTokenCodec(SIGNING_KEY, clock=lambda: issued_at + 23 * 3600)
        assert later.verify(token) is True

    def test_expired(self):
        """Should reject a token past its 24h lifetime."""
        issued_at = 1_700_000_000
        token = SessionTokenCodec(SIGNING_KEY, clock=lambda: issued_at).issue()

        later = SessionTokenCodec(SIGNING_KEY, clock=lambda: issued_at + 24 * 3600 + 1)
        assert later.verify(token) is False

    def test_valid_at_expiry_instant(self):
        issued_at = 1_700_000_000
        token = SessionTokenCodec(SIGNING_KEY, clock=lambda: issued_at).issue()

        at_expiry = SessionTokenCodec(SIGNING_KEY, clock=lambda: issued_at + 24 * 3600)
        assert at_expiry.verify(token) is True

    def test_not_yet_valid(self):
        codec = SessionTokenCodec(SIGNING_KEY)
        token = make_token(nbf=int(time.time()) + 600)
        assert codec.verify(token) is False

    def test_tampered_signature(self):
        codec = SessionTokenCodec(SIGNING_KEY)
        header, payload, signature = codec.issue().split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        assert codec.verify(f"{header}.{payload}.{flipped}") is False

    def test_wrong_secret(self):
        token = make_token(key="some-other-secret-that-is-also-long-enough")
        assert SessionTokenCodec(SIGNING_KEY).verify(token) is False

    def test_unsigned_token_rejected(self):
        """alg=none must never pass."""
        token = jwt.encode(
            {"iss": ISSUER, "aud": AUDIENCE, "iat": 0, "nbf": 0, "exp": 2**31},
            None,
            algorithm="none",
        )
        assert SessionTokenCodec(SIGNING_KEY).verify(token) is False

    def test_other_hmac_strength_accepted(self):
        token = make_token(algorithm="HS512")
        assert SessionTokenCodec(SIGNING_KEY).verify(token) is True

    def test_wrong_audience(self):
        token = make_token(aud="someone-else")
        assert SessionTokenCodec(SIGNING_KEY).verify(token) is False

    def test_missing_expiry(self):
        now = int(time.time())
        token = jwt.encode({"iss": ISSUER, "aud": AUDIENCE, "iat": now, "nbf": now}, SIGNING_KEY, algorithm="HS256")
        assert SessionTokenCodec(SIGNING_KEY).verify(token) is False

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c", "x" * 500])
    def test_malformed_never_raises(self, token):
        assert SessionTokenCodec(SIGNING_KEY).verify(token) is False


def test_session_cookie_attributes():
    """Cookie should be HttpOnly, Secure, path / and last 24h."""
    response = Response()
    set_session_cookie(response, "token-value")

    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{COOKIE_NAME}=token-value")
    assert "HttpOnly" in cookie
    assert "Secure" in cookie
    assert "Path=/" in cookie
    assert "Max-Age=86400" in cookie
