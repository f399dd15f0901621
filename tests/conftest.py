import json
import re
from typing import List, Optional

import httpx
import pytest

from turnstile_proxy.app import create_app
from turnstile_proxy.audit import MemoryRequestLogger
from turnstile_proxy.config import GateConfig
from turnstile_proxy.proxy import ReplayDispatcher
from turnstile_proxy.verification import VerificationError, VerificationResult

SIGNING_KEY = "test-signing-key-long-enough-for-hmac-sha256"
SITE_KEY = "0x-test-site-key"
PUBLIC_BASE = "https://public.example.com"
UPSTREAM = "http://upstream.internal:8080"

REQUEST_ID_PATTERN = re.compile(r'name="request_id" value="([0-9a-f]{32})"')


def extract_request_id(html: str) -> str:
    match = REQUEST_ID_PATTERN.search(html)
    assert match, "challenge page carries no request_id"
    return match.group(1)


class FakeVerifier:
    """Verifier double answering with a fixed outcome."""

    def __init__(self, success: bool = True, error: Optional[VerificationError] = None):
        self.success = success
        self.error = error
        self.error_codes: List[str] = [] if success else ["invalid-input-response"]
        self.calls: List[str] = []

    async def verify(self, response_token: str) -> VerificationResult:
        self.calls.append(response_token)
        if self.error is not None:
            raise self.error
        return VerificationResult(success=self.success, error_codes=self.error_codes)


class EchoUpstream:
    """MockTransport handler that reflects the request it received."""

    def __init__(self):
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = {
            "method": request.method,
            "path": request.url.path,
            "raw_path": request.url.raw_path.decode("ascii"),
            "query": request.url.query.decode(),
            "host": request.headers.get("host"),
            "headers": dict(request.headers),
            "body": request.content.decode("latin-1"),
        }
        payload = json.dumps(body).encode()
        return httpx.Response(
            200,
            stream=httpx.ByteStream(payload),
            headers=[
                ("content-type", "application/json"),
                ("content-length", str(len(payload))),
                ("x-upstream", "echo"),
                ("set-cookie", "upstream_a=1; Path=/"),
                ("set-cookie", "upstream_b=2; Path=/"),
            ],
        )


@pytest.fixture
def template_dir(tmp_path):
    path = tmp_path / "templates"
    path.mkdir()
    return path


@pytest.fixture
def config(template_dir):
    return GateConfig(
        proxy_target=UPSTREAM,
        jwt_signing_key=SIGNING_KEY,
        site_key=SITE_KEY,
        secret_key="test-secret",
        template_path=str(template_dir),
    )


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def upstream():
    return EchoUpstream()


@pytest.fixture
def request_logger():
    return MemoryRequestLogger()


@pytest.fixture
def app(config, verifier, upstream, request_logger):
    dispatcher = ReplayDispatcher(UPSTREAM, transport=httpx.MockTransport(upstream))
    return create_app(config, request_logger=request_logger, verifier=verifier, dispatcher=dispatcher)


@pytest.fixture
def gate(app):
    return app.state.gate


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app, client=("203.0.113.7", 51234))
    async with httpx.AsyncClient(transport=transport, base_url=PUBLIC_BASE) as c:
        yield c
