"""
Gate Controller
===============
Per-request state machine deciding between passthrough, verification and
challenge.

1. A valid session cookie forwards the request upstream untouched.
2. A POST carrying ``cf-turnstile-response`` and ``request_id`` is verified;
   on success a session cookie is issued and the captured request replayed,
   on failure the ``failed`` page is rendered with 401.
3. Anything else is captured in the pending cache and answered with the
   ``challenge`` page.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Set
from urllib.parse import quote, urlsplit

import structlog
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response

from ..audit import AuditDispatcher, RequestLog
from ..pending import PendingRequest, PendingRequestCache
from ..proxy import Dispatcher, UpstreamError
from ..session import COOKIE_NAME, SessionTokenCodec, set_session_cookie
from ..templates import TemplateRenderer
from ..verification import VerificationError, Verifier
from .responses import GateErrors

logger = structlog.get_logger(__name__)

RESPONSE_FIELD = "cf-turnstile-response"
REQUEST_ID_FIELD = "request_id"
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@dataclass
class Submission:
    """Verification fields found in a POSTed form."""
    response_token: str = ""
    request_id: str = ""


def original_url(request: Request) -> str:
    """
    Absolute URL exactly as the client sent it.

    ``request.url`` is rebuilt from the decoded path, which turns %3F, %2F
    and %23 back into delimiters. The raw path keeps them encoded.
    """
    scope = request.scope
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = quote(scope.get("root_path", "") + scope["path"])
    url = f"{request.url.scheme}://{request.url.netloc}{path}"
    query = scope.get("query_string", b"")
    if query:
        url += "?" + query.decode("latin-1")
    return url


def original_path(request: Request) -> str:
    """Path component of original_url, still percent-encoded."""
    return urlsplit(original_url(request)).path or "/"


def get_client_ip(request: Request) -> str:
    """Extract real client IP from headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class GateController:
    """
    Orchestrates session check, verification, capture and replay.

    Every collaborator is injected, so each instance owns its own cache
    and template index.
    """

    def __init__(
        self,
        site_key: str,
        sessions: SessionTokenCodec,
        pending: PendingRequestCache,
        verifier: Verifier,
        dispatcher: Dispatcher,
        renderer: TemplateRenderer,
        audit: AuditDispatcher,
    ):
        self.site_key = site_key
        self.sessions = sessions
        self.pending = pending
        self.verifier = verifier
        self.dispatcher = dispatcher
        self.renderer = renderer
        self.audit = audit

    async def handle(self, request: Request) -> Response:
        client_ip = get_client_ip(request)

        if self.sessions.verify(request.cookies.get(COOKIE_NAME)):
            logger.info("session_token_valid", path=request.url.path, client_ip=client_ip)
            self._record(request, client_ip, had_valid_token=True)
            return await self._forward(request, client_ip)

        try:
            body = await request.body()
        except ClientDisconnect:
            logger.warning("client_disconnected_before_body", path=request.url.path, client_ip=client_ip)
            return GateErrors.unreadable_body()

        submission = await self._read_submission(request)
        if submission.response_token and submission.request_id:
            return await self._verify_submission(request, client_ip, submission)
        if submission.response_token:
            logger.warning("verification_submission_malformed", path=request.url.path, client_ip=client_ip)
            return GateErrors.missing_request_id()

        return self._issue_challenge(request, body)

    # =========================================================================
    # States
    # =========================================================================

    async def _read_submission(self, request: Request) -> Submission:
        content_type = request.headers.get("content-type", "")
        if request.method != "POST" or not content_type.startswith(FORM_CONTENT_TYPES):
            return Submission()

        try:
            async with request.form() as form:
                response_token = form.get(RESPONSE_FIELD)
                request_id = form.get(REQUEST_ID_FIELD)
        except (HTTPException, MultiPartException) as e:
            # Unparseable bodies are captured like any other first contact
            logger.debug("form_unparseable", error=str(e))
            return Submission()

        return Submission(
            response_token=response_token if isinstance(response_token, str) else "",
            request_id=request_id if isinstance(request_id, str) else "",
        )

    async def _verify_submission(self, request: Request, client_ip: str, submission: Submission) -> Response:
        logger.info("turnstile_response_received", request_id=submission.request_id)

        try:
            result = await self.verifier.verify(submission.response_token)
        except VerificationError as e:
            logger.error(
                "turnstile_verification_error",
                error=e.message,
                error_type=type(e).__name__,
                status_code=e.status_code,
                details=e.details,
                request_id=submission.request_id,
            )
            return GateErrors.provider_failure()

        if not result.success:
            logger.warning(
                "turnstile_verification_failed",
                error_codes=result.error_codes,
                request_id=submission.request_id,
            )
            self._record(request, client_ip, was_presented_challenge=True, challenge_succeeded=False)
            return self.renderer.render(
                request,
                "failed",
                {"retry_url": original_path(request)},
                status_code=401,
            )

        logger.info("turnstile_verification_successful", request_id=submission.request_id)
        self._record(request, client_ip, was_presented_challenge=True, challenge_succeeded=True)

        token = self.sessions.issue()
        original = self.pending.take(submission.request_id)
        if original is None:
            logger.error("pending_request_missing", request_id=submission.request_id)
            response = GateErrors.pending_request_missing()
        else:
            response = await self._replay(original, client_ip)

        set_session_cookie(response, token)
        return response

    def _issue_challenge(self, request: Request, body: bytes) -> Response:
        request_id = self.pending.put(
            body=body,
            method=request.method,
            headers=[(k.decode("latin-1"), v.decode("latin-1")) for k, v in request.headers.raw],
            url=original_url(request),
        )
        logger.info("challenge_issued", request_id=request_id, method=request.method, path=request.url.path)
        return self.renderer.render(
            request,
            "challenge",
            {
                "site_key": self.site_key,
                "request_id": request_id,
                "post_action": original_path(request),
            },
        )

    # =========================================================================
    # Forwarding
    # =========================================================================

    async def _forward(self, request: Request, client_ip: str) -> Response:
        has_body = "content-length" in request.headers or "transfer-encoding" in request.headers
        return await self._dispatch(
            request.method,
            original_url(request),
            [(k.decode("latin-1"), v.decode("latin-1")) for k, v in request.headers.raw],
            request.stream() if has_body else None,
            client_ip,
        )

    async def _replay(self, original: PendingRequest, client_ip: str) -> Response:
        return await self._dispatch(
            original.method,
            original.url,
            original.headers,
            original.body or None,
            client_ip,
        )

    async def _dispatch(self, method, url, headers, content, client_ip) -> Response:
        try:
            return await self.dispatcher.dispatch(method, url, headers, content, client_ip=client_ip)
        except UpstreamError as e:
            return GateErrors.upstream_failure(e.status_code)

    def _record(
        self,
        request: Request,
        client_ip: str,
        had_valid_token: bool = False,
        was_presented_challenge: bool = False,
        challenge_succeeded: bool = False,
    ) -> None:
        self.audit.submit(RequestLog(
            client_ip=client_ip,
            timestamp=datetime.now(timezone.utc),
            url=original_url(request),
            had_valid_token=had_valid_token,
            was_presented_challenge=was_presented_challenge,
            challenge_succeeded=challenge_succeeded,
        ))


class GateMiddleware(BaseHTTPMiddleware):
    """
    Routes every request through a GateController.

    Exempt paths (the health endpoint) are handed to the wrapped app and
    never proxied.
    """

    def __init__(self, app, gate: GateController, exempt_paths: Optional[Set[str]] = None):
        super().__init__(app)
        self.gate = gate
        self.exempt_paths = exempt_paths or set()

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)
        return await self.gate.handle(request)
