"""
Replay Dispatcher
=================
Forwards requests to the protected upstream and streams the answer back.
"""

from typing import AsyncIterator, Iterable, List, Optional, Protocol, Tuple, Union
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog
from starlette.background import BackgroundTask
from starlette.responses import Response, StreamingResponse

from .exceptions import UpstreamError, UpstreamTimeoutError

logger = structlog.get_logger(__name__)

# Connection-scoped headers never forwarded in either direction
PROXY_HOP_HEADERS = frozenset([
    "connection", "keep-alive", "proxy-authenticate",
    "proxy-authorization", "proxy-connection", "te", "trailer",
    "trailers", "transfer-encoding", "upgrade",
])

Content = Union[bytes, AsyncIterator[bytes], None]


class Dispatcher(Protocol):
    """Anything that can forward a request upstream."""

    async def dispatch(
        self,
        method: str,
        url: str,
        headers: Iterable[Tuple[str, str]],
        content: Content = None,
        client_ip: Optional[str] = None,
    ) -> Response:
        ...


class ReplayDispatcher:
    """
    Transparent forwarding to a single upstream base URL.

    Only scheme and host are rewritten; method, path, query, headers and
    body pass through. No retries: a transport failure raises UpstreamError.
    """

    def __init__(
        self,
        target: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        parts = urlsplit(target)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"invalid proxy target {target!r}")
        self.target = target
        self.scheme = parts.scheme
        self.netloc = parts.netloc

        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
        )

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    def rewrite_url(self, url: str) -> str:
        """Point a client-facing URL at the upstream, keeping path and query."""
        parts = urlsplit(url)
        return urlunsplit((self.scheme, self.netloc, parts.path or "/", parts.query, ""))

    def _upstream_headers(
        self,
        headers: Iterable[Tuple[str, str]],
        client_ip: Optional[str],
    ) -> List[Tuple[str, str]]:
        forwarded = []
        prior_forwarded_for = []
        for name, value in headers:
            lower = name.lower()
            if lower in PROXY_HOP_HEADERS or lower == "host":
                continue
            if lower == "x-forwarded-for":
                prior_forwarded_for.append(value)
                continue
            forwarded.append((name, value))

        if client_ip:
            prior_forwarded_for.append(client_ip)
        if prior_forwarded_for:
            forwarded.append(("X-Forwarded-For", ", ".join(prior_forwarded_for)))

        forwarded.append(("Host", self.netloc))
        return forwarded

    async def dispatch(
        self,
        method: str,
        url: str,
        headers: Iterable[Tuple[str, str]],
        content: Content = None,
        client_ip: Optional[str] = None,
    ) -> Response:
        """
        Send a request upstream and stream the response back.

        Args:
            method: HTTP method
            url: Client-facing absolute URL; scheme and host are replaced
            headers: Request header multimap
            content: Body bytes, an async byte stream, or None
            client_ip: Appended to X-Forwarded-For

        Returns:
            StreamingResponse relaying status, headers and raw body bytes

        Raises:
            UpstreamError: the upstream could not be reached
        """
        upstream_url = self.rewrite_url(url)
        request = self.client.build_request(
            method,
            upstream_url,
            headers=self._upstream_headers(headers, client_ip),
            content=content,
        )

        try:
            upstream = await self.client.send(request, stream=True)
        except httpx.TimeoutException as e:
            logger.error("upstream_timeout", method=method, url=upstream_url, error=str(e))
            raise UpstreamTimeoutError(f"Upstream timed out: {str(e)}", target=self.target)
        except httpx.HTTPError as e:
            logger.error("upstream_unreachable", method=method, url=upstream_url, error=str(e))
            raise UpstreamError(f"Upstream unreachable: {str(e)}", target=self.target)

        logger.debug("upstream_responded", method=method, url=upstream_url, status=upstream.status_code)

        # Transports that hand back an already-read body have nothing left to stream
        body = iter([upstream.content]) if upstream.is_stream_consumed else upstream.aiter_raw()
        response = StreamingResponse(
            body,
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = [
            (name.lower(), value)
            for name, value in upstream.headers.raw
            if name.lower().decode("latin-1") not in PROXY_HOP_HEADERS
        ]
        return response
