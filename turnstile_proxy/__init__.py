"""
Turnstile Proxy Server
======================
Reverse proxy that makes clients without a session pass a Cloudflare
Turnstile challenge before their request reaches the upstream.
"""

from turnstile_proxy.version import __version__

# Config
from turnstile_proxy.config import GateConfig, ConfigurationError, TEST_SITE_KEY, TEST_SECRET_KEY

# Session
from turnstile_proxy.session import SessionTokenCodec, COOKIE_NAME

# Pending requests
from turnstile_proxy.pending import PendingRequest, PendingRequestCache

# Verification
from turnstile_proxy.verification import (
    TurnstileVerifier,
    VerificationResult,
    VerificationError,
    ProviderUnreachableError,
    ProviderMalformedResponseError,
)

# Templates
from turnstile_proxy.templates import TemplateResolver, TemplateRenderer

# Proxy
from turnstile_proxy.proxy import ReplayDispatcher, UpstreamError

# Audit
from turnstile_proxy.audit import (
    RequestLog,
    AuditDispatcher,
    DatabaseRequestLogger,
    StructlogRequestLogger,
)

# Gate
from turnstile_proxy.gate import GateController, GateMiddleware

# Application
from turnstile_proxy.app import create_app

__all__ = [
    "__version__",
    "GateConfig",
    "ConfigurationError",
    "TEST_SITE_KEY",
    "TEST_SECRET_KEY",
    "SessionTokenCodec",
    "COOKIE_NAME",
    "PendingRequest",
    "PendingRequestCache",
    "TurnstileVerifier",
    "VerificationResult",
    "VerificationError",
    "ProviderUnreachableError",
    "ProviderMalformedResponseError",
    "TemplateResolver",
    "TemplateRenderer",
    "ReplayDispatcher",
    "UpstreamError",
    "RequestLog",
    "AuditDispatcher",
    "DatabaseRequestLogger",
    "StructlogRequestLogger",
    "GateController",
    "GateMiddleware",
    "create_app",
]
