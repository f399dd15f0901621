"""
Application Factory
===================
Wires the gate and its collaborators into a Starlette application.

Usage:
    config = GateConfig.from_env()
    app = create_app(config)
    uvicorn.run(app, host="0.0.0.0", port=8080)
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from starlette.applications import Starlette

from .audit import AuditDispatcher, DatabaseRequestLogger, RequestLogger, StructlogRequestLogger
from .config import GateConfig
from .gate import GateController, GateMiddleware
from .health import create_health_route
from .pending import PendingRequestCache
from .proxy import Dispatcher, ReplayDispatcher
from .session import SessionTokenCodec
from .templates import TemplateRenderer, TemplateResolver
from .verification import TurnstileVerifier, Verifier
from .version import __version__

logger = structlog.get_logger(__name__)


def create_app(
    config: GateConfig,
    *,
    request_logger: Optional[RequestLogger] = None,
    verifier: Optional[Verifier] = None,
    dispatcher: Optional[Dispatcher] = None,
) -> Starlette:
    """
    Build the proxy application.

    Args:
        config: Gate settings
        request_logger: Audit sink; defaults to the database when
            ``config.database_dsn`` is set, else the log stream
        verifier: Challenge verifier; defaults to TurnstileVerifier
        dispatcher: Upstream dispatcher; defaults to ReplayDispatcher

    Returns:
        Starlette app; the controller is available as ``app.state.gate``
    """
    if request_logger is None:
        if config.database_dsn:
            request_logger = DatabaseRequestLogger.from_url(config.database_dsn)
        else:
            request_logger = StructlogRequestLogger()

    if verifier is None:
        verifier = TurnstileVerifier(
            secret_key=config.secret_key,
            verify_url=config.verify_url,
            timeout=config.verify_timeout,
        )
    if dispatcher is None:
        dispatcher = ReplayDispatcher(config.proxy_target, timeout=config.upstream_timeout)

    pending = PendingRequestCache(ttl_seconds=config.pending_ttl, sweep_interval=config.sweep_interval)
    resolver = TemplateResolver().load(override_path=config.template_path)
    logger.info("templates_loaded", count=len(resolver.names), override_path=config.template_path)

    gate = GateController(
        site_key=config.site_key,
        sessions=SessionTokenCodec(config.jwt_signing_key),
        pending=pending,
        verifier=verifier,
        dispatcher=dispatcher,
        renderer=TemplateRenderer(resolver),
        audit=AuditDispatcher(request_logger),
    )

    engine = getattr(request_logger, "engine", None)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        if isinstance(request_logger, DatabaseRequestLogger):
            await request_logger.migrate()
        pending.start()
        logger.info("tps_started", proxy_target=config.proxy_target, version=__version__)
        try:
            yield
        finally:
            await pending.stop()
            await gate.audit.drain()
            for collaborator in (verifier, dispatcher):
                if hasattr(collaborator, "aclose"):
                    await collaborator.aclose()
            if isinstance(request_logger, DatabaseRequestLogger):
                await request_logger.close()
            logger.info("tps_stopped")

    app = Starlette(
        routes=[
            create_health_route(
                config.health_path,
                service_name=config.service_name,
                version=__version__,
                pending=pending,
                engine=engine,
            ),
        ],
        lifespan=lifespan,
    )
    app.add_middleware(GateMiddleware, gate=gate, exempt_paths={config.health_path})
    app.state.gate = gate
    return app
