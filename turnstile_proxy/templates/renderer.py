"""
Template Renderer
=================
Renders resolved templates into HTML responses.
"""

from typing import Any, Dict, Optional

import jinja2
from starlette.requests import Request
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from .resolver import TemplateResolver

NO_STORE = {"Cache-Control": "no-store"}


class TemplateRenderer:
    """Jinja2 rendering over the names a TemplateResolver has indexed."""

    def __init__(self, resolver: TemplateResolver):
        self.resolver = resolver
        env = jinja2.Environment(
            loader=jinja2.FunctionLoader(self._load),
            autoescape=True,
        )
        self.templates = Jinja2Templates(env=env)

    def _load(self, name: str):
        path = self.resolver.source(name)
        if path is None:
            return None
        source = path.read_text(encoding="utf-8")
        mtime = path.stat().st_mtime

        def uptodate() -> bool:
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return source, str(path), uptodate

    def render(
        self,
        request: Request,
        template_name: str,
        context: Optional[Dict[str, Any]] = None,
        status_code: int = 200,
    ) -> Response:
        """
        Resolve ``template_name`` for the request's public host and path and
        render it.
        """
        name = self.resolver.resolve(
            request.url.hostname or "",
            request.url.path,
            template_name,
        )
        return self.templates.TemplateResponse(
            request,
            name,
            context or {},
            status_code=status_code,
            headers=NO_STORE,
        )
