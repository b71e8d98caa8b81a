"""Jinja2 rendering wired to the resource resolver.

Plugins contribute to rendering in two ways, both collected in a
:class:`TemplateRegistry` during attach:

* **filters** -- ``plugin.filter("markdown", fn)``; a name ending in
  ``Async`` or ``_async`` is registered without the suffix, and coroutine
  functions are awaited by Jinja's async mode.
* **locals** -- ``plugin.locals("menu", fn)``; ``fn(render_context)`` is
  evaluated for every render and its result exposed under the given name.

:class:`TemplateRenderer` owns the Jinja environment. Template names are
resolved through :class:`~peento.resources.ResourceResolver` (class
``"view"``); unresolved names render the ``view_not_found.html`` fallback
instead of failing the request. In development mode templates are re-read on
every render; otherwise compiled templates are cached by name.

Each request gets its own :class:`RenderContext`, available to route
handlers as a FastAPI dependency::

    async def show_post(post_id: int, render: RenderContext = Depends(renderer.context)):
        render.set_locals("post", await load_post(post_id))
        return await render.render("post")
"""

from __future__ import annotations

import inspect
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from jinja2 import BaseLoader, Environment, TemplateNotFound, select_autoescape
from starlette.requests import Request
from starlette.responses import HTMLResponse

from peento.models import AppConfig
from peento.resources import VIEW, ResourceResolver

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"
VIEW_NOT_FOUND = "view_not_found.html"
DEFAULT_VIEWS_DIR = Path(__file__).parent / "views"

_ASYNC_SUFFIXES = ("Async", "_async")


def template_filename(name: str) -> str:
    """Append the default suffix to *name* when it has no extension."""
    name = name.lstrip("/")
    if not Path(name).suffix:
        name += TEMPLATE_SUFFIX
    return name


class TemplateRegistry:
    """Filters and lazily evaluated locals contributed by plugins."""

    def __init__(self) -> None:
        self.filters: dict[str, Callable[..., Any]] = {}
        self.locals: dict[str, Callable[..., Any]] = {}

    def add_filter(self, name: str, fn: Callable[..., Any]) -> Callable[..., Any]:
        for suffix in _ASYNC_SUFFIXES:
            if name.endswith(suffix) and len(name) > len(suffix):
                name = name[: -len(suffix)]
                break
        self.filters[name] = fn
        return fn

    def add_locals(self, name: str, fn: Callable[..., Any]) -> Callable[..., Any]:
        self.locals[name] = fn
        return fn


class ViewLoader(BaseLoader):
    """Jinja loader that looks templates up through the resource resolver."""

    def __init__(self, resolver: ResourceResolver) -> None:
        self.resolver = resolver

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, Optional[str], Optional[Callable[[], bool]]]:
        name = template_filename(template)
        location = self.resolver.resolve_or_default(VIEW, name, VIEW_NOT_FOUND)
        logger.debug("resolve view: [%s] %s", name, location)
        if location is None:
            raise TemplateNotFound(template)

        try:
            source = location.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateNotFound(template) from exc

        view_name = name[: -len(TEMPLATE_SUFFIX)] if name.endswith(TEMPLATE_SUFFIX) else name
        source = "{% set _view_name = " + json.dumps(view_name) + " %}" + source

        development = self.resolver.development
        return source, str(location), lambda: not development


class TemplateRenderer:
    """Owns the Jinja environment and renders views for requests.

    Args:
        resolver: Resolves view names to files.
        templates: Filters and locals registered by plugins.
        config: The application config; exposed to templates as ``_config``.
    """

    def __init__(self, resolver: ResourceResolver, templates: TemplateRegistry, config: AppConfig) -> None:
        self.resolver = resolver
        self.templates = templates
        self.config = config
        development = resolver.development
        self.environment = Environment(
            loader=ViewLoader(resolver),
            autoescape=select_autoescape(["html", "htm", "xml"]),
            enable_async=True,
            auto_reload=development,
            cache_size=0 if development else 400,
        )

    def install(self) -> None:
        """Copy the registered filters into the environment."""
        for name, fn in self.templates.filters.items():
            logger.debug("install filter: %s", name)
            self.environment.filters[name] = fn

    def register_default_views(self) -> None:
        """Register the built-in views unless a plugin already provides them."""
        registry = self.resolver.registry(VIEW)
        for path in sorted(DEFAULT_VIEWS_DIR.glob("*" + TEMPLATE_SUFFIX)):
            registry.setdefault(path.name, path)

    def context(self, request: Request) -> RenderContext:
        """Return the request's :class:`RenderContext`, creating it on first use."""
        ctx = getattr(request.state, "render_context", None)
        if ctx is None:
            ctx = RenderContext(self, request)
            request.state.render_context = ctx
        return ctx

    async def render_to_string(self, name: str, variables: dict[str, Any]) -> str:
        template = self.environment.get_template(template_filename(name))
        return await template.render_async(variables)


async def _read_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            return await request.json()
        except ValueError:
            return None
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)
    return None


class RenderContext:
    """Per-request template locals plus the request they derive from."""

    def __init__(self, renderer: TemplateRenderer, request: Request) -> None:
        self.renderer = renderer
        self.request = request
        self.locals: dict[str, Any] = {}

    def set_locals(self, name: str, value: Any) -> None:
        self.locals[name] = value

    async def server_locals(self) -> dict[str, Any]:
        """The request-derived ``_server`` local."""
        request = self.request
        return {
            "query": dict(request.query_params),
            "body": await _read_body(request),
            "params": dict(request.path_params),
            "headers": dict(request.headers),
            "session": request.session if "session" in request.scope else {},
        }

    async def variables(self) -> dict[str, Any]:
        variables: dict[str, Any] = {
            "_server": await self.server_locals(),
            "_config": self.renderer.config.as_namespace(),
        }
        for local_name, fn in self.renderer.templates.locals.items():
            value = fn(self)
            if inspect.isawaitable(value):
                value = await value
            variables[local_name] = value
        variables.update(self.locals)
        return variables

    async def render(self, name: str, status_code: int = 200, **extra: Any) -> HTMLResponse:
        """Render view *name* and wrap it in a ``text/html`` response."""
        logger.debug("render: %s", name)
        for key, value in extra.items():
            self.set_locals(key, value)
        html = await self.renderer.render_to_string(name, await self.variables())
        return HTMLResponse(html, status_code=status_code, media_type="text/html")
