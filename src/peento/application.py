"""The peento host application.

:class:`Application` owns everything plugins share -- the namespace, the
typed registries, the resource resolver, the template renderer, the
database handle -- and the FastAPI app that serves requests.

Lifecycle::

    app = Application({"debug": True})
    app.use("./plugins/blog")       # attach: plugins register capabilities
    app.use("comments")
    app.start()                     # init plugins, wire templates and routes
    app.listen(8080)                # serve with uvicorn (blocking)

Registries and search roots are only written before :meth:`start`; after
it they are treated as read-only, so request handling never needs locks.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from sqlalchemy.engine import Engine
from starlette.middleware.sessions import SessionMiddleware

from peento import __version__
from peento.config import build_config
from peento.cookies import CookieSigner
from peento.db import create_database
from peento.exceptions import CallError, CallNotFoundError, PeentoError
from peento.models import AppConfig
from peento.namespace import Namespace
from peento.pipeline import CallPipeline
from peento.plugins import PluginHandle, PluginManager, Registries
from peento.rendering import TemplateRenderer
from peento.resources import ASSET, VIEW, ResourceResolver

logger = logging.getLogger(__name__)

CallCallback = Callable[[Optional[CallError], Any], Any]


class Application:
    """Plugin host: composes plugins into a running web application.

    Args:
        config: An :class:`~peento.models.AppConfig`, a partial settings
            mapping merged over the defaults, or ``None`` for defaults.

    Attributes:
        ns: The shared :class:`~peento.namespace.Namespace`.
        resolver: View and asset resolution.
        registries: Calls, hooks, template filters/locals, routes.
        plugins: The :class:`~peento.plugins.PluginManager`.
        pipeline: Executes named calls.
        renderer: Renders views; ``renderer.context`` is the per-request
            :class:`~peento.rendering.RenderContext` dependency.
        cookies: The :class:`~peento.cookies.CookieSigner` for
            ``cookie.secret``, also published at ``cookie``.
        http: The FastAPI application.
        db: The SQLAlchemy engine, once started.
    """

    def __init__(self, config: Optional[AppConfig | dict[str, Any]] = None) -> None:
        logger.debug("new application")
        self.config = build_config(config)
        self.debug = self.config.debug

        self.ns = Namespace()
        self.ns.set("app", self)
        self.ns.set("config", self.config.as_namespace())
        self.cookies = CookieSigner(self.config.cookie.secret)
        self.ns.set("cookie", self.cookies)

        self.resolver = ResourceResolver(development=self.debug)
        self.ns.set("view", self.resolver.registry(VIEW))

        self.registries = Registries()
        self.plugins = PluginManager(self.ns, self.resolver, self.registries)
        self.pipeline = CallPipeline(self.registries.calls, self.registries.hooks, self.ns)
        self.renderer = TemplateRenderer(self.resolver, self.registries.templates, self.config)

        self.db: Optional[Engine] = None
        self.started = False
        self._start_listeners: list[Callable[[Application], Any]] = []
        self.http = self._create_http_app()

    # ------------------------------------------------------------------
    # HTTP app
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _lifespan(self, _: FastAPI) -> AsyncIterator[None]:
        yield
        if self.db is not None:
            self.db.dispose()

    def _create_http_app(self) -> FastAPI:
        http = FastAPI(
            title="peento",
            version=__version__,
            debug=self.debug,
            lifespan=self._lifespan,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        session = self.config.session
        http.add_middleware(
            SessionMiddleware,
            secret_key=session.secret,
            session_cookie=session.cookie_name,
            max_age=session.max_age,
        )

        timeout = self.config.request.timeout

        @http.middleware("http")
        async def request_timeout(request: Request, call_next: Callable[..., Any]) -> Any:
            try:
                return await asyncio.wait_for(call_next(request), timeout)
            except asyncio.TimeoutError:
                logger.warning("request timed out after %ss: %s %s", timeout, request.method, request.url.path)
                return PlainTextResponse("Request timeout", status_code=503)

        @http.get("/assets/{path:path}", include_in_schema=False)
        async def asset(path: str) -> FileResponse:
            location = self.resolver.resolve(ASSET, path)
            if location is None:
                raise HTTPException(status_code=404, detail=f"Asset not found: {path}")
            return FileResponse(location)

        @http.exception_handler(CallNotFoundError)
        async def call_not_found(request: Request, exc: CallNotFoundError) -> JSONResponse:
            return JSONResponse({"error": str(exc)}, status_code=404)

        @http.exception_handler(PeentoError)
        async def peento_error(request: Request, exc: PeentoError) -> JSONResponse:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse({"error": str(exc)}, status_code=500)

        return http

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    def use(self, spec: Any, setup: Optional[Callable[..., Any]] = None) -> PluginHandle:
        """Attach a plugin. See :meth:`PluginManager.register`.

        Raises:
            PeentoError: If the application has already started.
        """
        if self.started:
            raise PeentoError(f"Cannot add plugin '{spec}' after the application started")
        return self.plugins.register(spec, setup)

    def on_start(self, fn: Callable[[Application], Any]) -> Callable[[Application], Any]:
        """Run ``fn(app)`` at the end of :meth:`start`."""
        self._start_listeners.append(fn)
        return fn

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Finalise composition; the application is ready to serve afterwards.

        Opens the database handle, initialises every plugin, installs
        template filters, adds plugin routes, registers the default views,
        and in production registers every file under the view and asset roots.

        Raises:
            PeentoError: If called twice.
        """
        if self.started:
            raise PeentoError("Application already started")
        logger.debug("start")
        self._init_db()
        self.plugins.initialize_all()
        self.renderer.install()
        routes = self.registries.routes.install(self.http)
        logger.debug("installed %d routes", routes)
        self.renderer.register_default_views()
        if not self.debug:
            self.resolver.snapshot(VIEW)
            self.resolver.snapshot(ASSET)
        self.started = True
        for listener in self._start_listeners:
            listener(self)

    def _init_db(self) -> None:
        logger.debug("init db")
        self.db = create_database(self.config)
        self.ns.set("db", self.db)

    def listen(self, port: Optional[int] = None) -> None:
        """Serve the HTTP app with uvicorn until interrupted."""
        import uvicorn

        port = port or self.config.port
        logger.debug("listen %s", port)
        uvicorn.run(
            self.http,
            host=self.config.host,
            port=port,
            log_level="debug" if self.debug else "info",
        )

    def serve(self, port: Optional[int] = None) -> None:
        """:meth:`start` then :meth:`listen`."""
        self.start()
        self.listen(port)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def call(self, name: str, payload: Any = None, callback: Optional[CallCallback] = None) -> Any:
        """Run call *name* through its before hooks, handler, and after hooks.

        Without *callback*, returns the final payload or raises a
        :class:`~peento.exceptions.CallError`. With *callback*, reports
        ``callback(error, payload)`` instead of raising: ``error`` is
        ``None`` on success, otherwise the ``CallError`` and the payload as
        of the failure. The return value is the payload either way.
        """
        if callback is None:
            return await self.pipeline.run(name, payload)

        try:
            result = await self.pipeline.run(name, payload)
        except CallError as exc:
            error: Optional[CallError] = exc
            result = exc.payload
        else:
            error = None

        reported = callback(error, result)
        if inspect.isawaitable(reported):
            await reported
        return result
