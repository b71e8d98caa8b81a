"""The scoped handle every plugin receives during attach.

A plugin is any module exporting ``setup(namespace, plugin, logger)``. The
``plugin`` argument is a :class:`PluginHandle`: the plugin's name and
directory, a logger named after it, and the methods it uses to contribute
capabilities to the application.

The plugin lifecycle is:

1. **Uninitialized** -- the :class:`~peento.plugins.manager.PluginManager`
   created the handle.
2. **Attached** -- ``setup()`` ran; the plugin registered its calls, hooks,
   filters, locals, and routes. Its ``view/`` and ``asset/`` directories
   are now search roots.
3. **Initialized** -- once every plugin is attached, the host calls
   :meth:`PluginHandle.init`, which runs the callbacks registered with
   :meth:`PluginHandle.on_init` in order.

Example:
    A minimal plugin module::

        def setup(ns, plugin, logger):
            @plugin.before("greet")
            def shout(payload):
                return {**payload, "name": payload["name"].upper()}

            plugin.call("greet", lambda payload: "Hello, " + payload["name"])

            @plugin.on_init
            def ready():
                logger.info("greeter ready")
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from peento.namespace import Namespace
from peento.pipeline import CallRegistry, Handler, HookRegistry
from peento.rendering import TemplateRegistry
from peento.routes import Route, RouteTable

SetupFunction = Callable[[Namespace, "PluginHandle", logging.Logger], None]
"""Signature of a plugin's ``setup`` function."""


class PluginState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    ATTACHED = "attached"
    INITIALIZED = "initialized"


@dataclass
class Registries:
    """The typed registries plugins contribute to, shared by all handles."""

    calls: CallRegistry = field(default_factory=CallRegistry)
    hooks: HookRegistry = field(default_factory=HookRegistry)
    templates: TemplateRegistry = field(default_factory=TemplateRegistry)
    routes: RouteTable = field(default_factory=RouteTable)

    def absorb(self, other: Registries) -> None:
        """Append everything registered in *other*, keeping its order."""
        for name, handler in other.calls.items():
            self.calls.register(name, handler)
        for (stage, name), pipe in other.hooks.items():
            target = self.hooks.pipe(stage, name)
            for hook in pipe:
                target.add(hook)
        self.templates.filters.update(other.templates.filters)
        self.templates.locals.update(other.templates.locals)
        for route in other.routes:
            self.routes.add(route)


class PluginHandle:
    """Per-plugin view onto the application's registries.

    Every registration method can be called directly or used as a
    decorator::

        plugin.call("list_posts", list_posts)

        @plugin.call("list_posts")
        async def list_posts(payload): ...

    Args:
        name: Unique plugin name.
        directory: Directory holding the plugin's ``view/`` and ``asset/``.
        namespace: The shared namespace.
        registries: Where registrations go. With *staged*, these are private
            to the handle until :meth:`commit`.
        staged: Hold namespace writes back until :meth:`commit`, so that a
            plugin whose ``setup`` fails leaves nothing behind.
    """

    def __init__(
        self,
        name: str,
        directory: Path,
        namespace: Namespace,
        registries: Registries,
        staged: bool = False,
    ) -> None:
        self.name = name
        self.directory = Path(directory)
        self.namespace = namespace
        self.registries = registries
        self.state = PluginState.UNINITIALIZED
        self.logger = logging.getLogger(f"peento.plugin.{name}")
        self._init_callbacks: list[Callable[[], Any]] = []
        self._staged = staged
        self._exports: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"PluginHandle({self.name!r}, state={self.state.value})"

    def _export(self, path: str, value: Any) -> None:
        if self._staged:
            self._exports[path] = value
        else:
            self.namespace.set(path, value)

    def commit(self, registries: Registries) -> None:
        """Publish staged registrations into the shared *registries* and namespace.

        Later registrations, e.g. from init callbacks, go straight to
        *registries*.
        """
        registries.absorb(self.registries)
        self.registries = registries
        self._staged = False
        for path, value in self._exports.items():
            self.namespace.set(path, value)
        self._exports.clear()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def call(self, name: str, fn: Optional[Handler] = None) -> Any:
        """Register the handler for call *name*; the last registration wins."""
        def register(handler: Handler) -> Handler:
            self.registries.calls.register(name, handler)
            self._export(f"call.{name}", handler)
            self.logger.debug("register call: %s", name)
            return handler

        return register(fn) if fn is not None else register

    def before(self, name: str, fn: Optional[Handler] = None) -> Any:
        """Append a hook to the ``before.<name>`` pipe."""
        pipe = self.registries.hooks.before(name)
        return pipe.add(fn) if fn is not None else pipe.add

    def after(self, name: str, fn: Optional[Handler] = None) -> Any:
        """Append a hook to the ``after.<name>`` pipe."""
        pipe = self.registries.hooks.after(name)
        return pipe.add(fn) if fn is not None else pipe.add

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def filter(self, name: str, fn: Optional[Callable[..., Any]] = None) -> Any:
        """Register a template filter."""
        def register(func: Callable[..., Any]) -> Callable[..., Any]:
            self.registries.templates.add_filter(name, func)
            self._export(f"filter.{name}", func)
            return func

        return register(fn) if fn is not None else register

    def locals(self, name: str, fn: Optional[Callable[..., Any]] = None) -> Any:
        """Register a template local computed per render by ``fn(render_context)``."""
        def register(func: Callable[..., Any]) -> Callable[..., Any]:
            self.registries.templates.add_locals(name, func)
            self._export(f"locals.{name}", func)
            return func

        return register(fn) if fn is not None else register

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def route(self, method: str | list[str], path: str, endpoint: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        """Register a request handler, added to the HTTP app at startup."""
        methods = [method] if isinstance(method, str) else list(method)

        def register(func: Callable[..., Any]) -> Callable[..., Any]:
            self.registries.routes.add(
                Route([m.upper() for m in methods], path, func, plugin=self.name, options=options)
            )
            return func

        return register(endpoint) if endpoint is not None else register

    def get(self, path: str, **options: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        return self.route("GET", path, **options)

    def post(self, path: str, **options: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        return self.route("POST", path, **options)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def on_init(self, fn: Callable[[], Any]) -> Callable[[], Any]:
        """Defer *fn* until every plugin has attached."""
        self._init_callbacks.append(fn)
        return fn

    def init(self) -> None:
        """Run the deferred init callbacks in registration order."""
        for callback in self._init_callbacks:
            callback()
        self.state = PluginState.INITIALIZED
