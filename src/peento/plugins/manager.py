"""Plugin manager -- attach, initialise, and look up plugins.

This module contains :class:`PluginManager`, the coordinator for the plugin
lifecycle. Registration resolves a plugin spec through
:func:`~peento.plugins.loader.resolve_plugin`, runs the plugin's ``setup``
synchronously (the *attach* phase), and adds the plugin's ``view/`` and
``asset/`` directories as search roots. Once every plugin is attached, the
host calls :meth:`PluginManager.initialize_all`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Optional

from peento import output
from peento.exceptions import PluginAttachError, PluginError
from peento.namespace import Namespace
from peento.plugins.base import PluginHandle, PluginState, Registries
from peento.plugins.loader import LoadStrategy, resolve_plugin
from peento.resources import ASSET, VIEW, ResourceResolver

logger = logging.getLogger(__name__)

NO_PLUGIN_WARNING = "no plugin was loaded."


class PluginManager:
    """Registers plugins and drives their two-phase lifecycle.

    Example:
        Typical usage::

            manager = PluginManager(namespace, resolver, registries)
            manager.register("./plugins/blog")
            manager.register("greeter", setup)
            manager.initialize_all()

    Args:
        namespace: The shared namespace passed to every ``setup``.
        resolver: Receives each plugin's view and asset roots.
        registries: The registries plugin handles write into.
        strategies: Load strategies (default: all of them, in order).
    """

    def __init__(
        self,
        namespace: Namespace,
        resolver: ResourceResolver,
        registries: Optional[Registries] = None,
        strategies: Optional[list[LoadStrategy]] = None,
    ) -> None:
        self.namespace = namespace
        self.resolver = resolver
        self.registries = registries or Registries()
        self._strategies = strategies
        self._plugins: dict[str, PluginHandle] = {}

    # ------------------------------------------------------------------
    # Attach
    # ------------------------------------------------------------------

    def register(self, spec: Any, setup: Optional[Callable[..., Any]] = None) -> PluginHandle:
        """Resolve and attach a plugin.

        Args:
            spec: A setup function, path, package name, or entry-point
                name; the plugin name when *setup* is given.
            setup: Explicit setup function.

        Returns:
            The attached plugin's handle.

        Raises:
            PluginNotFoundError: If *spec* does not resolve.
            PluginError: If a plugin with the same name is already loaded.
            PluginAttachError: If the plugin's setup raised.
        """
        source = resolve_plugin(spec, setup, strategies=self._strategies)
        name = source.name
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already loaded")

        # registrations stay private to the handle until setup succeeds
        plugin = PluginHandle(name, source.directory, self.namespace, Registries(), staged=True)
        try:
            source.setup(self.namespace, plugin, plugin.logger)
        except Exception as exc:
            raise PluginAttachError(name, exc) from exc

        plugin.commit(self.registries)
        self.namespace.set(f"plugin.{name}", plugin)
        plugin.state = PluginState.ATTACHED
        self._plugins[name] = plugin
        self.resolver.add_root(ASSET, plugin.directory / "asset")
        self.resolver.add_root(VIEW, plugin.directory / "view")
        logger.info("Attached plugin '%s' from %s (%s)", name, plugin.directory, source.origin)
        return plugin

    # ------------------------------------------------------------------
    # Initialise
    # ------------------------------------------------------------------

    def initialize_all(self) -> None:
        """Call ``init()`` on every plugin in registration order.

        Exceptions from a plugin's init propagate to the caller. With no
        plugin registered a warning is printed and the application carries
        on without any calls, hooks, or views.
        """
        logger.debug("initialize plugins")
        if not self._plugins:
            logger.warning(NO_PLUGIN_WARNING)
            output.warning(NO_PLUGIN_WARNING)
            return
        for plugin in self._plugins.values():
            plugin.init()
            logger.debug("initialized plugin '%s'", plugin.name)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def get(self, name: str) -> PluginHandle:
        """Return the plugin registered as *name*.

        Raises:
            PluginError: If no plugin with that name is loaded.
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginError(f"Plugin '{name}' is not loaded") from None

    def list_plugins(self) -> list[dict[str, str]]:
        """Name, state, and directory of every plugin, in registration order."""
        return [
            {
                "name": plugin.name,
                "state": plugin.state.value,
                "directory": str(plugin.directory),
            }
            for plugin in self._plugins.values()
        ]

    def __iter__(self) -> Iterator[PluginHandle]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins
