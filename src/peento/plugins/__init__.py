"""Plugin system for peento -- resolution, attach, and lifecycle.

A plugin is a module exporting ``setup(namespace, plugin, logger)``. The
host resolves plugin specs through ordered load strategies, runs each
``setup`` with a scoped :class:`PluginHandle`, and initialises every plugin
once all of them are attached.

Key classes:

* :class:`PluginHandle` -- The handle a plugin registers its calls, hooks,
  filters, locals, and routes through.
* :class:`PluginManager` -- Attaches plugins and runs their lifecycle.
* :class:`PluginSource` -- A resolved plugin spec.

Example:
    Typical usage from the host::

        from peento.plugins import PluginManager

        manager = PluginManager(namespace, resolver)
        manager.register("./plugins/blog")
        manager.initialize_all()
"""

from peento.plugins.base import PluginHandle, PluginState, Registries
from peento.plugins.loader import ENTRY_POINT_GROUP, PluginSource, resolve_plugin
from peento.plugins.manager import PluginManager

__all__ = [
    "ENTRY_POINT_GROUP",
    "PluginHandle",
    "PluginManager",
    "PluginSource",
    "PluginState",
    "Registries",
    "resolve_plugin",
]
