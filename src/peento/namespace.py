"""Shared dotted-path namespace.

The namespace is the convention-based meeting point between the host and its
plugins: a tree of nested dicts addressed by dotted paths such as
``config.session.secret`` or ``plugin.blog``. Any component may read or
write any path. Reading a path that was never written returns ``None`` (or
the given default); it never raises.

Conventional top-level prefixes:

==============  ===============================================
``app``         the :class:`~peento.application.Application`
``config``      the configuration as nested dicts
``plugin``      ``plugin.<name>`` -> :class:`~peento.plugins.PluginHandle`
``call``        ``call.<name>`` -> registered call handlers
``filter``      ``filter.<name>`` -> template filters
``locals``      ``locals.<name>`` -> lazily computed template locals
``view``        explicit view registry (template name -> file path)
``db``          the database engine once the application started
==============  ===============================================
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Iterator, Optional

_MISSING = object()


class Namespace:
    """Hierarchical mapping from dotted string paths to arbitrary values.

    Example::

        ns = Namespace()
        ns.set("config.port", 3000)
        ns.get("config")          # {"port": 3000}
        ns("config.port")         # 3000
        ns("config.debug", True)  # write shorthand
        ns.get("nothing.here")    # None
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._root: dict[str, Any] = {}
        for path, value in (initial or {}).items():
            self.set(path, value)

    @staticmethod
    def _split(path: str) -> list[str]:
        parts = [p for p in path.split(".") if p]
        if not parts:
            raise ValueError(f"Invalid namespace path: {path!r}")
        return parts

    def _lookup(self, path: str) -> Any:
        node: Any = self._root
        for part in self._split(path):
            if isinstance(node, MutableMapping) and part in node:
                node = node[part]
            else:
                return _MISSING
        return node

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at *path*, or *default* if nothing was written there."""
        value = self._lookup(path)
        return default if value is _MISSING else value

    def set(self, path: str, value: Any) -> None:
        """Write *value* at *path*, creating intermediate mappings as needed.

        An intermediate that is not a mapping is replaced by one.
        """
        parts = self._split(path)
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, MutableMapping):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def setdefault(self, path: str, value: Any) -> Any:
        """Write *value* at *path* only if absent; return the stored value."""
        current = self._lookup(path)
        if current is _MISSING:
            self.set(path, value)
            return value
        return current

    def require(self, path: str) -> Any:
        """Return the value at *path*.

        Raises:
            KeyError: If nothing was written at *path*.
        """
        value = self._lookup(path)
        if value is _MISSING:
            raise KeyError(f"Namespace path '{path}' is not set")
        return value

    def has(self, path: str) -> bool:
        """Whether a value was written at *path*."""
        return self._lookup(path) is not _MISSING

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.has(path)

    def __call__(self, path: str, value: Any = _MISSING) -> Any:
        """Read ``ns(path)`` or write ``ns(path, value)``."""
        if value is _MISSING:
            return self.get(path)
        self.set(path, value)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self._root)

    def __repr__(self) -> str:
        return f"Namespace({sorted(self._root)!r})"
