"""Resource resolution across plugin-contributed search roots.

Every resource class (``"view"`` for templates, ``"asset"`` for static
files) has an ordered list of search roots and an explicit registry of
pre-mapped names. :meth:`ResourceResolver.resolve` consults the registry
first; only in development mode does it go on to scan the roots, in
registration order, returning the first file that exists.

Production mode never touches the filesystem at resolve time. The host calls
:meth:`ResourceResolver.snapshot` once during startup instead, so that every
file present under the roots at that moment is registered up front.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

VIEW = "view"
ASSET = "asset"
DEFAULT_CLASSES = (VIEW, ASSET)


def _normalise(name: str) -> Optional[str]:
    """Strip leading slashes and reject names that escape their root."""
    name = name.replace("\\", "/").lstrip("/")
    if not name:
        return None
    parts = PurePosixPath(name).parts
    if ".." in parts:
        return None
    return "/".join(parts)


class ResourceResolver:
    """Maps logical resource names to files via registry and ordered roots.

    Args:
        development: When ``True``, unregistered names are looked up by
            scanning the search roots on every call.
        classes: The resource classes this resolver knows about.

    Example::

        resolver = ResourceResolver(development=True)
        resolver.add_root("view", "/srv/plugins/blog/view")
        resolver.add_root("view", "/srv/plugins/theme/view")
        resolver.resolve("view", "post.html")
        # -> Path("/srv/plugins/blog/view/post.html") if it exists there
    """

    def __init__(self, development: bool = False, classes: Iterable[str] = DEFAULT_CLASSES) -> None:
        self.development = development
        self._roots: dict[str, list[Path]] = {c: [] for c in classes}
        self._registry: dict[str, dict[str, Path]] = {c: {} for c in classes}

    def _check(self, resource_class: str) -> None:
        if resource_class not in self._roots:
            raise KeyError(f"Unknown resource class '{resource_class}'")

    # ------------------------------------------------------------------
    # Roots and registry
    # ------------------------------------------------------------------

    def add_root(self, resource_class: str, path: str | os.PathLike[str]) -> None:
        """Append a search root for *resource_class*. Duplicates are kept."""
        self._check(resource_class)
        root = Path(path)
        self._roots[resource_class].append(root)
        logger.debug("add %s root: %s", resource_class, root)

    def roots(self, resource_class: str) -> list[Path]:
        """Return a copy of the ordered search roots for *resource_class*."""
        self._check(resource_class)
        return list(self._roots[resource_class])

    def register(self, resource_class: str, name: str, location: str | os.PathLike[str]) -> None:
        """Map *name* explicitly to *location*, overriding any root match."""
        self._check(resource_class)
        key = _normalise(name)
        if key is None:
            raise ValueError(f"Invalid resource name: {name!r}")
        self._registry[resource_class][key] = Path(location)

    def registry(self, resource_class: str) -> dict[str, Path]:
        """Return the live explicit registry for *resource_class*."""
        self._check(resource_class)
        return self._registry[resource_class]

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, resource_class: str, name: str) -> Optional[Path]:
        """Resolve *name* to a file location, or ``None`` if nothing matches.

        The explicit registry wins. In development mode the roots are then
        scanned in registration order; in production mode unregistered names
        never resolve.
        """
        self._check(resource_class)
        key = _normalise(name)
        if key is None:
            return None

        location = self._registry[resource_class].get(key)
        if location is not None:
            return Path(location)

        if not self.development:
            return None

        for root in self._roots[resource_class]:
            candidate = root / key
            if candidate.is_file():
                return candidate
        return None

    def resolve_or_default(self, resource_class: str, name: str, default_name: str) -> Optional[Path]:
        """Resolve *name*, falling back to the registered *default_name* on a miss.

        The miss is logged rather than raised so callers can keep serving.
        """
        location = self.resolve(resource_class, name)
        if location is None:
            logger.warning("%s not found: %s (using %s)", resource_class, name, default_name)
            default = self._registry[resource_class].get(default_name)
            location = Path(default) if default is not None else None
        return location

    def snapshot(self, resource_class: str) -> int:
        """Register every file currently under the roots of *resource_class*.

        Names already in the registry are left alone, and when several roots
        hold the same relative name the earliest root wins, matching what
        :meth:`resolve` would return in development mode.

        Returns:
            The number of names newly registered.
        """
        self._check(resource_class)
        registry = self._registry[resource_class]
        added = 0
        for root in self._roots[resource_class]:
            if not root.is_dir():
                continue
            for path in sorted(root.rglob("*")):
                if not path.is_file():
                    continue
                key = path.relative_to(root).as_posix()
                if key not in registry:
                    registry[key] = path
                    added += 1
        logger.debug("snapshot %s: %d names registered", resource_class, added)
        return added
