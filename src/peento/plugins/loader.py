"""Plugin resolution -- turning a plugin spec into a setup function.

``Application.use()`` accepts several kinds of plugin spec. Each kind is
handled by one strategy, tried in this order:

1. :class:`CallableStrategy` -- the plugin spec is the setup function itself.
2. :class:`LocalPathStrategy` -- a ``.py`` file, a package directory, or a
   directory holding a ``plugin.py``, relative to the working directory
   (``./plugins/blog``). A file named ``plugin.py`` takes the name of its
   directory.
3. :class:`PackageStrategy` -- an installed module named ``peento_<name>``
   (``blog-comments`` -> ``peento_blog_comments``).
4. :class:`EntryPointStrategy` -- an entry point in the ``peento.plugins``
   group, so distributions can register plugins in their
   ``pyproject.toml``::

       [project.entry-points."peento.plugins"]
       comments = "my_package.comments:setup"

A strategy returns a :class:`PluginSource` when it recognises the plugin spec and
``None`` when it does not. A spec that a strategy recognises but cannot load
(the module fails to import, or exports no ``setup``) raises
:class:`~peento.exceptions.PluginNotFoundError` right away.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import importlib.util
import inspect
import logging
import os
import re
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Optional, Protocol, Sequence

from peento.exceptions import PluginError, PluginNotFoundError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "peento.plugins"
"""The entry-point group name used for plugin discovery."""

PACKAGE_PREFIX = "peento_"
"""Prefix of conventionally named plugin packages."""

_PACKAGE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class PluginSource:
    """A resolved plugin, ready to attach.

    Attributes:
        name: The name the plugin is registered under.
        setup: The plugin's ``setup(namespace, plugin, logger)`` function.
        directory: Directory holding the plugin's ``view/`` and ``asset/``.
        origin: Label of the strategy that resolved it.
    """

    name: str
    setup: Callable[..., Any]
    directory: Path
    origin: str


class LoadStrategy(Protocol):
    label: str

    def load(self, spec: Any, name: Optional[str]) -> Optional[PluginSource]:
        ...  # pragma: no cover - runtime interface


def _directory_of(obj: Any) -> Path:
    """Directory of the file that defines *obj* (cwd for built-ins)."""
    try:
        return Path(inspect.getfile(obj)).resolve().parent
    except TypeError:
        return Path.cwd()


def _setup_from(module: ModuleType, name: str, origin: str) -> PluginSource:
    setup = getattr(module, "setup", None)
    if not callable(setup):
        raise PluginNotFoundError(
            f"Plugin '{name}' ({module.__name__}) does not export a setup function"
        )
    return PluginSource(name, setup, _directory_of(module), origin)


class CallableStrategy:
    """The plugin spec is the setup function."""

    label = "callable"

    def load(self, spec: Any, name: Optional[str]) -> Optional[PluginSource]:
        if not callable(spec):
            return None
        if name is None:
            base = getattr(spec, "__name__", "plugin").strip("<>")
            name = f"{base}-{secrets.token_hex(4)}"
        return PluginSource(name, spec, _directory_of(spec), self.label)


class LocalPathStrategy:
    """A plugin file or package directory on disk.

    Args:
        base_dir: Directory relative specs are resolved against
            (default: the working directory at load time).
    """

    label = "local path"

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = base_dir

    def _entry_file(self, spec: str | os.PathLike[str]) -> Optional[Path]:
        path = Path(spec).expanduser()
        if not path.is_absolute():
            path = (self.base_dir or Path.cwd()) / path
        if path.is_dir():
            for entry in (path / "__init__.py", path / "plugin.py"):
                if entry.is_file():
                    return entry
            return None
        if path.is_file() and path.suffix == ".py":
            return path
        with_suffix = path.with_name(path.name + ".py")
        if with_suffix.is_file():
            return with_suffix
        return None

    def load(self, spec: Any, name: Optional[str]) -> Optional[PluginSource]:
        if not isinstance(spec, (str, os.PathLike)):
            return None
        entry = self._entry_file(spec)
        if entry is None:
            return None

        entry = entry.resolve()
        is_package = entry.name == "__init__.py"
        # plugin.py is named after its directory, like a package
        stem = entry.parent.name if is_package or entry.name == "plugin.py" else entry.stem
        name = name or stem
        module_name = f"peento_plugin_{re.sub(r'[^A-Za-z0-9_]', '_', stem)}_{secrets.token_hex(4)}"

        module_spec = importlib.util.spec_from_file_location(
            module_name,
            entry,
            submodule_search_locations=[str(entry.parent)] if is_package else None,
        )
        if module_spec is None or module_spec.loader is None:
            raise PluginNotFoundError(f"Could not load plugin '{name}' from {entry}")

        module = importlib.util.module_from_spec(module_spec)
        sys.modules[module_name] = module
        try:
            module_spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise PluginNotFoundError(f"Plugin '{name}' at {entry} failed to import: {exc}") from exc
        return _setup_from(module, name, self.label)


class PackageStrategy:
    """An installed ``peento_<name>`` module."""

    label = "package"

    def load(self, spec: Any, name: Optional[str]) -> Optional[PluginSource]:
        if not isinstance(spec, str) or not _PACKAGE_NAME_RE.match(spec):
            return None
        module_name = PACKAGE_PREFIX + spec.replace("-", "_")
        if importlib.util.find_spec(module_name) is None:
            return None
        try:
            module = importlib.import_module(module_name)
        except Exception as exc:
            raise PluginNotFoundError(f"Plugin package '{module_name}' failed to import: {exc}") from exc
        return _setup_from(module, name or spec, self.label)


class EntryPointStrategy:
    """An entry point in the ``peento.plugins`` group."""

    label = "entry point"

    def __init__(self, group: str = ENTRY_POINT_GROUP) -> None:
        self.group = group

    def load(self, spec: Any, name: Optional[str]) -> Optional[PluginSource]:
        if not isinstance(spec, str):
            return None
        matches = [ep for ep in importlib.metadata.entry_points(group=self.group) if ep.name == spec]
        if not matches:
            return None
        try:
            target = matches[0].load()
        except Exception as exc:
            raise PluginNotFoundError(f"Plugin entry point '{spec}' failed to load: {exc}") from exc
        if isinstance(target, ModuleType):
            return _setup_from(target, name or spec, self.label)
        if not callable(target):
            raise PluginNotFoundError(f"Plugin entry point '{spec}' is not a setup function")
        return PluginSource(name or spec, target, _directory_of(target), self.label)


def default_strategies() -> list[LoadStrategy]:
    return [CallableStrategy(), LocalPathStrategy(), PackageStrategy(), EntryPointStrategy()]


def resolve_plugin(
    spec: Any,
    setup: Optional[Callable[..., Any]] = None,
    name: Optional[str] = None,
    strategies: Optional[Sequence[LoadStrategy]] = None,
) -> PluginSource:
    """Resolve *spec* to a :class:`PluginSource`.

    Args:
        spec: A setup function, a path, a package suffix, or an entry-point
            name. When *setup* is given, *spec* is only the plugin name.
        setup: Explicit setup function.
        name: Name override.
        strategies: Strategies to try, in order (default:
            :func:`default_strategies`).

    Raises:
        PluginNotFoundError: If no strategy resolves *spec*.
    """
    if setup is not None:
        if not callable(setup):
            raise PluginError(f"Setup for plugin '{spec}' must be callable")
        return PluginSource(name or str(spec), setup, _directory_of(setup), CallableStrategy.label)

    tried: list[str] = []
    for strategy in strategies if strategies is not None else default_strategies():
        source = strategy.load(spec, name)
        if source is not None:
            logger.debug("plugin '%s' resolved by %s", source.name, strategy.label)
            return source
        tried.append(strategy.label)

    raise PluginNotFoundError(f"Plugin '{spec}' not found (tried: {', '.join(tried)})")
