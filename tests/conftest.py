"""Shared test fixtures for peento.

Provides reusable fixtures for building plugin directories on disk,
creating applications in development or production mode, and keeping the
global output state clean between tests. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from peento.application import Application
from peento.output import reset_output

REPO_ROOT = Path(__file__).parent.parent
EXAMPLE_PLUGIN = REPO_ROOT / "plugins" / "example_plugin" / "plugin.py"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager's Rich console keeps a reference to the sys.stderr it
    was created with. When capsys or the CliRunner swap that stream out,
    the reference goes stale; resetting forces a fresh manager on next use.
    """
    reset_output()
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Plugin directories on disk
# ---------------------------------------------------------------------------


@pytest.fixture
def make_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a package-style plugin under ``tmp_path``.

    Args:
        name: Directory name of the plugin package.
        source: Body of ``__init__.py`` (dedented).
        views: ``{relative name: template source}`` written under ``view/``.
        assets: ``{relative name: content}`` written under ``asset/``.

    Returns:
        The plugin directory.
    """

    def _make(
        name: str,
        source: str = "def setup(ns, plugin, logger):\n    pass\n",
        views: Optional[dict[str, str]] = None,
        assets: Optional[dict[str, str]] = None,
    ) -> Path:
        directory = tmp_path / "plugins" / name
        directory.mkdir(parents=True)
        (directory / "__init__.py").write_text(textwrap.dedent(source), encoding="utf-8")
        for sub, files in (("view", views or {}), ("asset", assets or {})):
            for rel, content in files.items():
                target = directory / sub / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
        return directory

    return _make


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


@pytest.fixture
def example_plugin() -> Path:
    """Path to the bundled example plugin (a greeter with a page and a stylesheet)."""
    return EXAMPLE_PLUGIN


@pytest.fixture
def dev_app() -> Application:
    """An application in development mode (live view lookup, no template cache)."""
    return Application({"debug": True})


@pytest.fixture
def prod_app() -> Application:
    """An application in production mode."""
    return Application({"debug": False})


@pytest.fixture
def greeter_setup() -> Callable[[Any, Any, Any], None]:
    """Setup function of the canonical greeter plugin.

    Registers a ``before.greet`` hook upper-casing ``payload["name"]`` and a
    ``greet`` call returning ``"Hello, " + payload["name"]``.
    """

    def setup(ns: Any, plugin: Any, logger: Any) -> None:
        plugin.before("greet", lambda payload: {**payload, "name": payload["name"].upper()})
        plugin.call("greet", lambda payload: "Hello, " + payload["name"])

    return setup
