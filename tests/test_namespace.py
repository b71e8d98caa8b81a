"""Tests for peento.namespace -- dotted-path reads, writes, and defaults."""

from __future__ import annotations

import pytest

from peento.namespace import Namespace


class TestReadWrite:
    def test_set_then_get(self) -> None:
        ns = Namespace()
        ns.set("config.port", 3000)
        assert ns.get("config.port") == 3000
        assert ns.get("config") == {"port": 3000}

    def test_unset_path_reads_none(self) -> None:
        ns = Namespace()
        assert ns.get("nothing.here") is None
        assert ns.get("nothing.here", "fallback") == "fallback"

    def test_read_through_non_mapping_is_missing(self) -> None:
        ns = Namespace()
        ns.set("config.port", 3000)
        assert ns.get("config.port.value") is None

    def test_set_replaces_non_mapping_intermediate(self) -> None:
        ns = Namespace()
        ns.set("a", 1)
        ns.set("a.b", 2)
        assert ns.get("a") == {"b": 2}

    def test_call_shorthand(self) -> None:
        ns = Namespace()
        assert ns("app.name", "blog") == "blog"
        assert ns("app.name") == "blog"

    def test_none_is_a_stored_value(self) -> None:
        ns = Namespace()
        ns.set("db", None)
        assert ns.has("db")
        assert "db" in ns

    def test_initial_values(self) -> None:
        ns = Namespace({"config.debug": True, "app": "x"})
        assert ns.get("config.debug") is True
        assert sorted(ns) == ["app", "config"]

    def test_empty_path_rejected(self) -> None:
        ns = Namespace()
        with pytest.raises(ValueError, match="Invalid namespace path"):
            ns.set("", 1)
        with pytest.raises(ValueError):
            ns.get("..")


class TestRequireAndDefaults:
    def test_require_missing_raises(self) -> None:
        ns = Namespace()
        with pytest.raises(KeyError, match="plugin.blog"):
            ns.require("plugin.blog")

    def test_require_present(self) -> None:
        ns = Namespace({"plugin.blog": "handle"})
        assert ns.require("plugin.blog") == "handle"

    def test_setdefault_keeps_existing(self) -> None:
        ns = Namespace({"view.index": "/a"})
        assert ns.setdefault("view.index", "/b") == "/a"
        assert ns.setdefault("view.about", "/c") == "/c"
        assert ns.get("view.about") == "/c"

    def test_contains_rejects_non_strings(self) -> None:
        assert 42 not in Namespace()
