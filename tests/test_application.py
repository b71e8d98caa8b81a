"""End-to-end tests for peento.application -- composition, calls, serving."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from peento.application import Application
from peento.exceptions import CallError, CallNotFoundError, HookError, OperationError, PeentoError
from peento.models import AppConfig


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_defaults(self) -> None:
        app = Application()
        assert app.config.port == 3000
        assert app.debug is False
        assert app.ns("app") is app
        assert app.ns("config.port") == 3000
        assert app.ns("config.session.cookie_name") == "peento.session"

    def test_partial_config_merged_over_defaults(self) -> None:
        app = Application({"session": {"secret": "s3cret"}, "blog": {"per_page": 5}})
        assert app.config.session.secret == "s3cret"
        assert app.config.session.cookie_name == "peento.session"
        assert app.ns("config.blog.per_page") == 5

    def test_accepts_model(self) -> None:
        config = AppConfig(port=8080, debug=True)
        app = Application(config)
        assert app.config is config
        assert app.resolver.development is True


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------


class TestCall:
    def test_greet(self, dev_app: Application, greeter_setup: Any) -> None:
        dev_app.use("greeter", greeter_setup)
        dev_app.start()
        assert asyncio.run(dev_app.call("greet", {"name": "ann"})) == "Hello, ANN"

    def test_example_plugin(self, dev_app: Application, example_plugin: Path) -> None:
        dev_app.use(str(example_plugin))
        dev_app.start()
        assert asyncio.run(dev_app.call("greet", {"name": "ann"})) == "Hello, ANN"
        assert dev_app.plugins.get("example_plugin").directory == example_plugin.parent.resolve()

    def test_unregistered_call_raises(self, dev_app: Application) -> None:
        with pytest.raises(CallNotFoundError):
            asyncio.run(dev_app.call("nothing"))

    def test_callback_success(self, dev_app: Application, greeter_setup: Any) -> None:
        dev_app.use("greeter", greeter_setup)
        reports: list[tuple[Optional[CallError], Any]] = []
        result = asyncio.run(
            dev_app.call("greet", {"name": "bo"}, lambda err, payload: reports.append((err, payload)))
        )
        assert result == "Hello, BO"
        assert reports == [(None, "Hello, BO")]

    def test_callback_failure(self, dev_app: Application) -> None:
        boom = RuntimeError("closed")

        def setup(ns: Any, plugin: Any, logger: Any) -> None:
            plugin.before("save", lambda p: {**p, "checked": True})

            @plugin.call("save")
            def save(payload: Any) -> Any:
                raise boom

        dev_app.use("store", setup)
        reports: list[Any] = []

        async def report(err: Optional[CallError], payload: Any) -> None:
            reports.append((err, payload))

        result = asyncio.run(dev_app.call("save", {"id": 1}, report))
        (err, payload), = reports
        assert isinstance(err, OperationError)
        assert err.error is boom
        assert payload == {"id": 1, "checked": True}
        assert result == payload

    def test_callback_reports_missing_call(self, dev_app: Application) -> None:
        reports: list[Any] = []
        asyncio.run(dev_app.call("ghost", {"x": 1}, lambda err, payload: reports.append((err, payload))))
        assert isinstance(reports[0][0], CallNotFoundError)
        assert reports[0][1] == {"x": 1}

    def test_call_handlers_in_namespace(self, dev_app: Application, greeter_setup: Any) -> None:
        dev_app.use("greeter", greeter_setup)
        handler = dev_app.ns.get("call.greet")
        assert handler({"name": "x"}) == "Hello, x"

    def test_call_set_only_in_namespace(self, dev_app: Application) -> None:
        def setup(ns: Any, plugin: Any, logger: Any) -> None:
            plugin.before("echo", lambda p: p + 1)
            ns.set("call.echo", lambda p: p * 10)

        dev_app.use("echoer", setup)
        dev_app.start()
        assert asyncio.run(dev_app.call("echo", 1)) == 20

    def test_namespace_replaces_registered_handler(self, dev_app: Application, greeter_setup: Any) -> None:
        dev_app.use("greeter", greeter_setup)
        dev_app.use("override", lambda ns, plugin, logger: ns.set("call.greet", lambda p: "Hi, " + p["name"]))
        assert asyncio.run(dev_app.call("greet", {"name": "ann"})) == "Hi, ANN"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_start_opens_database(self, dev_app: Application) -> None:
        dev_app.use("noop", lambda ns, plugin, logger: None)
        dev_app.start()
        assert dev_app.db is not None
        assert dev_app.ns.get("db") is dev_app.db
        assert str(dev_app.db.url) == "sqlite://"

    def test_start_twice(self, dev_app: Application) -> None:
        dev_app.start()
        with pytest.raises(PeentoError, match="already started"):
            dev_app.start()

    def test_use_after_start(self, dev_app: Application, greeter_setup: Any) -> None:
        dev_app.start()
        with pytest.raises(PeentoError, match="after the application started"):
            dev_app.use("greeter", greeter_setup)

    def test_start_listeners(self, dev_app: Application) -> None:
        seen: list[Any] = []
        dev_app.on_start(lambda app: seen.append(app.started))
        dev_app.start()
        assert seen == [True]

    def test_init_sees_every_plugin(self, dev_app: Application) -> None:
        seen: list[Any] = []

        def first(ns: Any, plugin: Any, logger: Any) -> None:
            plugin.on_init(lambda: seen.append(ns.has("plugin.second")))

        dev_app.use("first", first)
        dev_app.use("second", lambda ns, plugin, logger: None)
        dev_app.start()
        assert seen == [True]

    def test_no_plugins_warns_and_serves(
        self, prod_app: Application, capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="peento.plugins.manager"):
            prod_app.start()
        assert "no plugin was loaded." in capsys.readouterr().err
        assert "no plugin was loaded." in caplog.text

        client = TestClient(prod_app.http)
        assert client.get("/anything").status_code == 404
        with pytest.raises(CallNotFoundError):
            asyncio.run(prod_app.call("greet", {"name": "ann"}))

    def test_listen_uses_configured_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict[str, Any]] = []
        monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: calls.append(kwargs))
        app = Application({"port": 8123})
        app.serve()
        app_override = Application()
        app_override.listen(9000)
        assert calls[0]["port"] == 8123
        assert calls[0]["host"] == "127.0.0.1"
        assert calls[1]["port"] == 9000
        assert app.started is True


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class TestHTTP:
    def test_example_page(self, dev_app: Application, example_plugin: Path) -> None:
        dev_app.use(str(example_plugin))
        dev_app.start()
        response = TestClient(dev_app.http).get("/hello/ann")
        assert response.status_code == 200
        assert 'data-view="hello"' in response.text
        assert "Hello, ANN!" in response.text
        assert "<title>peento</title>" in response.text

    def test_example_page_production(self, prod_app: Application, example_plugin: Path) -> None:
        prod_app.use(str(example_plugin))
        prod_app.start()
        response = TestClient(prod_app.http).get("/hello/ann")
        assert "Hello, ANN!" in response.text

    @pytest.mark.parametrize("debug", [True, False])
    def test_assets(self, debug: bool, example_plugin: Path) -> None:
        app = Application({"debug": debug})
        app.use(str(example_plugin))
        app.start()
        client = TestClient(app.http)
        response = client.get("/assets/example.css")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/css")
        assert client.get("/assets/missing.css").status_code == 404

    def test_call_errors_map_to_status(self, dev_app: Application) -> None:
        def setup(ns: Any, plugin: Any, logger: Any) -> None:
            app = ns("app")

            @plugin.before("fail")
            def reject(payload: Any) -> Any:
                raise PermissionError("nope")

            plugin.call("fail", lambda p: p)

            @plugin.get("/ghost")
            async def ghost():
                return await app.call("ghost")

            @plugin.get("/fail")
            async def fail():
                return await app.call("fail", {})

        dev_app.use("errors", setup)
        dev_app.start()
        client = TestClient(dev_app.http)

        ghost = client.get("/ghost")
        assert ghost.status_code == 404
        assert "ghost" in ghost.json()["error"]

        fail = client.get("/fail")
        assert fail.status_code == 500
        assert "before.fail hook failed" in fail.json()["error"]

    def test_hook_error_type(self, dev_app: Application) -> None:
        def setup(ns: Any, plugin: Any, logger: Any) -> None:
            plugin.after("x", lambda p: 1 / 0)
            plugin.call("x", lambda p: p)

        dev_app.use("div", setup)
        with pytest.raises(HookError) as exc_info:
            asyncio.run(dev_app.call("x", 5))
        assert exc_info.value.stage == "after"
        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)
