"""Tests for peento.cookies -- signing with cookie.secret, tamper rejection."""

from __future__ import annotations

from typing import Any

from fastapi import Request, Response
from fastapi.testclient import TestClient

from peento.application import Application
from peento.cookies import CookieSigner


class TestCookieSigner:
    def test_sign_and_unsign(self) -> None:
        signer = CookieSigner("s3cret")
        signed = signer.sign("dark")
        assert signed != "dark"
        assert signed.startswith("dark.")
        assert signer.unsign(signed) == "dark"

    def test_tampered_value_rejected(self) -> None:
        signer = CookieSigner("s3cret")
        signed = signer.sign("user")
        assert signer.unsign(signed.replace("user", "root", 1)) is None
        assert signer.unsign("unsigned") is None

    def test_other_secret_rejected(self) -> None:
        signed = CookieSigner("one").sign("dark")
        assert CookieSigner("two").unsign(signed) is None


class TestApplicationCookies:
    def _app(self, secret: str = "cookie-key") -> Application:
        def setup(ns: Any, plugin: Any, logger: Any) -> None:
            cookies = ns("cookie")

            @plugin.get("/theme/{name}")
            async def set_theme(name: str, response: Response):
                cookies.set_cookie(response, "theme", name)
                return {"ok": True}

            @plugin.get("/theme")
            async def get_theme(request: Request):
                return {"theme": cookies.get_cookie(request, "theme"), "all": cookies.signed_cookies(request)}

        app = Application({"debug": True, "cookie": {"secret": secret}})
        app.use("prefs", setup)
        app.start()
        return app

    def test_signer_published_in_namespace(self) -> None:
        app = self._app()
        assert app.ns("cookie") is app.cookies
        assert app.cookies.unsign(CookieSigner("cookie-key").sign("x")) == "x"

    def test_round_trip_through_requests(self) -> None:
        client = TestClient(self._app().http)
        client.get("/theme/dark")
        assert client.cookies["theme"].startswith("dark.")
        body = client.get("/theme").json()
        assert body["theme"] == "dark"
        assert body["all"] == {"theme": "dark"}

    def test_tampered_cookie_reads_as_missing(self) -> None:
        client = TestClient(self._app().http)
        client.cookies.set("theme", CookieSigner("another-key").sign("admin"))
        assert client.get("/theme").json() == {"theme": None, "all": {}}

    def test_missing_cookie(self) -> None:
        client = TestClient(self._app().http)
        assert client.get("/theme").json()["theme"] is None
