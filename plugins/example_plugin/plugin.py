"""Example plugin: a greeter with a hook, a call, a filter, and a page.

Load it with::

    peento serve --plugin ./plugins/example_plugin/plugin.py --debug

and open http://127.0.0.1:3000/hello/ann.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends

from peento.rendering import RenderContext


def setup(ns, plugin, logger) -> None:
    app = ns("app")

    @plugin.before("greet")
    def shout(payload: dict[str, Any]) -> dict[str, Any]:
        return {**payload, "name": payload["name"].upper()}

    @plugin.call("greet")
    def greet(payload: dict[str, Any]) -> str:
        return "Hello, " + payload["name"]

    @plugin.filter("exclaim")
    def exclaim(value: str) -> str:
        return f"{value}!"

    @plugin.locals("site_name")
    def site_name(ctx: RenderContext) -> str:
        return ns.get("config.site_name", "peento")

    @plugin.get("/hello/{name}")
    async def hello(name: str, render: RenderContext = Depends(app.renderer.context)):
        render.set_locals("greeting", await app.call("greet", {"name": name}))
        return await render.render("hello")

    @plugin.on_init
    def ready() -> None:
        logger.info("example plugin ready")
