"""Pydantic configuration models for peento.

The application is configured through a single :class:`AppConfig`, loaded
from ``peento.yaml`` / ``peento.json`` by :mod:`peento.config` and layered
with environment variables and CLI flags. Sections mirror the dotted paths
plugins read from the namespace (``config.port``, ``config.session.secret``,
``config.request.timeout`` ...).

:class:`AppConfig` uses ``extra="allow"`` so that plugin-specific sections
(``blog:``, ``admin:`` ...) survive validation and stay reachable through
``model_extra`` and the namespace.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CookieConfig(BaseModel):
    """Cookie signing settings."""

    secret: str = Field(default="peento", description="Secret for signed cookies")


class SessionConfig(BaseModel):
    """Session cookie settings passed to the session middleware."""

    secret: str = Field(default="peento", description="Secret used to sign the session cookie")
    cookie_name: str = Field(default="peento.session", description="Session cookie name")
    max_age: int = Field(default=14 * 24 * 60 * 60, description="Session lifetime in seconds")


class RequestConfig(BaseModel):
    """Inbound request handling settings."""

    timeout: float = Field(default=30, description="Request timeout in seconds")


class DatabaseConfig(BaseModel):
    """SQLAlchemy engine settings.

    ``url`` takes precedence; when it is unset and a ``mysql`` section is
    configured, the URL is built from that section instead.
    """

    url: Optional[str] = Field(default=None, description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL through SQLAlchemy's own logger")


class MySQLConfig(BaseModel):
    """Connection parameters for a MySQL server (``mysql+pymysql`` driver)."""

    model_config = ConfigDict(extra="allow")

    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "peento"
    charset: str = "utf8mb4"


class AppConfig(BaseModel):
    """Top-level application configuration.

    Example::

        AppConfig(
            port=8080,
            debug=True,
            session=SessionConfig(secret="s3cret"),
            plugins=["./plugins/blog", "comments"],
        )
    """

    model_config = ConfigDict(extra="allow")

    port: int = Field(default=3000, description="Port the HTTP server listens on")
    host: str = Field(default="127.0.0.1", description="Interface the HTTP server binds")
    debug: bool = Field(
        default=False,
        description="Development mode: scan view roots per request, disable template caching",
    )
    cookie: CookieConfig = Field(default_factory=CookieConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    mysql: Optional[MySQLConfig] = None
    plugins: list[str] = Field(
        default_factory=list, description="Plugin specs loaded by the CLI at startup"
    )

    def as_namespace(self) -> dict[str, Any]:
        """Return the configuration as a plain nested dict for the namespace."""
        return self.model_dump(mode="python")
