"""Database handle published to plugins at ``db`` in the namespace.

The engine is created lazily by SQLAlchemy, so no connection is opened until
a plugin actually runs a query. Every statement is logged at DEBUG level on
the ``peento.db.query`` logger.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine

from peento.models import AppConfig

DEFAULT_URL = "sqlite://"

query_logger = logging.getLogger("peento.db.query")


def database_url(config: AppConfig) -> str | URL:
    """Pick the database URL: ``database.url``, else ``mysql.*``, else in-memory SQLite."""
    if config.database.url:
        return config.database.url
    if config.mysql is not None:
        mysql = config.mysql
        return URL.create(
            "mysql+pymysql",
            username=mysql.user,
            password=mysql.password or None,
            host=mysql.host,
            port=mysql.port,
            database=mysql.database,
            query={"charset": mysql.charset},
        )
    return DEFAULT_URL


def _log_statement(conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool) -> None:
    query_logger.debug("%s %r", statement, parameters)


def create_database(config: AppConfig) -> Engine:
    engine = create_engine(database_url(config), echo=config.database.echo)
    event.listen(engine, "before_cursor_execute", _log_statement)
    return engine
