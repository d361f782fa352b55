"""SQLAlchemy engine construction for the key-value store.

The store targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
builds engines. Each `KeyValueClient` owns the engine it creates, so there is
no module-level connection state.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def is_sqlite_memory(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") in {"sqlite:", "sqlite+pysqlite:"})


def build_engine(url: str, *, pool_pre_ping: bool = True) -> Engine:
    """Return a new SQLAlchemy Engine for the given URL.

    For SQLite, connections are shared with worker threads. In-memory URLs
    use a StaticPool to keep a single connection alive, otherwise every
    checkout would see an empty database.
    """
    kwargs: dict = {"future": True, "pool_pre_ping": pool_pre_ping}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool
    logger.debug("engine_build dialect=%s", url.split(":", 1)[0])
    return create_engine(url, **kwargs)


__all__ = ["build_engine", "is_sqlite_memory"]
