"""Redis-like key-value client persisted through SQLAlchemy.

Keys live in `kv_keys` together with their native kind (`hash` or `string`);
values live in `kv_hash_fields` and `kv_strings`. Every public operation is a
single transaction, which gives per-key atomicity: a reader never observes a
hash with only part of an `hset` mapping applied.

The client is explicitly constructed and owns its engine. `connect()` builds
the engine, checks reachability and applies migrations; `close()` disposes
the pool. Blocking database work runs on anyio worker threads so the event
loop is free while a call is in flight.
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Any, Callable, Mapping

import anyio.to_thread
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from plan_service.db.base import build_engine
from plan_service.db.migrations_runner import MIGRATIONS_DIR, apply_migrations

logger = logging.getLogger(__name__)

KIND_NONE = "none"
KIND_HASH = "hash"
KIND_STRING = "string"


class StoreError(RuntimeError):
    """Base class for key-value store failures."""


class StoreConnectionError(StoreError):
    """The store is unreachable or the client is not connected."""


class WrongTypeError(StoreError):
    """Operation against a key holding the wrong kind of value."""

    def __init__(self, key: str, kind: str, expected: str) -> None:
        super().__init__(f"key {key!r} holds a {kind} value, expected {expected}")
        self.key = key
        self.kind = kind
        self.expected = expected


def _kind(conn: Connection, key: str) -> str:
    row = conn.execute(
        sql_text("SELECT kind FROM kv_keys WHERE key_name = :k"), {"k": key}
    ).first()
    return str(row[0]) if row is not None else KIND_NONE


def _purge(conn: Connection, key: str) -> None:
    params = {"k": key}
    conn.execute(sql_text("DELETE FROM kv_hash_fields WHERE key_name = :k"), params)
    conn.execute(sql_text("DELETE FROM kv_strings WHERE key_name = :k"), params)
    conn.execute(sql_text("DELETE FROM kv_keys WHERE key_name = :k"), params)


def _write_fields(conn: Connection, key: str, mapping: Mapping[str, str]) -> int:
    existing = {
        str(r[0])
        for r in conn.execute(
            sql_text("SELECT field FROM kv_hash_fields WHERE key_name = :k"), {"k": key}
        ).fetchall()
    }
    added = 0
    for field, value in mapping.items():
        params = {"k": key, "f": str(field), "v": str(value)}
        # Concurrent writers of one field resolve to the last value written
        conn.execute(
            sql_text(
                "INSERT INTO kv_hash_fields (key_name, field, value) VALUES (:k, :f, :v) "
                "ON CONFLICT (key_name, field) DO UPDATE SET value = excluded.value"
            ),
            params,
        )
        if params["f"] not in existing:
            added += 1
    return added


def _type_sync(engine: Engine, key: str) -> str:
    with engine.connect() as conn:
        return _kind(conn, key)


def _hgetall_sync(engine: Engine, key: str) -> dict[str, str]:
    # Single statement so kind and fields come from the same snapshot
    with engine.connect() as conn:
        rows = conn.execute(
            sql_text(
                """
                SELECT k.kind, f.field, f.value
                FROM kv_keys k
                LEFT JOIN kv_hash_fields f ON f.key_name = k.key_name
                WHERE k.key_name = :k
                """
            ),
            {"k": key},
        ).fetchall()
    if not rows:
        return {}
    kind = str(rows[0][0])
    if kind != KIND_HASH:
        raise WrongTypeError(key, kind, KIND_HASH)
    return {str(r[1]): str(r[2]) for r in rows if r[1] is not None}


def _hset_sync(engine: Engine, key: str, mapping: Mapping[str, str]) -> int:
    with engine.begin() as conn:
        kind = _kind(conn, key)
        if kind == KIND_NONE:
            # Concurrent first writers may both land here; the later insert is a no-op
            conn.execute(
                sql_text(
                    "INSERT INTO kv_keys (key_name, kind) VALUES (:k, :kind) "
                    "ON CONFLICT (key_name) DO NOTHING"
                ),
                {"k": key, "kind": KIND_HASH},
            )
            kind = _kind(conn, key)
        if kind != KIND_HASH:
            raise WrongTypeError(key, kind, KIND_HASH)
        return _write_fields(conn, key, mapping)


def _hset_if_absent_sync(engine: Engine, key: str, mapping: Mapping[str, str]) -> bool:
    try:
        with engine.begin() as conn:
            if _kind(conn, key) != KIND_NONE:
                return False
            # The primary key on kv_keys arbitrates concurrent creators
            conn.execute(
                sql_text("INSERT INTO kv_keys (key_name, kind) VALUES (:k, :kind)"),
                {"k": key, "kind": KIND_HASH},
            )
            _write_fields(conn, key, mapping)
            return True
    except IntegrityError:
        logger.info("kv.hset_if_absent.lost_race key=%s", key)
        return False


def _set_sync(engine: Engine, key: str, value: str) -> None:
    with engine.begin() as conn:
        _purge(conn, key)
        conn.execute(
            sql_text("INSERT INTO kv_keys (key_name, kind) VALUES (:k, :kind)"),
            {"k": key, "kind": KIND_STRING},
        )
        conn.execute(
            sql_text("INSERT INTO kv_strings (key_name, value) VALUES (:k, :v)"),
            {"k": key, "v": str(value)},
        )


def _get_sync(engine: Engine, key: str) -> str | None:
    with engine.connect() as conn:
        kind = _kind(conn, key)
        if kind == KIND_NONE:
            return None
        if kind != KIND_STRING:
            raise WrongTypeError(key, kind, KIND_STRING)
        row = conn.execute(
            sql_text("SELECT value FROM kv_strings WHERE key_name = :k"), {"k": key}
        ).first()
    return str(row[0]) if row is not None else None


def _delete_sync(engine: Engine, keys: tuple[str, ...]) -> int:
    removed = 0
    with engine.begin() as conn:
        for key in keys:
            if _kind(conn, key) == KIND_NONE:
                continue
            _purge(conn, key)
            removed += 1
    return removed


def _ping_sync(engine: Engine) -> bool:
    with engine.connect() as conn:
        conn.execute(sql_text("SELECT 1"))
    return True


class KeyValueClient:
    """Async key-value client with Redis-style hash and string operations."""

    def __init__(
        self,
        url: str,
        *,
        pool_pre_ping: bool = True,
        migrations_dir: str | os.PathLike[str] = MIGRATIONS_DIR,
    ) -> None:
        self.url = url
        self._pool_pre_ping = pool_pre_ping
        self._migrations_dir = migrations_dir
        self._engine: Engine | None = None

    @property
    def connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Build the engine, verify reachability and apply migrations."""
        if self._engine is not None:
            return
        engine = build_engine(self.url, pool_pre_ping=self._pool_pre_ping)
        try:
            await anyio.to_thread.run_sync(self._bootstrap, engine)
        except SQLAlchemyError as e:
            engine.dispose()
            logger.error("kv.connect_failed", extra={"error": str(e)})
            raise StoreConnectionError(f"could not connect to store: {e}") from e
        self._engine = engine
        logger.info("kv.connected", extra={"dialect": engine.dialect.name})

    def _bootstrap(self, engine: Engine) -> None:
        _ping_sync(engine)
        apply_migrations(engine, self._migrations_dir)

    async def close(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        await anyio.to_thread.run_sync(engine.dispose)
        logger.info("kv.closed")

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        engine = self._engine
        if engine is None:
            raise StoreConnectionError("key-value client is not connected")
        try:
            return await anyio.to_thread.run_sync(functools.partial(func, engine, *args))
        except OperationalError as e:
            logger.error("kv.operational_error", extra={"op": func.__name__, "error": str(e)})
            raise StoreConnectionError(str(e)) from e
        except SQLAlchemyError as e:
            logger.error("kv.error", extra={"op": func.__name__, "error": str(e)})
            raise StoreError(str(e)) from e

    async def type(self, key: str) -> str:
        """Return the kind stored at `key`: 'none', 'hash' or 'string'."""
        return await self._run(_type_sync, key)

    async def hgetall(self, key: str) -> dict[str, str]:
        """Return all fields of the hash at `key`; empty when the key is missing."""
        return await self._run(_hgetall_sync, key)

    async def hset(self, key: str, mapping: Mapping[str, str]) -> int:
        """Set hash fields in one transaction; return the number of new fields."""
        return await self._run(_hset_sync, key, dict(mapping))

    async def hset_if_absent(self, key: str, mapping: Mapping[str, str]) -> bool:
        """Create the hash only when `key` does not exist."""
        return await self._run(_hset_if_absent_sync, key, dict(mapping))

    async def set(self, key: str, value: str) -> None:
        """Store a string value, replacing whatever kind was there."""
        await self._run(_set_sync, key, value)

    async def get(self, key: str) -> str | None:
        return await self._run(_get_sync, key)

    async def delete(self, *keys: str) -> int:
        """Delete keys of any kind; return how many existed."""
        return await self._run(_delete_sync, tuple(keys))

    async def ping(self) -> bool:
        return await self._run(_ping_sync)


__all__ = [
    "KeyValueClient",
    "StoreError",
    "StoreConnectionError",
    "WrongTypeError",
    "KIND_NONE",
    "KIND_HASH",
    "KIND_STRING",
]
