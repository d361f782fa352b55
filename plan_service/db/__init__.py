"""Key-value store layer for the Plan Service.

Exposes the engine builder, the migrations runner and the Redis-like
`KeyValueClient` used by the plan repository. The layer does not leak SQL
into route handlers or the conditional-request logic.
"""

from plan_service.db.base import build_engine
from plan_service.db.kv import (
    KeyValueClient,
    StoreConnectionError,
    StoreError,
    WrongTypeError,
)
from plan_service.db.migrations_runner import apply_migrations

__all__ = [
    "build_engine",
    "apply_migrations",
    "KeyValueClient",
    "StoreError",
    "StoreConnectionError",
    "WrongTypeError",
]
