"""Stored plan record and the hash layout it is persisted with."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

# Field names of the per-id hash
FIELD_PLAN = "plan"
FIELD_ETAG = "ETag"
FIELD_OBJECT_ID = "objectId"

RECORD_FIELDS = (FIELD_PLAN, FIELD_ETAG, FIELD_OBJECT_ID)


@dataclass(frozen=True)
class Plan:
    id: str
    body: Dict[str, Any]
    tag: str


__all__ = ["Plan", "FIELD_PLAN", "FIELD_ETAG", "FIELD_OBJECT_ID", "RECORD_FIELDS"]
