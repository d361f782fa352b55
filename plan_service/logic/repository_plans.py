"""Plan repository over the key-value client.

Each plan is one hash keyed by its objectId, holding the serialized document,
its tag and the id. The three fields are written by a single `hset`, so a
reader never sees a partially written record.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from plan_service.db.kv import KIND_HASH, KIND_NONE, KeyValueClient, StoreError, WrongTypeError
from plan_service.logic.etag import serialize_plan
from plan_service.models.plan import FIELD_ETAG, FIELD_OBJECT_ID, FIELD_PLAN, RECORD_FIELDS, Plan

logger = logging.getLogger(__name__)


class PlanStore:
    """Persistence for plan records: get, put, put_if_absent, delete."""

    def __init__(self, kv: KeyValueClient) -> None:
        self._kv = kv

    async def get(self, plan_id: str) -> Optional[Plan]:
        """Return the stored plan or None.

        Keys holding another kind of value, or a hash without the record
        fields, are reported as absent so that a create can replace them.
        """
        try:
            fields = await self._kv.hgetall(plan_id)
        except WrongTypeError as e:
            logger.warning("plan_store.get.incompatible_shape", extra={"plan_id": plan_id, "kind": e.kind})
            return None
        if not fields:
            logger.debug("plan_store.get.miss", extra={"plan_id": plan_id})
            return None
        return _record_from_fields(plan_id, fields)

    async def put(self, plan_id: str, body: Dict[str, Any], tag: str) -> Plan:
        """Overwrite the record at `plan_id` and return it as read back."""
        await self._purge_unless_record(plan_id, "put")
        await self._kv.hset(plan_id, _fields_for(plan_id, body, tag))
        logger.info("plan_store.put", extra={"plan_id": plan_id, "etag": tag})
        return await self._read_back(plan_id)

    async def put_if_absent(self, plan_id: str, body: Dict[str, Any], tag: str) -> Optional[Plan]:
        """Write the record only if nothing is stored at `plan_id`.

        Returns the stored plan, or None when another writer got there first.
        """
        await self._purge_unless_record(plan_id, "put_if_absent")
        created = await self._kv.hset_if_absent(plan_id, _fields_for(plan_id, body, tag))
        if not created:
            logger.info("plan_store.put_if_absent.exists", extra={"plan_id": plan_id})
            return None
        logger.info("plan_store.put", extra={"plan_id": plan_id, "etag": tag})
        return await self._read_back(plan_id)

    async def delete(self, plan_id: str) -> bool:
        removed = await self._kv.delete(plan_id)
        if removed:
            logger.info("plan_store.delete", extra={"plan_id": plan_id})
            return True
        logger.warning("plan_store.delete.missing", extra={"plan_id": plan_id})
        return False

    async def _purge_unless_record(self, plan_id: str, op: str) -> None:
        # Keys holding anything but a well-formed record are dropped, so the
        # following write leaves exactly the record fields
        kind = await self._kv.type(plan_id)
        if kind == KIND_NONE:
            return
        if kind == KIND_HASH:
            fields = await self._kv.hgetall(plan_id)
            if set(fields) == set(RECORD_FIELDS) and _record_from_fields(plan_id, fields) is not None:
                return
        logger.warning("plan_store.purge_incompatible", extra={"plan_id": plan_id, "kind": kind, "op": op})
        await self._kv.delete(plan_id)

    async def _read_back(self, plan_id: str) -> Plan:
        plan = await self.get(plan_id)
        if plan is None:
            # Deleted by a concurrent request between write and read
            raise StoreError(f"plan {plan_id!r} vanished after write")
        return plan


def _fields_for(plan_id: str, body: Dict[str, Any], tag: str) -> Dict[str, str]:
    return {
        FIELD_PLAN: serialize_plan(body),
        FIELD_ETAG: tag,
        FIELD_OBJECT_ID: plan_id,
    }


def _record_from_fields(plan_id: str, fields: Dict[str, str]) -> Optional[Plan]:
    missing = [f for f in RECORD_FIELDS if f not in fields]
    if missing:
        logger.warning("plan_store.get.malformed", extra={"plan_id": plan_id, "missing": missing})
        return None
    try:
        body = json.loads(fields[FIELD_PLAN])
    except json.JSONDecodeError:
        logger.warning("plan_store.get.undecodable", extra={"plan_id": plan_id})
        return None
    if not isinstance(body, dict):
        logger.warning("plan_store.get.undecodable", extra={"plan_id": plan_id})
        return None
    return Plan(id=fields[FIELD_OBJECT_ID], body=body, tag=fields[FIELD_ETAG])


__all__ = ["PlanStore"]
