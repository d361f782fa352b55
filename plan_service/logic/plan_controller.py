"""Conditional-request engine for plan documents.

Compares `If-None-Match` / `If-Match` with the stored tag (one token, exact
match after unquoting) and returns an outcome value for each operation. The
controller keeps no state between requests; everything lives in the
PlanStore.

Create does not lock between the existence check and the write: two
concurrent creates of the same new id can both succeed and the later write
wins. `strict_create=True` switches the write to `put_if_absent`, so the
losing request gets a Conflict instead.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from plan_service.db.kv import StoreError
from plan_service.logic.etag import TaggingError, compute_plan_etag, etag_matches, normalize_etag
from plan_service.logic.repository_plans import PlanStore
from plan_service.models import outcomes
from plan_service.models.outcomes import Outcome

logger = logging.getLogger(__name__)

# Path segment some clients send when the id was never filled in
EMPTY_OBJECT_MARKER = "{}"

Validator = Callable[[Any], bool]


def is_valid_plan_id(plan_id: Any) -> bool:
    return isinstance(plan_id, str) and plan_id.strip() != "" and plan_id != EMPTY_OBJECT_MARKER


class PlanController:
    def __init__(self, store: PlanStore, validate: Validator, *, strict_create: bool = False) -> None:
        self.store = store
        self.validate = validate
        self.strict_create = strict_create

    async def read(self, plan_id: str, if_none_match: Optional[str] = None) -> Outcome:
        """GET semantics: 200 with the document, or 304 when the tag matches."""
        logger.info("plan.read", extra={"plan_id": plan_id})
        if not is_valid_plan_id(plan_id):
            logger.warning("plan.read.invalid_id", extra={"plan_id": plan_id})
            return outcomes.BadRequest("Invalid planId")
        try:
            plan = await self.store.get(plan_id)
        except StoreError:
            logger.error("plan.read.store_failed", extra={"plan_id": plan_id}, exc_info=True)
            return outcomes.InternalError("Plan store unavailable")
        if plan is None:
            logger.warning("plan.read.not_found", extra={"plan_id": plan_id})
            return outcomes.NotFound("Plan not found")
        if if_none_match and etag_matches(plan.tag, if_none_match):
            logger.info("plan.read.not_modified", extra={"plan_id": plan_id, "etag": plan.tag})
            return outcomes.NotModified(plan.tag)
        return outcomes.Ok(plan.body, plan.tag)

    async def create(self, body: Any) -> Outcome:
        """POST semantics: 201 for a new id, 409 carrying the existing tag otherwise."""
        if not self.validate(body):
            logger.warning("plan.create.invalid_body")
            return outcomes.BadRequest("Invalid request body")
        plan_id = body.get("objectId") if isinstance(body, dict) else None
        if not is_valid_plan_id(plan_id):
            logger.warning("plan.create.invalid_id", extra={"plan_id": plan_id})
            return outcomes.BadRequest("Invalid request body")

        try:
            existing = await self.store.get(plan_id)
            if existing is not None:
                logger.warning("plan.create.conflict", extra={"plan_id": plan_id, "etag": existing.tag})
                return outcomes.Conflict(existing.tag)

            tag = compute_plan_etag(body)
            if self.strict_create:
                stored = await self.store.put_if_absent(plan_id, body, tag)
                if stored is None:
                    winner = await self.store.get(plan_id)
                    if winner is None:
                        # Created and deleted again by other requests
                        return outcomes.InternalError("Item not added")
                    logger.warning("plan.create.conflict", extra={"plan_id": plan_id, "etag": winner.tag})
                    return outcomes.Conflict(winner.tag)
            else:
                stored = await self.store.put(plan_id, body, tag)
        except TaggingError:
            logger.error("plan.create.tagging_failed", extra={"plan_id": plan_id}, exc_info=True)
            return outcomes.InternalError("Could not compute ETag")
        except StoreError:
            logger.error("plan.create.store_failed", extra={"plan_id": plan_id}, exc_info=True)
            return outcomes.InternalError("Plan store unavailable")

        logger.info("plan.create.added", extra={"plan_id": plan_id, "etag": stored.tag})
        return outcomes.Created(stored.tag, plan_id)

    async def delete(self, plan_id: str, if_match: Optional[str] = None) -> Outcome:
        """DELETE semantics: unconditional, or gated by If-Match (412 on mismatch)."""
        logger.info("plan.delete", extra={"plan_id": plan_id})
        if not is_valid_plan_id(plan_id):
            logger.warning("plan.delete.invalid_id", extra={"plan_id": plan_id})
            return outcomes.BadRequest("Invalid planId")
        try:
            plan = await self.store.get(plan_id)
            if plan is None:
                logger.warning("plan.delete.not_found", extra={"plan_id": plan_id})
                return outcomes.NotFound("Plan not found")
            # An empty If-Match ("" or quotes only) is treated as absent
            if normalize_etag(if_match) and not etag_matches(plan.tag, if_match):
                logger.warning("plan.delete.etag_mismatch", extra={"plan_id": plan_id, "etag": plan.tag})
                return outcomes.PreconditionFailed(plan.tag)
            deleted = await self.store.delete(plan_id)
        except StoreError:
            logger.error("plan.delete.store_failed", extra={"plan_id": plan_id}, exc_info=True)
            return outcomes.InternalError("Plan store unavailable")

        if not deleted:
            logger.error("plan.delete.failed", extra={"plan_id": plan_id})
            return outcomes.InternalError("Item not deleted")
        logger.info("plan.delete.done", extra={"plan_id": plan_id})
        return outcomes.NoContent(plan_id)


__all__ = ["PlanController", "is_valid_plan_id", "EMPTY_OBJECT_MARKER"]
