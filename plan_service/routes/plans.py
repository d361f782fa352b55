"""Plan routes: conditional GET, create and conditional DELETE.

Handlers only translate HTTP input into controller calls and hand the
resulting outcome to the response mapper; no tag comparison or header
assignment happens here.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import Response

from plan_service.http.response_mapper import to_response
from plan_service.logic.plan_controller import PlanController
from plan_service.models import outcomes

router = APIRouter()
logger = logging.getLogger(__name__)


def get_controller(request: Request) -> PlanController:
    return request.app.state.plan_controller


@router.get("/{plan_id}", summary="Fetch a plan (conditional on If-None-Match)")
async def get_plan(
    plan_id: str,
    if_none_match: Optional[str] = Header(None, alias="If-None-Match"),
    controller: PlanController = Depends(get_controller),
) -> Response:
    outcome = await controller.read(plan_id, if_none_match)
    return to_response(outcome)


@router.post("/", summary="Create a plan")
async def create_plan(
    request: Request,
    controller: PlanController = Depends(get_controller),
) -> Response:
    try:
        body = await request.json()
    except ValueError:
        logger.warning("plan.create.unparseable_body")
        return to_response(outcomes.BadRequest("Invalid request body"))
    outcome = await controller.create(body)
    return to_response(outcome)


@router.delete("/{plan_id}", summary="Delete a plan (conditional on If-Match)")
async def delete_plan(
    plan_id: str,
    if_match: Optional[str] = Header(None, alias="If-Match"),
    controller: PlanController = Depends(get_controller),
) -> Response:
    outcome = await controller.delete(plan_id, if_match)
    return to_response(outcome)


__all__ = ["router", "get_plan", "create_plan", "delete_plan", "get_controller"]
