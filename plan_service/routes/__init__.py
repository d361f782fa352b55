"""APIRouter registration for the Plan Service."""

from __future__ import annotations

from fastapi import APIRouter

from plan_service.routes.plans import router as plans_router

api_router = APIRouter()
api_router.include_router(plans_router, tags=["Plans"])

__all__ = ["api_router"]
