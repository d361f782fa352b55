"""Pydantic models for plan response bodies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PlanCreated(BaseModel):
    """Body of a 201 response to POST /."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    etag: str = Field(alias="ETag")
    plan_id: str = Field(alias="planId")


class Problem(BaseModel):
    """application/problem+json body for error outcomes."""

    title: str
    status: int
    detail: str
    message: str
    code: str


__all__ = ["PlanCreated", "Problem"]
