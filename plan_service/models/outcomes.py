"""Outcome variants returned by the plan controller.

Each request resolves to exactly one of these values. They carry no
transport details; `plan_service.http.response_mapper` turns them into
HTTP responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union


@dataclass(frozen=True)
class Ok:
    body: Dict[str, Any]
    tag: str


@dataclass(frozen=True)
class NotModified:
    tag: str


@dataclass(frozen=True)
class Created:
    tag: str
    plan_id: str
    message: str = "Item added"


@dataclass(frozen=True)
class Conflict:
    tag: str
    message: str = "Item already exists"


@dataclass(frozen=True)
class NoContent:
    plan_id: str


@dataclass(frozen=True)
class PreconditionFailed:
    tag: str
    message: str = "ETag provided is not valid"


@dataclass(frozen=True)
class NotFound:
    message: str = "Plan not found"


@dataclass(frozen=True)
class BadRequest:
    message: str = "Invalid request"


@dataclass(frozen=True)
class InternalError:
    message: str = "Internal server error"


Outcome = Union[
    Ok,
    NotModified,
    Created,
    Conflict,
    NoContent,
    PreconditionFailed,
    NotFound,
    BadRequest,
    InternalError,
]

__all__ = [
    "Ok",
    "NotModified",
    "Created",
    "Conflict",
    "NoContent",
    "PreconditionFailed",
    "NotFound",
    "BadRequest",
    "InternalError",
    "Outcome",
]
