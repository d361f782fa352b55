"""Map controller outcomes to HTTP responses.

Single place where outcomes become status codes, ETag headers and bodies.
Error outcomes are rendered as application/problem+json with a stable
`code`; Conflict and PreconditionFailed also carry the current ETag so a
client can reconcile.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Response
from fastapi.responses import JSONResponse

from plan_service.http.problem import PROBLEM_MEDIA_TYPE
from plan_service.logic.etag import format_etag
from plan_service.models import outcomes
from plan_service.models.outcomes import Outcome
from plan_service.models.responses import PlanCreated, Problem

logger = logging.getLogger(__name__)

# outcome type -> (status, title, code)
ERROR_MAP = {
    outcomes.Conflict: (409, "Conflict", "PLAN_ALREADY_EXISTS"),
    outcomes.PreconditionFailed: (412, "Precondition Failed", "PRE_IF_MATCH_ETAG_MISMATCH"),
    outcomes.NotFound: (404, "Not Found", "PLAN_NOT_FOUND"),
    outcomes.BadRequest: (400, "Bad Request", "PLAN_BAD_REQUEST"),
    outcomes.InternalError: (500, "Internal Server Error", "PLAN_INTERNAL_ERROR"),
}


def emit_etag_header(response: Response, tag: str) -> None:
    """Set the ETag header and expose it to browser clients."""
    response.headers["ETag"] = format_etag(tag)
    existing = response.headers.get("Access-Control-Expose-Headers", "")
    tokens = [t.strip() for t in existing.split(",") if t.strip()]
    if "ETag" not in tokens:
        tokens.append("ETag")
    response.headers["Access-Control-Expose-Headers"] = ", ".join(tokens)


def problem_response(status: int, title: str, code: str, message: str, tag: Optional[str] = None) -> JSONResponse:
    problem = Problem(title=title, status=status, detail=message, message=message, code=code)
    response = JSONResponse(problem.model_dump(), status_code=status, media_type=PROBLEM_MEDIA_TYPE)
    if tag:
        emit_etag_header(response, tag)
    return response


def to_response(outcome: Outcome) -> Response:
    if isinstance(outcome, outcomes.Ok):
        response: Response = JSONResponse(outcome.body, status_code=200)
        emit_etag_header(response, outcome.tag)
        return response

    if isinstance(outcome, outcomes.NotModified):
        response = Response(status_code=304)
        emit_etag_header(response, outcome.tag)
        return response

    if isinstance(outcome, outcomes.Created):
        etag = format_etag(outcome.tag)
        body = PlanCreated(message=outcome.message, etag=etag, plan_id=outcome.plan_id)
        response = JSONResponse(body.model_dump(by_alias=True), status_code=201)
        emit_etag_header(response, outcome.tag)
        response.headers["Location"] = f"/{outcome.plan_id}"
        return response

    if isinstance(outcome, outcomes.NoContent):
        return Response(status_code=204)

    mapped = ERROR_MAP.get(type(outcome))
    if mapped is None:
        raise TypeError(f"unknown outcome {outcome!r}")
    status, title, code = mapped
    logger.info("response_mapper.error", extra={"status": status, "code": code})
    return problem_response(status, title, code, outcome.message, getattr(outcome, "tag", None))


__all__ = ["to_response", "emit_etag_header", "problem_response", "ERROR_MAP"]
