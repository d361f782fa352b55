"""FastAPI application package for the Plan Service.

This package exposes the application factory used to serve plan documents
with ETag-based conditional requests. Store access lives in
`plan_service/db/`, the conditional protocol in `plan_service/logic/` and
route handlers in `plan_service/routes/`.
"""

from __future__ import annotations

from plan_service.main import create_app

__all__ = ["create_app"]
