from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError, StarletteHTTPException

from plan_service.config import AppConfig, load_config
from plan_service.db.kv import KeyValueClient
from plan_service.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from plan_service.http.request_id import RequestIdMiddleware
from plan_service.logic.plan_controller import PlanController, Validator
from plan_service.logic.repository_plans import PlanStore
from plan_service.logic.validation import PlanSchemaValidator, load_plan_schema
from plan_service.routes import api_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    *,
    kv_client: Optional[KeyValueClient] = None,
    validator: Optional[Validator] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Collaborators are constructed here and injected into the controller;
    tests may pass their own `kv_client` or `validator`. The key-value client
    is connected on startup and closed on shutdown. A store that cannot be
    reached raises StoreConnectionError and aborts startup.
    """
    cfg = config or load_config()
    kv = kv_client or KeyValueClient(cfg.store.url, pool_pre_ping=cfg.store.pool_pre_ping)
    validate = validator or PlanSchemaValidator(load_plan_schema(cfg.plans.schema_path))
    controller = PlanController(PlanStore(kv), validate, strict_create=cfg.plans.strict_create)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await kv.connect()
        logger.info(
            "plan_service.started",
            extra={"strict_create": cfg.plans.strict_create},
        )
        try:
            yield
        finally:
            await kv.close()
            logger.info("plan_service.stopped")

    app = FastAPI(title="Plan Service", version="1.0.0", lifespan=lifespan)
    app.state.config = cfg
    app.state.kv_client = kv
    app.state.plan_controller = controller

    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    return app


__all__ = ["create_app"]
