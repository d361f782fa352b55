"""Behave environment hooks for plan integration scenarios.

Scenarios run against a live server when TEST_BASE_URL is set (for example
one started with `plan-service`); otherwise each scenario gets an
in-process app on a throwaway SQLite store. Both clients expose the same
httpx request API, so steps do not care which one they use.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import Any

import httpx
from dotenv import load_dotenv
from fastapi.testclient import TestClient

from plan_service.config import AppConfig, StoreConfig
from plan_service.main import create_app


def before_all(context: Any) -> None:  # pragma: no cover - executed by Behave
    load_dotenv(dotenv_path="tests/integration/.env.test", override=False)
    context.base_url = os.environ.get("TEST_BASE_URL", "").strip().rstrip("/")


def before_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    context.vars = {}
    context.last_response = None
    if context.base_url:
        context.client = httpx.Client(base_url=context.base_url, timeout=10.0)
        context.tmpdir = None
        return
    context.tmpdir = tempfile.mkdtemp(prefix="plan-it-")
    cfg = AppConfig(store=StoreConfig(url=f"sqlite:///{os.path.join(context.tmpdir, 'kv.db')}"))
    context.client = TestClient(create_app(cfg))
    context.client.__enter__()


def after_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    client = getattr(context, "client", None)
    if isinstance(client, TestClient):
        client.__exit__(None, None, None)
    elif client is not None:
        client.close()
    if getattr(context, "tmpdir", None):
        shutil.rmtree(context.tmpdir, ignore_errors=True)
