"""Functional test bootstrap for the Plan Service.

Each test gets its own file-backed SQLite key-value store under tmp_path,
so tests never share records. Async tests run on asyncio through the anyio
pytest plugin.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from plan_service.config import AppConfig, PlanConfig, StoreConfig
from plan_service.db.kv import KeyValueClient
from plan_service.logic.plan_controller import PlanController
from plan_service.logic.repository_plans import PlanStore
from plan_service.logic.validation import PlanSchemaValidator
from plan_service.main import create_app


SAMPLE_PLAN: Dict[str, Any] = {
    "planCostShares": {
        "deductible": 2000,
        "_org": "example.com",
        "copay": 23,
        "objectId": "1234vxc2324sdf-501",
        "objectType": "membercostshare",
    },
    "linkedPlanServices": [
        {
            "linkedService": {
                "_org": "example.com",
                "objectId": "1234520xvc30asdf-502",
                "objectType": "service",
                "name": "Yearly physical",
            },
            "planserviceCostShares": {
                "deductible": 10,
                "_org": "example.com",
                "copay": 0,
                "objectId": "1234512xvc1314asdfs-503",
                "objectType": "membercostshare",
            },
            "_org": "example.com",
            "objectId": "27283xvx9asdff-504",
            "objectType": "planservice",
        }
    ],
    "_org": "example.com",
    "objectId": "12xvxc345ssdsds-508",
    "objectType": "plan",
    "planType": "inNetwork",
    "creationDate": "12-12-2017",
}


def make_plan(object_id: str = "12xvxc345ssdsds-508", **overrides: Any) -> Dict[str, Any]:
    plan = copy.deepcopy(SAMPLE_PLAN)
    plan["objectId"] = object_id
    plan.update(overrides)
    return plan


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'kv_store.db'}"


@pytest.fixture
async def kv_client(anyio_backend, store_url):
    client = KeyValueClient(store_url)
    await client.connect()
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
def plan_store(kv_client) -> PlanStore:
    return PlanStore(kv_client)


@pytest.fixture
def controller(plan_store) -> PlanController:
    return PlanController(plan_store, PlanSchemaValidator())


@pytest.fixture
def app_config(store_url) -> AppConfig:
    return AppConfig(store=StoreConfig(url=store_url), plans=PlanConfig())


@pytest.fixture
def client(app_config):
    with TestClient(create_app(app_config)) as test_client:
        yield test_client


@pytest.fixture
def plan_factory():
    return make_plan
