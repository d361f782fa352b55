"""HTTP contract tests for the plan routes.

Drive the FastAPI app in-process with TestClient and check status codes,
ETag headers and body shapes for each outcome.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from plan_service.config import AppConfig, StoreConfig
from plan_service.db.kv import StoreConnectionError
from plan_service.logic.etag import compute_plan_etag
from plan_service.main import create_app

PROBLEM = "application/problem+json"


def _create(client: TestClient, body: dict):
    return client.post("/", json=body)


def test_post_creates_plan_with_etag(client, plan_factory):
    body = plan_factory("plan-a")
    expected = f'"{compute_plan_etag(body)}"'

    resp = _create(client, body)

    assert resp.status_code == 201
    assert resp.headers["ETag"] == expected
    assert resp.headers["Location"] == "/plan-a"
    assert "ETag" in resp.headers["Access-Control-Expose-Headers"]
    assert resp.json() == {"message": "Item added", "ETag": expected, "planId": "plan-a"}


def test_get_returns_document_and_etag(client, plan_factory):
    body = plan_factory("plan-a")
    etag = _create(client, body).headers["ETag"]

    resp = client.get("/plan-a")

    assert resp.status_code == 200
    assert resp.headers["ETag"] == etag
    assert resp.json() == body


def test_get_with_matching_if_none_match_is_304(client, plan_factory):
    etag = _create(client, plan_factory("plan-a")).headers["ETag"]

    resp = client.get("/plan-a", headers={"If-None-Match": etag})

    assert resp.status_code == 304
    assert resp.headers["ETag"] == etag
    assert resp.content == b""


def test_get_with_stale_if_none_match_is_200(client, plan_factory):
    _create(client, plan_factory("plan-a"))

    resp = client.get("/plan-a", headers={"If-None-Match": '"stale"'})

    assert resp.status_code == 200


def test_wildcard_and_list_headers_do_not_match(client, plan_factory):
    etag = _create(client, plan_factory("plan-a")).headers["ETag"]

    assert client.get("/plan-a", headers={"If-None-Match": "*"}).status_code == 200
    assert client.get("/plan-a", headers={"If-None-Match": f'"zzz", {etag}'}).status_code == 200

    refused = client.delete("/plan-a", headers={"If-Match": "*"})
    assert refused.status_code == 412
    assert refused.headers["ETag"] == etag
    assert client.get("/plan-a").status_code == 200


def test_get_missing_and_invalid_ids(client):
    missing = client.get("/ghost")
    invalid = client.get("/{}")

    assert missing.status_code == 404
    assert missing.headers["content-type"].startswith(PROBLEM)
    assert missing.json()["message"] == "Plan not found"
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Invalid planId"


def test_duplicate_post_is_409_with_existing_etag(client, plan_factory):
    etag = _create(client, plan_factory("plan-a")).headers["ETag"]

    resp = _create(client, plan_factory("plan-a", planType="outOfNetwork"))

    assert resp.status_code == 409
    assert resp.headers["ETag"] == etag
    assert resp.headers["content-type"].startswith(PROBLEM)
    assert resp.json()["message"] == "Item already exists"
    assert resp.json()["code"] == "PLAN_ALREADY_EXISTS"


@pytest.mark.parametrize("payload", [b"{not json", b'{"objectId": "plan-a"}', b"[]", b""])
def test_bad_post_bodies_are_400(client, payload):
    resp = client.post("/", content=payload, headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request body"


def test_conditional_delete_flow(client, plan_factory):
    etag = _create(client, plan_factory("plan-a")).headers["ETag"]

    stale = client.delete("/plan-a", headers={"If-Match": '"wrong"'})
    assert stale.status_code == 412
    assert stale.headers["ETag"] == etag
    assert stale.json()["code"] == "PRE_IF_MATCH_ETAG_MISMATCH"
    assert client.get("/plan-a").status_code == 200

    done = client.delete("/plan-a", headers={"If-Match": etag})
    assert done.status_code == 204
    assert done.content == b""
    assert client.get("/plan-a").status_code == 404


def test_unconditional_delete_then_404(client, plan_factory):
    _create(client, plan_factory("plan-a"))

    assert client.delete("/plan-a").status_code == 204
    assert client.delete("/plan-a").status_code == 404
    assert client.delete("/{}").status_code == 400


def test_request_id_is_echoed_or_assigned(client):
    echoed = client.get("/ghost", headers={"X-Request-Id": "req-123"})
    assigned = client.get("/ghost")

    assert echoed.headers["X-Request-Id"] == "req-123"
    assert assigned.headers["X-Request-Id"]


def test_unknown_method_is_problem_json(client):
    resp = client.put("/plan-a", json={})

    assert resp.status_code == 405
    assert resp.headers["content-type"].startswith(PROBLEM)


def test_records_survive_app_restart(app_config, plan_factory):
    body = plan_factory("plan-a")
    with TestClient(create_app(app_config)) as first:
        etag = _create(first, body).headers["ETag"]
    with TestClient(create_app(app_config)) as second:
        resp = second.get("/plan-a", headers={"If-None-Match": etag})
    assert resp.status_code == 304


def test_strict_create_config_is_wired(store_url, plan_factory):
    cfg = AppConfig.model_validate({"store": {"url": store_url}, "plans": {"strict_create": True}})
    app = create_app(cfg)

    assert app.state.plan_controller.strict_create is True
    with TestClient(app) as client:
        assert _create(client, plan_factory("plan-a")).status_code == 201
        assert _create(client, plan_factory("plan-a")).status_code == 409


def test_unreachable_store_aborts_startup(tmp_path):
    cfg = AppConfig(store=StoreConfig(url=f"sqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}"))

    with pytest.raises(StoreConnectionError):
        with TestClient(create_app(cfg)):
            pass
