"""Tests for the HTTP adapter"""
import pytest
from fastapi.testclient import TestClient

from app.domain.enums import EntityType
from app.main import create_app

ACTOR_HEADERS = {"X-Actor-Id": "admin-1", "X-Actor-Name": "Admin"}


@pytest.fixture
def client(runtime) -> TestClient:
    # Lifespan is not entered: the runtime is injected, no scheduler runs
    return TestClient(create_app(runtime=runtime))


def test_missing_actor_is_unauthorized(client):
    response = client.post(
        "/api/v1/statuses",
        json={"name": "new", "display_name": "New", "color_code": "#000"}
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


def test_status_endpoints(client):
    created = client.post(
        "/api/v1/statuses",
        json={"name": "Bidding", "display_name": "Bidding", "color_code": "#2563EB"},
        headers=ACTOR_HEADERS
    )
    assert created.status_code == 201
    assert created.json()["name"] == "bidding"

    client.post(
        "/api/v1/statuses",
        json={
            "name": "clarification", "display_name": "Clarification", "color_code": "#60A5FA",
            "is_substatus": True, "parent_status": "bidding"
        },
        headers=ACTOR_HEADERS
    )

    assert client.get("/api/v1/statuses/bidding").json()["status_id"] == created.json()["status_id"]
    subs = client.get("/api/v1/statuses/bidding/substatuses").json()
    assert [s["name"] for s in subs["items"]] == ["clarification"]
    assert client.get("/api/v1/statuses").json()["total"] == 2

    duplicate = client.post(
        "/api/v1/statuses",
        json={"name": "bidding", "display_name": "Again", "color_code": "#000"},
        headers=ACTOR_HEADERS
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["error"]["code"] == "VALIDATION_ERROR"

    missing = client.get("/api/v1/statuses/unknown")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "STATUS_NOT_FOUND"


def test_draft_edit_validate_and_publish(client, ids):
    created = client.post(
        "/api/v1/workflows/drafts",
        json={
            "name": "bid-flow",
            "entity_type": "bid",
            "nodes": [{"node_id": "a", "status_id": ids["new"], "is_initial": True}],
        },
        headers=ACTOR_HEADERS
    )
    assert created.status_code == 201
    draft_id = created.json()["workflow_id"]

    validation = client.post(f"/api/v1/workflows/drafts/{draft_id}/validate").json()
    assert validation["is_valid"] is False
    assert [v["code"] for v in validation["violations"]] == ["NO_TERMINAL_NODE"]

    rejected = client.post(f"/api/v1/workflows/drafts/{draft_id}/publish", headers=ACTOR_HEADERS)
    assert rejected.status_code == 400
    assert rejected.json()["error"]["code"] == "WORKFLOW_VALIDATION_ERROR"

    saved = client.put(
        f"/api/v1/workflows/drafts/{draft_id}",
        json={
            "nodes": [
                {"node_id": "a", "status_id": ids["new"], "is_initial": True, "order": 1},
                {"node_id": "b", "status_id": ids["closed"], "is_final": True, "order": 2},
            ],
            "edges": [{"from_node_id": "a", "to_node_id": "b", "condition": "approved"}],
            "expected_version": 1
        },
        headers=ACTOR_HEADERS
    )
    assert saved.status_code == 200
    assert saved.json()["validation"]["is_valid"] is True
    assert saved.json()["workflow"]["version"] == 2

    stale = client.put(
        f"/api/v1/workflows/drafts/{draft_id}",
        json={"nodes": [], "edges": [], "expected_version": 1},
        headers=ACTOR_HEADERS
    )
    assert stale.status_code == 409

    published = client.post(f"/api/v1/workflows/drafts/{draft_id}/publish", headers=ACTOR_HEADERS)
    assert published.status_code == 201
    assert published.json()["is_draft"] is False
    assert published.json()["published_by"]["actor_id"] == "admin-1"

    active = client.get("/api/v1/workflows/published/bid").json()
    assert active["workflow_id"] == published.json()["workflow_id"]

    versions = client.get("/api/v1/workflows/published/bid/bid-flow/versions").json()
    assert versions["total"] == 1


def test_unpublished_entity_type_is_not_found(client):
    response = client.get("/api/v1/workflows/published/invoice")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "WORKFLOW_NOT_FOUND"


def test_entity_transition_flow(client, runtime, lead_lifecycle, ids):
    runtime.entity_stores.get(EntityType.LEAD).create_entity("L1", ids["new"])

    next_statuses = client.get("/api/v1/entities/lead/L1/next-statuses").json()
    assert next_statuses["current_status_id"] == ids["new"]
    assert [n["status_id"] for n in next_statuses["items"]] == [ids["bidding"]]

    moved = client.post(
        "/api/v1/entities/lead/L1/transitions",
        json={"from_status_id": ids["new"], "to_status_id": ids["bidding"], "comment": "bid sent"},
        headers={**ACTOR_HEADERS, "X-Correlation-Id": "COR-test-1"}
    )
    assert moved.status_code == 200
    assert moved.headers["X-Correlation-Id"] == "COR-test-1"
    assert moved.json()["record"]["correlation_id"] == "COR-test-1"

    invalid = client.post(
        "/api/v1/entities/lead/L1/transitions",
        json={"from_status_id": ids["new"], "to_status_id": ids["backlog"]},
        headers=ACTOR_HEADERS
    )
    assert invalid.status_code == 400
    assert invalid.json()["error"]["code"] == "INVALID_TRANSITION"

    stale = client.post(
        "/api/v1/entities/lead/L1/transitions",
        json={"from_status_id": ids["new"], "to_status_id": ids["bidding"]},
        headers=ACTOR_HEADERS
    )
    assert stale.status_code == 409
    assert stale.json()["error"]["code"] == "CONCURRENT_MODIFICATION"

    # Without from_status_id the current status is read server-side
    finished = client.post(
        "/api/v1/entities/lead/L1/transitions",
        json={"to_status_id": ids["backlog"]},
        headers=ACTOR_HEADERS
    )
    assert finished.status_code == 200
    assert finished.json()["from_status_id"] == ids["bidding"]

    history = client.get("/api/v1/entities/lead/L1/history").json()
    assert history["total"] == 2
    assert [r["status_id"] for r in history["items"]] == [ids["bidding"], ids["backlog"]]

    reconciled = client.post("/api/v1/entities/lead/L1/reconcile", headers=ACTOR_HEADERS)
    assert reconciled.status_code == 200
    assert reconciled.json()["in_sync"] is True


def test_unknown_entity_and_type(client, lead_lifecycle, ids):
    missing = client.get("/api/v1/entities/lead/nope/next-statuses")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "ENTITY_NOT_FOUND"

    bad_type = client.get("/api/v1/entities/spaceship/S1/history")
    assert bad_type.status_code == 400
    assert bad_type.json()["error"]["code"] == "VALIDATION_ERROR"
