from datetime import timedelta
import threading
import time

import pytest
from fastapi.testclient import TestClient

from arcade_queue.core.security import create_access_token
from arcade_queue.main import app


def auth_headers(user_id="member", group_id="100", platform="qq", name=None, tenant=None, expires=None):
    token = create_access_token(
        {"sub": user_id, "platform": platform, "group_id": group_id, "name": name or user_id.title()},
        expires_delta=expires,
    )
    return {
        "Authorization": f"Bearer {token}",
        "X-Tenant-ID": tenant or f"{platform}:{group_id}",
    }


OWNER = auth_headers("owner")
MEMBER = auth_headers("member")


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_health_needs_no_tenant(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_tenant_header(client):
    response = client.get("/api/v1/arcades", headers={"Authorization": OWNER["Authorization"]})
    assert response.status_code == 400
    assert response.json()["type"] == "invalid_input"


def test_malformed_tenant_header(client):
    response = client.get("/api/v1/arcades", headers={**OWNER, "X-Tenant-ID": "no-platform"})
    assert response.status_code == 400


def test_missing_and_invalid_tokens(client):
    response = client.get("/api/v1/arcades", headers={"X-Tenant-ID": "qq:100"})
    assert response.status_code == 401
    assert response.json()["type"] == "authentication_error"

    response = client.get("/api/v1/arcades", headers={"X-Tenant-ID": "qq:100", "Authorization": "Bearer junk"})
    assert response.status_code == 401

    expired = auth_headers("member", expires=timedelta(minutes=-5))
    assert client.get("/api/v1/arcades", headers=expired).status_code == 401


def test_token_for_other_group_is_rejected(client):
    headers = auth_headers("owner", group_id="200", tenant="qq:100")
    response = client.get("/api/v1/arcades", headers=headers)
    assert response.status_code == 403
    assert response.json()["type"] == "tenant_isolation_error"


def test_arcade_lifecycle(client):
    response = client.post("/api/v1/arcades", json={"name": "Round1", "aliases": ["r1", "rd"]}, headers=OWNER)
    assert response.status_code == 201
    arcade = response.json()
    assert arcade["tenant_id"] == "qq:100"
    assert arcade["current"] == 0

    response = client.post("/api/v1/arcades/r1/queue", json={"count": 6}, headers=MEMBER)
    assert response.status_code == 200
    body = response.json()
    assert body["arcade"]["current"] == 6
    assert body["arcade"]["last_updater_id"] == "qq:member"
    assert body["via_binding"] is False

    response = client.get("/api/v1/arcades/Round1", headers=MEMBER)
    assert response.json()["average"] == 6.0

    response = client.get("/api/v1/arcades", headers=MEMBER)
    assert response.json()["total"] == 1

    response = client.get("/api/v1/arcades/search", params={"q": "rj"}, headers=MEMBER)
    assert response.json()["mode"] == "alias_group"
    assert response.json()["total"] == 1

    response = client.post("/api/v1/arcades/reset-counts", headers=OWNER)
    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert client.get("/api/v1/arcades/r1", headers=MEMBER).json()["current"] == 0


def test_arcade_errors(client):
    response = client.post("/api/v1/arcades", json={"name": "Round1", "aliases": []}, headers=MEMBER)
    assert response.status_code == 403
    assert response.json()["type"] == "permission_denied"

    client.post("/api/v1/arcades", json={"name": "Round1", "aliases": ["r1"]}, headers=OWNER)

    response = client.post("/api/v1/arcades", json={"name": "Round1", "aliases": []}, headers=OWNER)
    assert response.status_code == 409
    assert response.json()["type"] == "conflict"

    response = client.get("/api/v1/arcades/nowhere", headers=MEMBER)
    assert response.status_code == 404
    assert response.json()["type"] == "not_found"

    response = client.post("/api/v1/arcades/r1/queue", json={"count": -2}, headers=MEMBER)
    assert response.status_code == 400
    assert response.json()["type"] == "invalid_input"

    response = client.post("/api/v1/arcades/r1/queue", json={"count": "many"}, headers=MEMBER)
    assert response.status_code == 422


def test_groups_are_isolated(client):
    client.post("/api/v1/arcades", json={"name": "Round1", "aliases": []}, headers=OWNER)

    other = auth_headers("member", group_id="200")
    assert client.get("/api/v1/arcades", headers=other).json()["total"] == 0
    assert client.get("/api/v1/arcades/Round1", headers=other).status_code == 404


def test_binding_flow(client):
    source_owner = auth_headers("owner", group_id="200")
    client.post("/api/v1/arcades", json={"name": "Remote", "aliases": ["rm"]}, headers=source_owner)

    assert client.get("/api/v1/binding", headers=OWNER).status_code == 404

    response = client.put("/api/v1/binding", json={"source_tenant_id": "qq:200"}, headers=OWNER)
    assert response.status_code == 200
    assert response.json()["is_enabled"] is True

    listed = client.get("/api/v1/arcades", headers=MEMBER).json()
    assert listed["arcades"][0]["is_bound"] is True

    response = client.post("/api/v1/arcades/rm/queue", json={"count": 2}, headers=MEMBER)
    assert response.json()["materialized"] is True

    # Source group still sees its own untouched row
    source_view = client.get("/api/v1/arcades/Remote", headers=source_owner).json()
    assert source_view["current"] == 0

    response = client.delete("/api/v1/binding", headers=OWNER)
    assert response.status_code == 200
    assert response.json()["deleted_arcades"] == 1
    assert client.get("/api/v1/arcades", headers=MEMBER).json()["total"] == 0


def test_allow_list_endpoints(client):
    response = client.post("/api/v1/allow-list", json={"user_id": "friend", "user_name": "Friend"}, headers=OWNER)
    assert response.status_code == 201
    assert response.json()["user_id"] == "qq:friend"

    response = client.post("/api/v1/allow-list", json={"user_id": "x"}, headers=MEMBER)
    assert response.status_code == 403

    assert client.get("/api/v1/allow-list", headers=MEMBER).json()["total"] == 1

    response = client.delete("/api/v1/allow-list/friend", headers=OWNER)
    assert response.status_code == 200
    assert response.json()["user_id"] == "qq:friend"
    assert client.delete("/api/v1/allow-list/friend", headers=OWNER).status_code == 404

    client.post("/api/v1/allow-list", json={"user_id": "a"}, headers=OWNER)
    client.post("/api/v1/allow-list", json={"user_id": "b"}, headers=OWNER)
    assert client.delete("/api/v1/allow-list", headers=OWNER).json()["removed"] == 2


def test_admin_endpoints(client):
    client.post("/api/v1/arcades", json={"name": "Round1", "aliases": ["r1"]}, headers=OWNER)
    client.post("/api/v1/arcades/r1/queue", json={"count": 4}, headers=MEMBER)

    status = client.get("/api/v1/admin/status", headers=MEMBER).json()
    assert status["local_arcades"] == 1
    assert status["total_current"] == 4
    assert status["reset_armed"] is True

    report = client.get("/api/v1/admin/report", headers=MEMBER).json()
    assert report["most_crowded"] == {"name": "Round1", "current": 4}

    whoami = client.get("/api/v1/admin/whoami", headers=OWNER).json()
    assert whoami["user_id"] == "qq:owner"
    assert whoami["is_owner"] is True
    assert client.get("/api/v1/admin/whoami", headers=MEMBER).json()["can_manage"] is False


def test_tenant_reset(client):
    client.post("/api/v1/arcades", json={"name": "Round1", "aliases": []}, headers=OWNER)

    response = client.post("/api/v1/admin/reset", json={"confirmation": "nope"}, headers=OWNER)
    assert response.status_code == 400
    assert response.json()["type"] == "confirmation_mismatch"

    response = client.post("/api/v1/admin/reset", json={"confirmation": "confirm reset all data"}, headers=MEMBER)
    assert response.status_code == 403

    response = client.post("/api/v1/admin/reset", json={"confirmation": "confirm reset all data"}, headers=OWNER)
    assert response.status_code == 200
    assert response.json()["arcades_removed"] == 1
    assert client.get("/api/v1/admin/status", headers=OWNER).json()["reset_armed"] is False


def test_held_tenant_lock_does_not_stall_other_requests(client):
    client.post("/api/v1/arcades", json={"name": "Round1", "aliases": []}, headers=OWNER)

    locks = app.state.locks
    held = threading.Event()
    release = threading.Event()

    def hold():
        with locks.hold("qq:100"):
            held.set()
            release.wait(5)

    results = {}

    def update():
        results["update"] = client.post("/api/v1/arcades/Round1/queue", json={"count": 3}, headers=MEMBER)

    holder = threading.Thread(target=hold)
    holder.start()
    assert held.wait(5)
    updater = threading.Thread(target=update)
    updater.start()

    try:
        started = time.monotonic()
        assert client.get("/health").status_code == 200
        other = auth_headers("member", group_id="200")
        assert client.get("/api/v1/arcades", headers=other).status_code == 200
        assert time.monotonic() - started < 1.0
        assert "update" not in results
    finally:
        release.set()
        holder.join(5)
        updater.join(5)

    assert results["update"].status_code == 200
    assert results["update"].json()["arcade"]["current"] == 3
