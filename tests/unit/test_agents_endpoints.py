import csv
import io
import re
from types import SimpleNamespace

from fastapi.testclient import TestClient

from entity_api.api.deps import get_agent_service


def _create(client, name, **extra):
    r = client.post("/agents/", json={"agent_name": name, **extra})
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_agent_create_and_get(client):
    created = _create(client, "Alpha", description="first agent")
    assert created["agent_name"] == "Alpha"
    assert created["is_active"] is True
    assert isinstance(created["id"], int)

    r = client.get(f"/agents/{created['id']}")
    assert r.status_code == 200
    assert r.json()["description"] == "first agent"


def test_agent_create_duplicate_is_business_fault(client):
    _create(client, "Alpha")
    r = client.post("/agents/", json={"agent_name": "alpha"})
    assert r.status_code == 400
    body = r.json()
    assert body["error_kind"] == "conflict"
    assert "alpha" in body["message"]


def test_agent_get_missing_is_not_found_fault(client):
    r = client.get("/agents/4242")
    assert r.status_code == 400
    assert r.json()["error_kind"] == "not_found"


def test_agent_create_blank_name_returns_raw_failures(client):
    r = client.post("/agents/", json={"agent_name": "   "})
    assert r.status_code == 400
    assert r.json() == [
        {"field": "agent_name", "message": "agent_name must not be blank", "rejected_value": "   "},
    ]


def test_request_body_validation_returns_raw_failures(client):
    r = client.post("/agents/", json={"description": "no name", "is_active": "not-a-bool"})
    assert r.status_code == 400
    failures = r.json()
    assert isinstance(failures, list)
    fields = {f["field"] for f in failures}
    assert {"agent_name", "is_active"} <= fields
    assert all(set(f) == {"field", "message", "rejected_value"} for f in failures)


def test_path_validation_uses_same_channel(client):
    r = client.get("/agents/not-a-number")
    assert r.status_code == 400
    assert r.json()[0]["field"] == "agent_id"
    assert r.json()[0]["rejected_value"] == "not-a-number"


def test_agent_update(client):
    created = _create(client, "Bravo")
    r = client.put(f"/agents/{created['id']}", json={"agent_name": " Bravo II ", "is_active": False})
    assert r.status_code == 200, r.text
    assert r.json()["agent_name"] == "Bravo II"
    assert r.json()["is_active"] is False


def test_agent_update_conflict_and_missing(client):
    _create(client, "Charlie")
    other = _create(client, "Delta")
    r = client.put(f"/agents/{other['id']}", json={"agent_name": "CHARLIE"})
    assert r.status_code == 400
    assert r.json()["error_kind"] == "conflict"

    r = client.put("/agents/999", json={"description": "x"})
    assert r.status_code == 400
    assert r.json()["error_kind"] == "not_found"


def test_agent_update_explicit_null_is_validation_failure(client):
    created = _create(client, "Echo")
    r = client.put(f"/agents/{created['id']}", json={"is_active": None})
    assert r.status_code == 400
    assert r.json() == [{"field": "is_active", "message": "is_active must not be null", "rejected_value": None}]


def test_agent_delete(client):
    created = _create(client, "Foxtrot")
    r = client.delete(f"/agents/{created['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "Agent deleted successfully"}
    assert client.get(f"/agents/{created['id']}").status_code == 400
    assert client.delete(f"/agents/{created['id']}").json()["error_kind"] == "not_found"


def test_agent_list_paged(client):
    for name in ["Gamma", "Alpha", "Beta"]:
        _create(client, name)
    r = client.get("/agents/", params={"$orderby": "agent_name", "$top": 2, "$count": "true"})
    assert r.status_code == 200
    body = r.json()
    assert [a["agent_name"] for a in body["items"]] == ["Alpha", "Beta"]
    assert body["total_count"] == 3
    assert body["next_link"]

    follow = client.get(body["next_link"])
    assert follow.status_code == 200
    assert [a["agent_name"] for a in follow.json()["items"]] == ["Gamma"]
    assert follow.json()["next_link"] is None


def test_agent_list_without_count_has_null_total(client):
    _create(client, "Solo")
    body = client.get("/agents/").json()
    assert body["total_count"] is None
    assert body["next_link"] is None
    assert len(body["items"]) == 1


def test_agent_list_empty(client):
    r = client.get("/agents/", params={"$count": "true"})
    assert r.json() == {"items": [], "next_link": None, "total_count": 0}


def test_agent_list_filter(client):
    for name in ["Alpine", "Alps", "Beach"]:
        _create(client, name)
    _create(client, "Altitude", is_active=False)
    r = client.get("/agents/", params={"$filter": "startswith(agent_name,'Al') and is_active eq true", "$orderby": "agent_name desc"})
    assert r.status_code == 200
    assert [a["agent_name"] for a in r.json()["items"]] == ["Alps", "Alpine"]


def test_agent_list_invalid_query_options(client):
    r = client.get("/agents/", params={"$filter": "agent_name eq"})
    assert r.status_code == 400
    assert r.json()["error_kind"] == "invalid_query"

    r = client.get("/agents/", params={"$orderby": "nonexistent"})
    assert r.status_code == 400
    assert r.json()["error_kind"] == "invalid_query"

    r = client.get("/agents/", params={"$filter": "is_active eq 'yes'"})
    assert r.status_code == 400
    assert r.json()["error_kind"] == "invalid_query"

    r = client.get("/agents/", params={"$top": "0"})
    assert r.status_code == 400


def test_agent_list_csv_export(client):
    for name in ["Kilo", "Lima", "Mike"]:
        _create(client, name, description="semi;colon")
    r = client.get("/agents/", params={"$orderby": "agent_name desc", "$top": 2}, headers={"Accept": "text/csv"})
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/octet-stream"
    assert re.fullmatch(r'attachment; filename="export\d{14}\.csv"', r.headers["content-disposition"])

    rows = list(csv.reader(io.StringIO(r.content.decode("utf-8")), delimiter=";"))
    header, data = rows[0], rows[1:]
    assert header == ["agent_name", "description", "is_active", "id", "created_at", "updated_at"]
    assert [row[0] for row in data] == ["Mike", "Lima"]
    assert all(row[1] == "semi;colon" for row in data)


def test_agent_list_csv_export_empty(client):
    r = client.get("/agents/", headers={"Accept": "text/csv"})
    assert r.status_code == 200
    assert r.content == b""


class _BrokenService:
    def query(self):
        # Rows missing required fields make the projection fail
        return [SimpleNamespace(id=1, agent_name="partial")]

    def get(self, agent_id):
        raise RuntimeError("database unavailable")


def test_projection_failure_is_internal_fault(client):
    from entity_api.api.main import app

    app.dependency_overrides[get_agent_service] = lambda: _BrokenService()
    r = client.get("/agents/")
    assert r.status_code == 500
    assert r.json()["error_kind"] == "internal"


def test_unexpected_service_error_is_internal_fault(client):
    from entity_api.api.main import app

    app.dependency_overrides[get_agent_service] = lambda: _BrokenService()
    r = client.get("/agents/1")
    assert r.status_code == 500
    assert r.json() == {
        "error_kind": "internal",
        "error_type": "RuntimeError",
        "message": "database unavailable",
        "details": None,
    }


def test_exception_outside_outcome_handler_is_classified():
    from fastapi import FastAPI
    from entity_api.api import main

    app = FastAPI()
    app.add_exception_handler(Exception, main.unhandled_exception_handler)

    @app.get("/boom")
    def boom():
        raise RuntimeError("escaped")

    r = TestClient(app, raise_server_exceptions=False).get("/boom")
    assert r.status_code == 500
    assert r.json()["error_type"] == "RuntimeError"
