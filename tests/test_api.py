from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from meatycapture.factory import local_adapters
from meatycapture.main import create_app
from meatycapture.settings import load_settings


@pytest.fixture()
def client(store_root: Path) -> TestClient:
    """http client over a fresh local store."""
    return TestClient(create_app(local_adapters(load_settings({}, store_root=store_root))))


def test_health(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_config_roundtrip(client: TestClient):
    r = client.get("/api/config")
    assert r.status_code == 200
    assert r.json()["version"] == "1.0.0"
    assert "api_url" not in r.json()

    r = client.patch("/api/config", json={"key": "api_url", "value": "http://x.example/"})
    assert r.status_code == 200
    assert r.json()["api_url"] == "http://x.example"

    r = client.patch("/api/config", json={"key": "colour", "value": "red"})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"


def test_config_default_project_must_exist(client: TestClient):
    r = client.patch("/api/config", json={"key": "default_project", "value": "docs"})
    assert r.status_code == 404
    assert r.json()["resource_type"] == "project"
    assert r.json()["resource_id"] == "docs"


def test_project_crud(client: TestClient):
    r = client.post("/api/projects", json={"name": "Docs", "default_path": "/d"})
    assert r.status_code == 201
    body = r.json()
    assert body["id"] == "docs"
    assert body["enabled"] is True
    assert "repo_url" not in body

    r = client.post("/api/projects", json={"name": "Docs", "default_path": "/d"})
    assert r.status_code == 409
    assert r.json()["error"] == "Conflict"

    r = client.patch("/api/projects/docs", json={"enabled": False})
    assert r.status_code == 200
    assert r.json()["enabled"] is False

    assert [p["id"] for p in client.get("/api/projects").json()] == ["docs"]

    r = client.delete("/api/projects/docs")
    assert r.status_code == 204

    r = client.get("/api/projects/docs")
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"


def test_request_validation_is_400(client: TestClient):
    r = client.post("/api/projects", json={"name": "Docs"})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"
    assert r.json()["details"]

    r = client.get("/api/fields/by-field/colour")
    assert r.status_code == 400


def test_fields_routes(client: TestClient):
    client.post("/api/projects", json={"name": "Docs", "default_path": "/d"})

    assert client.get("/api/fields/global").json()

    r = client.post("/api/fields", json={"field": "tags", "value": "ux", "scope": "project", "project_id": "docs"})
    assert r.status_code == 201
    option_id = r.json()["id"]

    assert [o["id"] for o in client.get("/api/fields/project/docs").json()] == [option_id]

    r = client.get("/api/fields/by-field/tags", params={"project_id": "docs"})
    assert [o["value"] for o in r.json()] == ["ux"]
    assert client.get("/api/fields/by-field/tags").json() == []

    assert client.delete(f"/api/fields/{option_id}").status_code == 204
    assert client.delete(f"/api/fields/{option_id}").status_code == 404


def test_field_for_unknown_project_is_404(client: TestClient):
    r = client.post("/api/fields", json={"field": "tags", "value": "ux", "scope": "project", "project_id": "ghost"})
    assert r.status_code == 404


def test_unreadable_store_is_403(client: TestClient, store_root: Path):
    store_root.mkdir(parents=True)
    (store_root / "projects.json").write_text("{broken", encoding="utf-8")

    r = client.get("/api/projects")
    assert r.status_code == 403
    assert r.json()["error"] == "Forbidden"
