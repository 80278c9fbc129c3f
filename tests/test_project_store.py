from __future__ import annotations

import pytest

from meatycapture.errors import ResourceConflictError, ResourceNotFoundError, ValidationError
from meatycapture.project_store import LocalProjectStore


def test_create_then_get(project_store: LocalProjectStore):
    created = project_store.create({"name": "Docs", "default_path": "/d"})
    got = project_store.get("docs")

    assert got == created
    assert got.id == "docs"
    assert got.enabled is True
    assert got.created_at == got.updated_at
    assert got.repo_url is None


def test_get_missing_is_none(project_store: LocalProjectStore):
    assert project_store.get("nope") is None
    assert project_store.list() == []


def test_id_derived_from_name(project_store: LocalProjectStore):
    p = project_store.create({"name": "  My Project_Name! ", "default_path": "/p"})
    assert p.id == "my-project-name"


def test_explicit_id_is_kept(project_store: LocalProjectStore):
    p = project_store.create({"id": "web-app", "name": "Frontend", "default_path": "/w"})
    assert p.id == "web-app"
    assert project_store.get("web-app").name == "Frontend"


@pytest.mark.parametrize("fields", [
    {"name": "!!!", "default_path": "/x"},
    {"id": "Not A Slug", "name": "x", "default_path": "/x"},
    {"name": "x"},
    {"name": "", "default_path": "/x"},
    {"name": "x", "default_path": "/x", "owner": "me"},
])
def test_create_rejects_bad_input(project_store: LocalProjectStore, fields: dict):
    with pytest.raises(ValidationError):
        project_store.create(fields)
    assert not project_store.path.exists()


def test_duplicate_create_conflicts_without_mutating(project_store: LocalProjectStore):
    project_store.create({"name": "Docs", "default_path": "/d"})
    before = project_store.path.read_bytes()

    with pytest.raises(ResourceConflictError) as ei:
        project_store.create({"name": "docs", "default_path": "/elsewhere"})

    assert ei.value.resource_type == "project"
    assert ei.value.resource_id == "docs"
    assert project_store.path.read_bytes() == before


def test_list_keeps_insertion_order(project_store: LocalProjectStore):
    for name in ("zeta", "alpha", "mid"):
        project_store.create({"name": name, "default_path": f"/{name}"})

    assert [p.id for p in project_store.list()] == ["zeta", "alpha", "mid"]


def test_update_merges_patch(project_store: LocalProjectStore):
    created = project_store.create({"name": "Docs", "default_path": "/d", "repo_url": "https://git/docs"})

    updated = project_store.update("docs", {"default_path": "/new"})

    assert updated.default_path == "/new"
    assert updated.name == "Docs"
    assert updated.repo_url == "https://git/docs"
    assert updated.created_at == created.created_at
    assert updated.updated_at >= created.updated_at
    assert project_store.get("docs") == updated


def test_update_with_empty_repo_url_clears_it(project_store: LocalProjectStore):
    project_store.create({"name": "Docs", "default_path": "/d", "repo_url": "https://git/docs"})

    updated = project_store.update("docs", {"repo_url": ""})

    assert updated.repo_url is None
    assert "repo_url" not in project_store.path.read_text(encoding="utf-8")


def test_empty_patch_still_touches_updated_at(project_store: LocalProjectStore):
    created = project_store.create({"name": "Docs", "default_path": "/d"})
    touched = project_store.update("docs", {})
    assert touched.updated_at > created.updated_at


@pytest.mark.parametrize("patch", [{"id": "other"}, {"created_at": "2020-01-01T00:00:00Z"}, {"name": ""}])
def test_update_rejects_bad_patch(project_store: LocalProjectStore, patch: dict):
    project_store.create({"name": "Docs", "default_path": "/d"})
    with pytest.raises(ValidationError):
        project_store.update("docs", patch)
    assert project_store.get("docs").name == "Docs"


def test_update_missing_project(project_store: LocalProjectStore):
    with pytest.raises(ResourceNotFoundError) as ei:
        project_store.update("ghost", {"name": "x"})
    assert ei.value.resource_id == "ghost"


def test_set_enabled_is_idempotent(project_store: LocalProjectStore):
    project_store.create({"name": "Docs", "default_path": "/d", "enabled": False})

    first = project_store.set_enabled("docs", True)
    second = project_store.set_enabled("docs", True)

    assert first.enabled and second.enabled
    assert second.updated_at >= first.updated_at

    assert project_store.set_enabled("docs", False).enabled is False


def test_remove(project_store: LocalProjectStore):
    project_store.create({"name": "a", "default_path": "/a"})
    project_store.create({"name": "b", "default_path": "/b"})

    project_store.remove("a")

    assert [p.id for p in project_store.list()] == ["b"]
    with pytest.raises(ResourceNotFoundError):
        project_store.remove("a")


def test_file_layout(project_store: LocalProjectStore):
    project_store.create({"name": "Docs", "default_path": "/d"})
    text = project_store.path.read_text(encoding="utf-8")

    assert project_store.path.name == "projects.json"
    assert text.startswith('{\n  "projects": [')
    assert text.endswith("\n")


def test_previous_registry_kept_as_backup(project_store: LocalProjectStore):
    project_store.create({"name": "Docs", "default_path": "/d"})
    first = project_store.path.read_text(encoding="utf-8")

    project_store.create({"name": "Web", "default_path": "/w"})

    backup = project_store.path.with_name("projects.json.bak")
    assert backup.read_text(encoding="utf-8") == first


def test_remove_deletes_project_field_file(project_store: LocalProjectStore, store_root):
    project_store.create({"name": "Docs", "default_path": "/d"})
    options_file = store_root / "fields" / "docs.json"
    options_file.parent.mkdir(parents=True)
    options_file.write_text('{"options": []}\n', encoding="utf-8")

    project_store.remove("docs")

    assert not options_file.exists()
