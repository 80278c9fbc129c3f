from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from meatycapture.config_store import LocalConfigStore, validate_config_value
from meatycapture.errors import StorePermissionError, ValidationError
from meatycapture.models import CONFIG_VERSION


def test_get_returns_defaults_without_writing(config_store: LocalConfigStore, store_root: Path):
    cfg = config_store.get()

    assert cfg.version == CONFIG_VERSION
    assert cfg.default_project is None
    assert cfg.api_url is None
    assert cfg.created_at == cfg.updated_at
    assert not store_root.exists()
    assert not config_store.exists()


def test_set_persists_and_preserves_created_at(config_store: LocalConfigStore):
    first = config_store.set("default_project", "docs")
    second = config_store.set("api_url", "https://capture.example.com/")

    assert second.default_project == "docs"
    assert second.api_url == "https://capture.example.com"
    assert second.created_at == first.created_at
    assert second.updated_at > first.updated_at

    on_disk = json.loads(config_store.path.read_text(encoding="utf-8"))
    assert on_disk["default_project"] == "docs"
    assert on_disk["api_url"] == "https://capture.example.com"
    assert on_disk["version"] == CONFIG_VERSION


def test_empty_value_clears_setting(config_store: LocalConfigStore):
    config_store.set("api_url", "http://localhost:3737")
    cfg = config_store.set("api_url", "")

    assert cfg.api_url is None
    on_disk = json.loads(config_store.path.read_text(encoding="utf-8"))
    assert "api_url" not in on_disk
    assert config_store.get().api_url is None


@pytest.mark.parametrize("key", ["default_projects", "API_URL", "theme", ""])
def test_unknown_key_is_rejected(config_store: LocalConfigStore, key: str):
    with pytest.raises(ValidationError):
        config_store.set(key, "x")
    assert not config_store.exists()


@pytest.mark.parametrize("url", ["ftp://example.com", "localhost:3737", "http://", "not a url"])
def test_bad_api_url_is_rejected(url: str):
    with pytest.raises(ValidationError):
        validate_config_value("api_url", url)


def test_default_project_must_be_slug():
    with pytest.raises(ValidationError):
        validate_config_value("default_project", "My Project")
    assert validate_config_value("default_project", "  docs  ") == "docs"


def test_updated_at_never_moves_backwards(store_root: Path, make_clock):
    # a clock stepping backwards, e.g. after an ntp correction
    store = LocalConfigStore(store_root, clock=make_clock(step=timedelta(seconds=-5)))

    first = store.set("default_project", "docs")
    second = store.set("default_project", "web")

    assert second.updated_at >= first.updated_at
    assert second.updated_at >= second.created_at


def test_malformed_file_is_a_read_failure(config_store: LocalConfigStore):
    config_store.path.parent.mkdir(parents=True)
    config_store.path.write_text('{"version": "1.0.0"}', encoding="utf-8")

    with pytest.raises(StorePermissionError) as ei:
        config_store.get()
    assert ei.value.operation == "read"
