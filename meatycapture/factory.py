"""
factory.py

decides, once per invocation, whether the stores are local json files or the
remote api. the caller gets an Adapters value back; nothing is registered
globally.

api url resolution:
    1. MEATYCAPTURE_API_URL (settings.api_url)
    2. api_url in config.json
    3. none -> local stores under settings.store_root
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal

import httpx

from .api_client import ApiConfigStore, ApiFieldCatalogStore, ApiProjectStore, HttpClient
from .config_store import LocalConfigStore
from .atomic_write import remove_file
from .errors import ResourceConflictError, ResourceNotFoundError
from .field_store import LocalFieldCatalogStore
from .models import ConfigRecord, utc_now
from .ports import ConfigStore, FieldCatalogStore, ProjectStore
from .project_store import LocalProjectStore
from .settings import Settings, load_settings


logger = logging.getLogger(__name__)

STARTER_PROJECT_ID = "meatycapture"
STARTER_PROJECT_NAME = "MeatyCapture"


@dataclass
class Adapters:
    config_store: ConfigStore
    project_store: ProjectStore
    field_store: FieldCatalogStore
    mode: Literal["local", "api"]
    settings: Settings

    def default_project(self) -> str | None:
        """env override wins over the persisted setting."""
        if self.settings.default_project:
            return self.settings.default_project
        return self.config_store.get().default_project

    def set_config(self, key: str, value: str) -> ConfigRecord:
        return set_config_checked(self.config_store, self.project_store, key, value)


def set_config_checked(config_store: ConfigStore, project_store: ProjectStore, key: str, value: str) -> ConfigRecord:
    """config_store.set, plus the cross-store check that default_project names a real project."""
    project_id = value.strip() if isinstance(value, str) else value
    if key == "default_project" and project_id:
        if project_store.get(project_id) is None:
            raise ResourceNotFoundError("project", project_id)
    return config_store.set(key, value)


def resolve_api_url(settings: Settings) -> str | None:
    if settings.api_url:
        return settings.api_url
    return LocalConfigStore(settings.store_root).get().api_url or None


def local_adapters(settings: Settings) -> Adapters:
    project_store = LocalProjectStore(settings.store_root)
    return Adapters(
        config_store=LocalConfigStore(settings.store_root),
        project_store=project_store,
        field_store=LocalFieldCatalogStore(settings.store_root, project_store),
        mode="local",
        settings=settings,
    )


def api_adapters(settings: Settings, api_url: str, client: httpx.Client | None = None) -> Adapters:
    http = HttpClient(api_url, auth_token=settings.auth_token, timeout_s=settings.http_timeout_s, client=client)
    return Adapters(
        config_store=ApiConfigStore(http),
        project_store=ApiProjectStore(http),
        field_store=ApiFieldCatalogStore(http),
        mode="api",
        settings=settings,
    )


def create_adapters(settings: Settings | None = None, client: httpx.Client | None = None) -> Adapters:
    settings = settings or load_settings()
    api_url = resolve_api_url(settings)
    if api_url:
        logger.debug("using api stores at %s", api_url)
        return api_adapters(settings, api_url, client=client)

    logger.debug("using local stores under %s", settings.store_root)
    return local_adapters(settings)


def init_local_store(
    root: Path | str,
    force: bool = False,
    clock: Callable[[], datetime] = utc_now,
) -> list[Path]:
    """
    write a fresh config.json, a projects.json holding one starter project
    and the seeded fields.json. an existing config.json is a conflict unless
    force is set, in which case the old store files are deleted first.
    returns the files written.
    """
    root = Path(root)
    config_store = LocalConfigStore(root, clock=clock)
    project_store = LocalProjectStore(root, clock=clock)
    field_store = LocalFieldCatalogStore(root, project_store, clock=clock)

    if config_store.exists():
        if not force:
            raise ResourceConflictError("config", str(root), f"configuration already exists at {root}")
        stale = [config_store.path, project_store.path, field_store.global_path]
        stale += sorted(field_store.projects_dir.glob("*.json"))
        for path in stale:
            remove_file(path)
        logger.info("removed %d existing store files under %s", len(stale), root)

    config_store.initialize()
    if project_store.get(STARTER_PROJECT_ID) is None:
        project_store.create({
            "id": STARTER_PROJECT_ID,
            "name": STARTER_PROJECT_NAME,
            "default_path": str(root / "docs" / STARTER_PROJECT_ID),
        })
    field_store.get_global()
    return [config_store.path, project_store.path, field_store.global_path]
