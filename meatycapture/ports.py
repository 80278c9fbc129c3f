"""
ports.py

store contracts shared by the local (json files) and remote (http) backends.
"""

from __future__ import annotations

from typing import Any, Protocol

from .models import ConfigRecord, FieldOption, FieldOptionCreate, Project, ProjectCreate, ProjectPatch


class ConfigStore(Protocol):
    def get(self) -> ConfigRecord: ...

    def set(self, key: str, value: str) -> ConfigRecord: ...


class ProjectStore(Protocol):
    def list(self) -> list[Project]: ...

    def get(self, project_id: str) -> Project | None: ...

    def create(self, fields: ProjectCreate | dict[str, Any]) -> Project: ...

    def update(self, project_id: str, patch: ProjectPatch | dict[str, Any]) -> Project: ...

    def set_enabled(self, project_id: str, enabled: bool) -> Project: ...

    def remove(self, project_id: str) -> None: ...


class FieldCatalogStore(Protocol):
    def get_global(self) -> list[FieldOption]: ...

    def get_for_project(self, project_id: str) -> list[FieldOption]: ...

    def get_by_field(self, field: str, project_id: str | None = None) -> list[FieldOption]: ...

    def add_option(self, fields: FieldOptionCreate | dict[str, Any]) -> FieldOption: ...

    def remove_option(self, option_id: str) -> None: ...
