"""
models.py

pydantic records persisted by the stores, the input shapes accepted by their
create/update calls, and the small helpers (slugify, ids, clock) they share.
"""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any, Literal, TypeVar, get_args

import pydantic
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, RootModel, StringConstraints, model_validator

from .errors import StorePermissionError, ValidationError


SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
Slug = Annotated[str, StringConstraints(pattern=SLUG_PATTERN)]

FieldName = Literal["type", "domain", "context", "priority", "status", "tags"]
FieldScope = Literal["global", "project"]
ConfigKey = Literal["default_project", "api_url"]

FIELD_NAMES: tuple[str, ...] = get_args(FieldName)
CONFIG_KEYS: tuple[str, ...] = get_args(ConfigKey)
CONFIG_VERSION = "1.0.0"

DEFAULT_FIELD_OPTIONS: dict[str, tuple[str, ...]] = {
    "type": ("enhancement", "bug", "idea", "task", "question"),
    "priority": ("low", "medium", "high", "critical"),
    "status": ("triage", "backlog", "planned", "in-progress", "done", "wontfix"),
}


def utc_now() -> datetime:
    return datetime.now(UTC)


def slugify(text: str) -> str:
    """'My Project_Name!' -> 'my-project-name'"""
    if not isinstance(text, str):
        return ""
    s = text.strip().lower()
    s = re.sub(r"[\s_]+", "-", s)
    s = re.sub(r"[^a-z0-9-]", "", s)
    s = re.sub(r"-+", "-", s)
    return s.strip("-")


def is_slug(text: str) -> bool:
    return bool(re.fullmatch(SLUG_PATTERN, text or ""))


def new_option_id(field: str, value: str) -> str:
    """<field>-<value slug>-<8 hex>; the random tail keeps ids unique across scopes."""
    return f"{field}-{slugify(value) or 'option'}-{uuid.uuid4().hex[:8]}"


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


# "" clears an optional value instead of being stored literally
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
OptionalSlug = Annotated[Slug | None, BeforeValidator(_blank_to_none)]


class ConfigRecord(BaseModel):
    version: str = CONFIG_VERSION
    created_at: datetime
    updated_at: datetime
    default_project: str | None = None
    api_url: str | None = None


class Project(BaseModel):
    id: Slug
    name: str
    default_path: str
    repo_url: str | None = None
    enabled: bool = True
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _timestamps_ordered(self) -> Project:
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self


class ProjectCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Slug | None = Field(None, description="slug id; derived from name when omitted")
    name: str = Field(..., min_length=1)
    default_path: str = Field(..., min_length=1)
    repo_url: OptionalText = None
    enabled: bool = True

    def resolved_id(self) -> str:
        if self.id:
            return self.id
        slug = slugify(self.name)
        if not slug:
            raise ValidationError(f'invalid project name: cannot generate id from "{self.name}"')
        return slug


class ProjectPatch(BaseModel):
    """partial update; only the fields actually sent are merged."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    default_path: str | None = Field(None, min_length=1)
    repo_url: OptionalText = None
    enabled: bool | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def _check_scope(scope: str, project_id: str | None) -> None:
    if scope == "project" and not project_id:
        raise ValueError("project_id is required for project-scoped options")
    if scope == "global" and project_id:
        raise ValueError("project_id must not be set for global options")


class FieldOption(BaseModel):
    id: str = Field(..., min_length=1)
    field: FieldName
    value: str = Field(..., min_length=1)
    scope: FieldScope
    project_id: Slug | None = None
    created_at: datetime

    @model_validator(mode="after")
    def _scope_matches_project(self) -> FieldOption:
        _check_scope(self.scope, self.project_id)
        return self


class FieldOptionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    field: FieldName
    value: str = Field(..., min_length=1)
    scope: FieldScope = "global"
    project_id: OptionalSlug = None

    @model_validator(mode="after")
    def _scope_matches_project(self) -> FieldOptionCreate:
        _check_scope(self.scope, self.project_id)
        return self


class ConfigUpdate(BaseModel):
    key: str
    value: str = ""


ImportValue = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class FieldImport(RootModel[dict[FieldName, list[ImportValue]]]):
    """{"tags": ["ux", "api"], "priority": ["urgent"]}"""


class FieldImportCounts(BaseModel):
    added: int = 0
    skipped: int = 0


class ImportSummary(BaseModel):
    total_fields: int
    total_values: int
    added: int = 0
    skipped: int = 0
    fields: dict[str, FieldImportCounts] = Field(default_factory=dict)


M = TypeVar("M", bound=BaseModel)


def parse_input(model: type[M], data: M | dict[str, Any]) -> M:
    """validate caller input, re-raising pydantic failures as a store ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        details = [
            {"loc": [str(p) for p in e["loc"]], "msg": e["msg"]}
            for e in exc.errors()
        ]
        summary = "; ".join(f"{'.'.join(d['loc']) or 'body'}: {d['msg']}" for d in details)
        raise ValidationError(f"invalid {model.__name__}: {summary}", details=details) from exc


def dump_record(record: BaseModel) -> dict[str, Any]:
    """json-ready dict; absent optionals are omitted rather than written as null."""
    return record.model_dump(mode="json", exclude_none=True)


def parse_stored(model: type[M], data: Any, path: Path) -> M:
    """validate a record read back from disk; a malformed file is a read failure."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise StorePermissionError(path, "read", f"invalid {model.__name__} record") from exc
