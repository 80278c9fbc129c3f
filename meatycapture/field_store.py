"""
field_store.py

field-option catalog split by scope:

    fields.json                  global options (seeded with defaults on first read)
    fields/<project_id>.json     options added for one project (never seeded)

each file is {"options": [...]} and is written independently. removing a
project deletes its file (see project_store.remove).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .atomic_write import read_json, write_json
from .errors import ResourceConflictError, ResourceNotFoundError, StorePermissionError, ValidationError
from .models import (
    DEFAULT_FIELD_OPTIONS,
    FieldImport,
    FieldImportCounts,
    FieldOption,
    FieldOptionCreate,
    ImportSummary,
    dump_record,
    is_slug,
    new_option_id,
    parse_input,
    parse_stored,
    utc_now,
)
from .ports import FieldCatalogStore, ProjectStore


logger = logging.getLogger(__name__)

GLOBAL_FIELDS_FILENAME = "fields.json"
PROJECT_FIELDS_DIRNAME = "fields"
YAML_SUFFIXES = (".yaml", ".yml")


def project_fields_path(root: Path, project_id: str) -> Path:
    # ids are slugs, so they are safe as file names
    if not is_slug(project_id):
        raise ValidationError(f"invalid project id: {project_id}")
    return root / PROJECT_FIELDS_DIRNAME / f"{project_id}.json"


def default_options(now: datetime) -> list[FieldOption]:
    return [
        FieldOption(id=new_option_id(field, value), field=field, value=value, scope="global", created_at=now)
        for field, values in DEFAULT_FIELD_OPTIONS.items()
        for value in values
    ]


class LocalFieldCatalogStore:
    def __init__(
        self,
        root: Path | str,
        project_store: ProjectStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.root = Path(root)
        self.global_path = self.root / GLOBAL_FIELDS_FILENAME
        self.projects_dir = self.root / PROJECT_FIELDS_DIRNAME
        self._projects = project_store
        self._clock = clock

    def project_path(self, project_id: str) -> Path:
        return project_fields_path(self.root, project_id)

    def _read(self, path: Path) -> list[FieldOption] | None:
        data = read_json(path)
        if data is None:
            return None
        return [parse_stored(FieldOption, o, path) for o in data.get("options", [])]

    def _write(self, path: Path, options: list[FieldOption]) -> None:
        write_json(path, {"options": [dump_record(o) for o in options]})

    def _load_or_initialize_global(self) -> list[FieldOption]:
        options = self._read(self.global_path)
        if options is not None:
            return options

        options = default_options(self._clock())
        self._write(self.global_path, options)
        logger.info("seeded %s with %d default options", self.global_path, len(options))
        return options

    def get_global(self) -> list[FieldOption]:
        return self._load_or_initialize_global()

    def get_for_project(self, project_id: str) -> list[FieldOption]:
        return self._read(self.project_path(project_id)) or []

    def get_by_field(self, field: str, project_id: str | None = None) -> list[FieldOption]:
        options = [o for o in self.get_global() if o.field == field]
        if project_id:
            options += [o for o in self.get_for_project(project_id) if o.field == field]
        return options

    def add_option(self, fields: FieldOptionCreate | dict[str, Any]) -> FieldOption:
        req = parse_input(FieldOptionCreate, fields)

        if req.scope == "project":
            if self._projects.get(req.project_id) is None:
                raise ResourceNotFoundError("project", req.project_id)
            path = self.project_path(req.project_id)
            options = self._read(path) or []
        else:
            path = self.global_path
            options = self._load_or_initialize_global()

        if any(o.field == req.field and o.value == req.value for o in options):
            raise ResourceConflictError(
                "field",
                f"{req.field}={req.value}",
                f"{req.scope} option already exists for {req.field}: {req.value}",
            )

        option = FieldOption(
            id=new_option_id(req.field, req.value),
            field=req.field,
            value=req.value,
            scope=req.scope,
            project_id=req.project_id,
            created_at=self._clock(),
        )
        options.append(option)
        self._write(path, options)

        logger.info("added %s option %s (%s=%s)", req.scope, option.id, req.field, req.value)
        return option

    def _scope_paths(self) -> list[Path]:
        """global file first, then every per-project file on disk."""
        return [self.global_path, *sorted(self.projects_dir.glob("*.json"))]

    def remove_option(self, option_id: str) -> None:
        for path in self._scope_paths():
            options = self._read(path)
            if not options:
                continue
            remaining = [o for o in options if o.id != option_id]
            if len(remaining) == len(options):
                continue

            self._write(path, remaining)
            logger.info("removed field option %s from %s", option_id, path)
            return

        raise ResourceNotFoundError("field", option_id)


def read_import_file(path: Path | str) -> Any:
    """raw {field: [values]} document from a .json, .yaml or .yml file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StorePermissionError(path, "read", exc.strerror or str(exc)) from exc

    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValidationError(f"failed to parse {path}: {exc}") from exc


def import_options(
    field_store: FieldCatalogStore,
    project_store: ProjectStore,
    entries: FieldImport | dict[str, Any],
    project_id: str | None = None,
    merge: bool = False,
) -> ImportSummary:
    """
    add every {field: [values]} entry to one scope (global, or project_id).

    values already in that scope are a conflict and nothing is written,
    unless merge is set, in which case they are skipped and counted.
    """
    values = parse_input(FieldImport, entries).root

    if project_id:
        if project_store.get(project_id) is None:
            raise ResourceNotFoundError("project", project_id)
        existing_options = field_store.get_for_project(project_id)
    else:
        existing_options = field_store.get_global()

    existing = {(o.field, o.value) for o in existing_options}
    duplicates = [f"{f}={v}" for f, vs in values.items() for v in vs if (f, v) in existing]
    if duplicates and not merge:
        raise ResourceConflictError(
            "field",
            ", ".join(duplicates),
            f"options already exist: {', '.join(duplicates)}",
        )

    summary = ImportSummary(total_fields=len(values), total_values=sum(len(vs) for vs in values.values()))
    base: dict[str, Any] = {"scope": "project", "project_id": project_id} if project_id else {"scope": "global"}

    for field, vs in values.items():
        counts = summary.fields.setdefault(field, FieldImportCounts())
        for value in vs:
            if (field, value) in existing:
                counts.skipped += 1
                continue
            try:
                field_store.add_option({**base, "field": field, "value": value})
            except ResourceConflictError:
                # added by someone else since the duplicate check
                if not merge:
                    raise
                counts.skipped += 1
                continue
            existing.add((field, value))
            counts.added += 1

    summary.added = sum(c.added for c in summary.fields.values())
    summary.skipped = sum(c.skipped for c in summary.fields.values())
    logger.info("imported %d options (%d skipped) into %s", summary.added, summary.skipped, project_id or "global")
    return summary
