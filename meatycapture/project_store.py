"""
project_store.py

project registry backed by projects.json: {"projects": [...]} in insertion order.

every mutation is a read-modify-write of the whole file through atomic_write,
keeping the previous version in projects.json.bak.
no lock is held between the read and the write, so two processes racing on
the same file are last-writer-wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from .atomic_write import read_json, remove_file, write_json
from .errors import ResourceConflictError, ResourceNotFoundError
from .field_store import project_fields_path
from .models import Project, ProjectCreate, ProjectPatch, dump_record, parse_input, parse_stored, utc_now


logger = logging.getLogger(__name__)

PROJECTS_FILENAME = "projects.json"


class LocalProjectStore:
    def __init__(self, root: Path | str, clock: Callable[[], datetime] = utc_now):
        self.root = Path(root)
        self.path = self.root / PROJECTS_FILENAME
        self._clock = clock

    def _read(self) -> list[Project]:
        data = read_json(self.path)
        if data is None:
            return []
        return [parse_stored(Project, p, self.path) for p in data.get("projects", [])]

    def _write(self, projects: list[Project]) -> None:
        write_json(self.path, {"projects": [dump_record(p) for p in projects]}, backup=True)

    def list(self) -> list[Project]:
        return self._read()

    def get(self, project_id: str) -> Project | None:
        return next((p for p in self._read() if p.id == project_id), None)

    def create(self, fields: ProjectCreate | dict[str, Any]) -> Project:
        req = parse_input(ProjectCreate, fields)
        project_id = req.resolved_id()

        projects = self._read()
        if any(p.id == project_id for p in projects):
            raise ResourceConflictError("project", project_id)

        now = self._clock()
        project = Project(
            id=project_id,
            name=req.name,
            default_path=req.default_path,
            repo_url=req.repo_url,
            enabled=req.enabled,
            created_at=now,
            updated_at=now,
        )
        projects.append(project)
        self._write(projects)

        logger.info("created project %s", project_id)
        return project

    def update(self, project_id: str, patch: ProjectPatch | dict[str, Any]) -> Project:
        changes = parse_input(ProjectPatch, patch).changes()

        projects = self._read()
        idx = next((i for i, p in enumerate(projects) if p.id == project_id), None)
        if idx is None:
            raise ResourceNotFoundError("project", project_id)

        existing = projects[idx]
        # not diffed: updated_at moves even when nothing else changed
        merged = parse_input(Project, {
            **existing.model_dump(),
            **changes,
            "id": existing.id,
            "created_at": existing.created_at,
            "updated_at": max(self._clock(), existing.updated_at),
        })
        projects[idx] = merged
        self._write(projects)

        logger.info("updated project %s (%s)", project_id, ", ".join(sorted(changes)) or "touch")
        return merged

    def set_enabled(self, project_id: str, enabled: bool) -> Project:
        return self.update(project_id, {"enabled": enabled})

    def remove(self, project_id: str) -> None:
        """also drops fields/<project_id>.json so a re-created project starts empty."""
        projects = self._read()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            raise ResourceNotFoundError("project", project_id)

        self._write(remaining)
        remove_file(project_fields_path(self.root, project_id))
        logger.info("removed project %s", project_id)
