"""
api_client.py

remote (http) implementations of the store contracts, talking to the api in
main.py. http status codes are mapped back onto the store error kinds so
callers cannot tell which backend they got.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import pydantic
from pydantic import BaseModel

from .errors import (
    ResourceConflictError,
    ResourceNotFoundError,
    StoreError,
    StorePermissionError,
    ValidationError,
)
from .models import (
    ConfigRecord,
    ConfigUpdate,
    FieldOption,
    FieldOptionCreate,
    Project,
    ProjectCreate,
    ProjectPatch,
    parse_input,
)
from .settings import DEFAULT_HTTP_TIMEOUT_S


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _seg(value: str) -> str:
    return quote(value, safe="")


def _error_from_response(r: httpx.Response, resource: tuple[str, str] | None) -> StoreError:
    try:
        body = r.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = str(body.get("message") or body.get("detail") or f"http {r.status_code}: {r.text[:500]}")
    rtype, rid = resource or ("project", r.request.url.path)
    rtype = body.get("resource_type") or rtype
    rid = body.get("resource_id") or rid

    if r.status_code in (400, 422):
        return ValidationError(message, details=body.get("details"))
    if r.status_code == 404:
        return ResourceNotFoundError(rtype, rid, message)
    if r.status_code == 409:
        return ResourceConflictError(rtype, rid, message)

    op = "read" if r.request.method in ("GET", "HEAD") else "write"
    return StorePermissionError(str(r.request.url), op, message)


class HttpClient:
    """thin wrapper over httpx.Client; pass `client` to reuse an existing one (tests pass a TestClient)."""

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        timeout_s: float = DEFAULT_HTTP_TIMEOUT_S,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        if client is None:
            client = httpx.Client(base_url=self.base_url, timeout=httpx.Timeout(timeout_s, connect=10.0))
        client.headers["Accept"] = "application/json"
        if auth_token:
            client.headers["Authorization"] = f"Bearer {auth_token}"
        self._client = client

    def _op(self, method: str) -> str:
        return "read" if method in ("GET", "HEAD") else "write"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        resource: tuple[str, str] | None = None,
    ) -> Any:
        try:
            r = self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise StorePermissionError(f"{self.base_url}{path}", self._op(method), str(exc)) from exc

        logger.debug("%s %s -> %s", method, path, r.status_code)
        if r.status_code >= 400:
            raise _error_from_response(r, resource)
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError as exc:
            raise StorePermissionError(
                f"{self.base_url}{path}", self._op(method), f"invalid json in {r.status_code} response"
            ) from exc

    def fetch_one(self, model: type[M], method: str, path: str, **kwargs: Any) -> M:
        """request and validate a single record; a body of the wrong shape is a failed read/write."""
        data = self.request(method, path, **kwargs)
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as exc:
            raise StorePermissionError(
                f"{self.base_url}{path}", self._op(method), f"unexpected {model.__name__} response"
            ) from exc

    def fetch_many(self, model: type[M], method: str, path: str, **kwargs: Any) -> list[M]:
        data = self.request(method, path, **kwargs)
        if not isinstance(data, list):
            raise StorePermissionError(f"{self.base_url}{path}", self._op(method), "expected a json array")
        try:
            return [model.model_validate(d) for d in data]
        except pydantic.ValidationError as exc:
            raise StorePermissionError(
                f"{self.base_url}{path}", self._op(method), f"unexpected {model.__name__} response"
            ) from exc

    def close(self) -> None:
        self._client.close()


class ApiConfigStore:
    def __init__(self, client: HttpClient):
        self.client = client

    def get(self) -> ConfigRecord:
        return self.client.fetch_one(ConfigRecord, "GET", "/api/config")

    def set(self, key: str, value: str) -> ConfigRecord:
        body = ConfigUpdate(key=key, value=value).model_dump()
        return self.client.fetch_one(ConfigRecord, "PATCH", "/api/config", json=body, resource=("config", key))


class ApiProjectStore:
    def __init__(self, client: HttpClient):
        self.client = client

    def list(self) -> list[Project]:
        return self.client.fetch_many(Project, "GET", "/api/projects")

    def get(self, project_id: str) -> Project | None:
        try:
            return self.client.fetch_one(
                Project, "GET", f"/api/projects/{_seg(project_id)}", resource=("project", project_id)
            )
        except ResourceNotFoundError:
            return None

    def create(self, fields: ProjectCreate | dict[str, Any]) -> Project:
        req = parse_input(ProjectCreate, fields)
        return self.client.fetch_one(
            Project,
            "POST",
            "/api/projects",
            json=req.model_dump(exclude_none=True),
            resource=("project", req.resolved_id()),
        )

    def update(self, project_id: str, patch: ProjectPatch | dict[str, Any]) -> Project:
        changes = parse_input(ProjectPatch, patch).changes()
        return self.client.fetch_one(
            Project, "PATCH", f"/api/projects/{_seg(project_id)}", json=changes, resource=("project", project_id)
        )

    def set_enabled(self, project_id: str, enabled: bool) -> Project:
        return self.update(project_id, {"enabled": enabled})

    def remove(self, project_id: str) -> None:
        self.client.request("DELETE", f"/api/projects/{_seg(project_id)}", resource=("project", project_id))


class ApiFieldCatalogStore:
    def __init__(self, client: HttpClient):
        self.client = client

    def get_global(self) -> list[FieldOption]:
        return self.client.fetch_many(FieldOption, "GET", "/api/fields/global")

    def get_for_project(self, project_id: str) -> list[FieldOption]:
        return self.client.fetch_many(
            FieldOption, "GET", f"/api/fields/project/{_seg(project_id)}", resource=("project", project_id)
        )

    def get_by_field(self, field: str, project_id: str | None = None) -> list[FieldOption]:
        params = {"project_id": project_id} if project_id else None
        return self.client.fetch_many(FieldOption, "GET", f"/api/fields/by-field/{_seg(field)}", params=params)

    def add_option(self, fields: FieldOptionCreate | dict[str, Any]) -> FieldOption:
        req = parse_input(FieldOptionCreate, fields)
        return self.client.fetch_one(
            FieldOption,
            "POST",
            "/api/fields",
            json=req.model_dump(exclude_none=True),
            resource=("field", f"{req.field}={req.value}"),
        )

    def remove_option(self, option_id: str) -> None:
        self.client.request("DELETE", f"/api/fields/{_seg(option_id)}", resource=("field", option_id))
