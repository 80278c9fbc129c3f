"""
main.py

establishes fastapi routes over the local stores. the server always serves
its own json files; it never proxies to another api.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import __version__
from .errors import (
    ResourceConflictError,
    ResourceNotFoundError,
    StoreError,
    StorePermissionError,
    ValidationError,
)
from .factory import Adapters, local_adapters
from .models import (
    ConfigRecord,
    ConfigUpdate,
    FieldName,
    FieldOption,
    FieldOptionCreate,
    Project,
    ProjectCreate,
    ProjectPatch,
)
from .settings import load_settings


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_adapters(request: Request) -> Adapters:
    adapters = request.app.state.adapters
    if adapters is None:
        adapters = local_adapters(load_settings())
        request.app.state.adapters = adapters
    return adapters


def error_response(exc: StoreError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        status, body = 400, {"error": "ValidationError", "message": str(exc)}
        if exc.details is not None:
            body["details"] = exc.details
    elif isinstance(exc, ResourceNotFoundError):
        status, body = 404, {"error": "NotFound", "message": str(exc)}
    elif isinstance(exc, ResourceConflictError):
        status, body = 409, {"error": "Conflict", "message": str(exc)}
    elif isinstance(exc, StorePermissionError):
        status, body = 403, {"error": "Forbidden", "message": str(exc)}
    else:
        status, body = 500, {"error": "InternalServerError", "message": str(exc)}

    if isinstance(exc, (ResourceNotFoundError, ResourceConflictError)):
        body["resource_type"] = exc.resource_type
        body["resource_id"] = exc.resource_id
    return JSONResponse(status_code=status, content=body)


# ---- config ----

@router.get("/config", response_model=ConfigRecord, response_model_exclude_none=True)
def get_config(adapters: Adapters = Depends(get_adapters)) -> ConfigRecord:
    return adapters.config_store.get()


@router.patch("/config", response_model=ConfigRecord, response_model_exclude_none=True)
def set_config(req: ConfigUpdate, adapters: Adapters = Depends(get_adapters)) -> ConfigRecord:
    return adapters.set_config(req.key, req.value)


# ---- projects ----

@router.get("/projects", response_model=list[Project], response_model_exclude_none=True)
def list_projects(adapters: Adapters = Depends(get_adapters)) -> list[Project]:
    return adapters.project_store.list()


@router.get("/projects/{project_id}", response_model=Project, response_model_exclude_none=True)
def get_project(project_id: str, adapters: Adapters = Depends(get_adapters)) -> Project:
    project = adapters.project_store.get(project_id)
    if project is None:
        raise ResourceNotFoundError("project", project_id)
    return project


@router.post("/projects", status_code=201, response_model=Project, response_model_exclude_none=True)
def create_project(req: ProjectCreate, adapters: Adapters = Depends(get_adapters)) -> Project:
    return adapters.project_store.create(req)


@router.patch("/projects/{project_id}", response_model=Project, response_model_exclude_none=True)
def update_project(project_id: str, patch: ProjectPatch, adapters: Adapters = Depends(get_adapters)) -> Project:
    return adapters.project_store.update(project_id, patch)


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(project_id: str, adapters: Adapters = Depends(get_adapters)) -> Response:
    adapters.project_store.remove(project_id)
    return Response(status_code=204)


# ---- fields ----

@router.get("/fields/global", response_model=list[FieldOption], response_model_exclude_none=True)
def get_global_fields(adapters: Adapters = Depends(get_adapters)) -> list[FieldOption]:
    return adapters.field_store.get_global()


@router.get("/fields/project/{project_id}", response_model=list[FieldOption], response_model_exclude_none=True)
def get_project_fields(project_id: str, adapters: Adapters = Depends(get_adapters)) -> list[FieldOption]:
    return adapters.field_store.get_for_project(project_id)


@router.get("/fields/by-field/{field}", response_model=list[FieldOption], response_model_exclude_none=True)
def get_fields_by_name(
    field: FieldName,
    project_id: str | None = None,
    adapters: Adapters = Depends(get_adapters),
) -> list[FieldOption]:
    return adapters.field_store.get_by_field(field, project_id)


@router.post("/fields", status_code=201, response_model=FieldOption, response_model_exclude_none=True)
def add_field_option(req: FieldOptionCreate, adapters: Adapters = Depends(get_adapters)) -> FieldOption:
    return adapters.field_store.add_option(req)


@router.delete("/fields/{option_id}", status_code=204)
def remove_field_option(option_id: str, adapters: Adapters = Depends(get_adapters)) -> Response:
    adapters.field_store.remove_option(option_id)
    return Response(status_code=204)


def create_app(adapters: Adapters | None = None) -> FastAPI:
    """adapters=None builds local stores from the environment on first request."""
    app = FastAPI(title="meatycapture", version=__version__)
    app.state.adapters = adapters

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "tauri://localhost",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreError)
    def _store_error(request: Request, exc: StoreError) -> JSONResponse:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [{"loc": [str(p) for p in e["loc"]], "msg": e["msg"]} for e in exc.errors()]
        return error_response(ValidationError("invalid request", details=details))

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(router)
    return app


app = create_app()
