"""
errors.py

failure kinds raised by the store layer. callers (cli, http) translate them
into exit codes / status codes; stores never retry or swallow them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal


ResourceType = Literal["project", "field", "config"]


class StoreError(Exception):
    """base for everything a store operation may raise."""


class ValidationError(StoreError):
    """malformed input: unknown key, bad value shape. a caller bug, never retried."""

    def __init__(self, message: str, details: object | None = None):
        super().__init__(message)
        self.details = details


class ResourceNotFoundError(StoreError):
    def __init__(self, resource_type: ResourceType, resource_id: str, message: str | None = None):
        super().__init__(message or f"{resource_type} not found: {resource_id}")
        self.resource_type = resource_type
        self.resource_id = resource_id


class ResourceConflictError(StoreError):
    def __init__(self, resource_type: ResourceType, resource_id: str, message: str | None = None):
        super().__init__(message or f"{resource_type} already exists: {resource_id}")
        self.resource_type = resource_type
        self.resource_id = resource_id


class StorePermissionError(StoreError, PermissionError):
    """
    i/o failure on a store file (cannot read / write / create).

    also a builtin PermissionError so generic os-level handlers still catch it.
    """

    def __init__(self, path: Path | str, operation: Literal["read", "write"], reason: str = ""):
        msg = f"permission denied: cannot {operation} {path}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.path = Path(path)
        self.operation = operation
        self.reason = reason


class UserInterruptError(Exception):
    """confirmation interrupted (ctrl+c / eof). raised by interactive callers only."""

    def __init__(self, message: str = "user interrupted"):
        super().__init__(message)
