"""
atomic_write.py

whole-file writes for the store files. content goes to a temp sibling first and
is os.replace()d over the target, so readers see either the old or the new
document, never a partial one. the target itself is never opened for writing.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from .errors import StorePermissionError


logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def atomic_write(path: Path | str, content: str, backup: bool = False) -> Path:
    path = Path(path)
    tmp: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        tmp = Path(tmp_name)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        if backup and path.exists():
            # one generation only; copy so the target stays readable until the replace
            shutil.copy2(path, backup_path(path))

        os.replace(tmp, path)
        tmp = None
    except OSError as exc:
        raise StorePermissionError(path, "write", exc.strerror or str(exc)) from exc
    finally:
        if tmp is not None:
            # best effort: the temp file may already be gone
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)

    logger.debug("wrote %s (%d bytes)", path, len(content))
    return path


def write_json(path: Path | str, data: Any, backup: bool = False) -> Path:
    return atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n", backup=backup)


def remove_file(path: Path | str) -> bool:
    """best-effort delete; False (and a warning) when the file could not be removed."""
    path = Path(path)
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("could not remove %s: %s", path, exc.strerror or exc)
        return False
    return True


def read_json(path: Path | str) -> dict[str, Any] | None:
    """parsed json object at path, or None when the file does not exist."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StorePermissionError(path, "read", exc.strerror or str(exc)) from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorePermissionError(path, "read", f"invalid json: {exc.msg} at line {exc.lineno}") from exc
    if not isinstance(data, dict):
        raise StorePermissionError(path, "read", "expected a json object")
    return data
