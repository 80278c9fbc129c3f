from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field


ENV_CONFIG_DIR = "MEATYCAPTURE_CONFIG_DIR"
ENV_DEFAULT_PROJECT = "MEATYCAPTURE_DEFAULT_PROJECT"
ENV_API_URL = "MEATYCAPTURE_API_URL"
ENV_AUTH_TOKEN = "MEATYCAPTURE_AUTH_TOKEN"
ENV_SERVER_PORT = "MEATYCAPTURE_SERVER_PORT"

DEFAULT_STORE_ROOT = Path.home() / ".meatycapture"
DEFAULT_SERVER_PORT = 3737
DEFAULT_HTTP_TIMEOUT_S = 30.0


class Settings(BaseModel):
    """per-invocation settings. built once by the caller and passed down explicitly."""

    store_root: Path = Field(default_factory=lambda: DEFAULT_STORE_ROOT)
    default_project: str | None = None
    api_url: str | None = None
    auth_token: str | None = None
    server_port: int = DEFAULT_SERVER_PORT
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    quiet: bool = False


def load_settings(environ: Mapping[str, str] | None = None, **overrides) -> Settings:
    env = os.environ if environ is None else environ

    values = {
        "store_root": Path(env.get(ENV_CONFIG_DIR) or DEFAULT_STORE_ROOT).expanduser(),
        # empty env values count as unset
        "default_project": env.get(ENV_DEFAULT_PROJECT) or None,
        "api_url": (env.get(ENV_API_URL) or "").rstrip("/") or None,
        "auth_token": env.get(ENV_AUTH_TOKEN) or None,
        "server_port": int(env.get(ENV_SERVER_PORT) or DEFAULT_SERVER_PORT),
    }
    values.update(overrides)
    return Settings(**values)
