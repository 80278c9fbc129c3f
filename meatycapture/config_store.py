"""
config_store.py

load/save the single global settings record (config.json).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

from .atomic_write import read_json, write_json
from .errors import ValidationError
from .models import CONFIG_KEYS, CONFIG_VERSION, ConfigRecord, dump_record, is_slug, parse_stored, utc_now


logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


def validate_config_value(key: str, value: str) -> str | None:
    """normalized value for key; None means clear the setting."""
    if key not in CONFIG_KEYS:
        raise ValidationError(f"unknown configuration key: {key} (valid keys: {', '.join(CONFIG_KEYS)})")
    if not isinstance(value, str):
        raise ValidationError(f"value for {key} must be a string")

    value = value.strip()
    if value == "":
        return None

    if key == "api_url":
        u = urlparse(value)
        if u.scheme not in ("http", "https") or not u.netloc:
            raise ValidationError(f"invalid url for api_url: {value} (use http:// or https://)")
        return value.rstrip("/")

    if key == "default_project" and not is_slug(value):
        raise ValidationError(f"invalid project id for default_project: {value}")
    return value


class LocalConfigStore:
    def __init__(self, root: Path | str, clock: Callable[[], datetime] = utc_now):
        self.root = Path(root)
        self.path = self.root / CONFIG_FILENAME
        self._clock = clock

    def get(self) -> ConfigRecord:
        data = read_json(self.path)
        if data is None:
            # defaults are not persisted until the first set()
            now = self._clock()
            return ConfigRecord(version=CONFIG_VERSION, created_at=now, updated_at=now)
        return parse_stored(ConfigRecord, data, self.path)

    def initialize(self) -> ConfigRecord:
        """write a fresh default record, replacing whatever is there."""
        now = self._clock()
        record = ConfigRecord(version=CONFIG_VERSION, created_at=now, updated_at=now)
        write_json(self.path, dump_record(record))
        logger.info("initialized %s", self.path)
        return record

    def set(self, key: str, value: str) -> ConfigRecord:
        normalized = validate_config_value(key, value)
        current = self.get()

        updated = current.model_copy(update={
            key: normalized,
            "updated_at": max(self._clock(), current.updated_at),
        })
        write_json(self.path, dump_record(updated))

        if normalized is None:
            logger.info("cleared config %s", key)
        else:
            logger.info("set config %s = %s", key, normalized)
        return updated

    def exists(self) -> bool:
        return self.path.exists()
