from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from meatycapture.config_store import LocalConfigStore
from meatycapture.field_store import LocalFieldCatalogStore
from meatycapture.project_store import LocalProjectStore
from meatycapture.settings import ENV_API_URL, ENV_AUTH_TOKEN, ENV_CONFIG_DIR, ENV_DEFAULT_PROJECT


class TickClock:
    """returns start, start+step, start+2*step, ... on successive calls."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        t = self.now
        self.now = self.now + self.step
        return t


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (ENV_API_URL, ENV_AUTH_TOKEN, ENV_CONFIG_DIR, ENV_DEFAULT_PROJECT):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def store_root(tmp_path: Path) -> Path:
    """
    store root for one test. intentionally not created up front:
    stores must create it on first write.
    """
    return tmp_path / "store"


@pytest.fixture()
def make_clock():
    return TickClock


@pytest.fixture()
def clock() -> TickClock:
    return TickClock()


@pytest.fixture()
def config_store(store_root: Path, clock: TickClock) -> LocalConfigStore:
    return LocalConfigStore(store_root, clock=clock)


@pytest.fixture()
def project_store(store_root: Path, clock: TickClock) -> LocalProjectStore:
    return LocalProjectStore(store_root, clock=clock)


@pytest.fixture()
def field_store(store_root: Path, project_store: LocalProjectStore, clock: TickClock) -> LocalFieldCatalogStore:
    return LocalFieldCatalogStore(store_root, project_store, clock=clock)
