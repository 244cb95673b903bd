"""Pytest configuration: relaxed settings and isolated SQLite stores per test."""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

_SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(_SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(_SRC_ROOT))

# 設定は import 時に読み込まれるため、studyhub を読み込む前に環境変数を用意する。
os.environ.setdefault("STRICT_MODE", "false")
os.environ.setdefault("STUDY_TIMEZONE", "UTC")
os.environ.setdefault("REMINDER_TIME", "20:00")

FIXED_NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Mutable stand-in for the ``get_now`` dependency."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def store(tmp_path: Path):
    from studyhub.store import StudyStore

    return StudyStore(db_path=str(tmp_path / "studyhub.sqlite3"))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture()
def client(store, clock):
    from fastapi.testclient import TestClient

    from studyhub.dependencies import get_now, get_store
    from studyhub.main import create_app
    from studyhub.metrics import registry

    registry.reset()
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_now] = clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
