"""FastAPI dependencies shared by the routers.

時刻とストアは依存性として注入し、テストでは ``app.dependency_overrides`` で
固定時刻・一時 DB に差し替える。
"""

from __future__ import annotations

from datetime import datetime, timezone

from .store import StudyStore, get_store


def get_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["StudyStore", "get_now", "get_store"]
