from __future__ import annotations

from datetime import datetime, timezone

from studyhub.seed_demo import DEMO_DATA, seed_demo

NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def test_seed_demo_populates_empty_store(store):
    created = seed_demo(store, NOW)

    assert created == (3, 6, 7)
    assert sorted(c.name for c in store.list_classes()) == sorted(entry["name"] for entry in DEMO_DATA)
    assert len(store.list_materials()) == 6
    # 新規カードは全て即時出題対象
    assert len(store.get_due(NOW, limit=100)) == 7


def test_seed_demo_skips_when_classes_exist(store):
    store.create_class("Existing", "#000000", NOW)

    assert seed_demo(store, NOW) == (0, 0, 0)
    assert len(store.list_classes()) == 1


def test_seed_demo_force_adds_on_top(store):
    seed_demo(store, NOW)

    assert seed_demo(store, NOW, force=True) == (3, 6, 7)
    assert len(store.list_classes()) == 6
