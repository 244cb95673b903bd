"""ID 生成ユーティリティ。

各エンティティの ID は種別ごとの prefix と UUID で構成し、ログや API 応答で
どのテーブルの行かを一目で判別できるようにする。
"""

from __future__ import annotations

import uuid


def _new_id(prefix: str) -> str:
    return f"{prefix}:{uuid.uuid4().hex}"


def generate_class_id() -> str:
    return _new_id("cls")


def generate_material_id() -> str:
    return _new_id("mat")


def generate_card_id() -> str:
    return _new_id("card")


def generate_session_id() -> str:
    return _new_id("ses")


def practice_card_id(material_id: str) -> str:
    """Stable id of the spaced-practice item attached to a material."""

    return f"sp:{material_id}"
