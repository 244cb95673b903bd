#!/usr/bin/env python
"""サンプルの科目・教材・フラッシュカードを SQLite に投入するユーティリティ。"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--db-path",
        default=os.environ.get("STUDYHUB_DB_PATH", ".data/studyhub.sqlite3"),
        type=Path,
        help="投入先 SQLite DB のパス（既定: .data/studyhub.sqlite3）",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="既存のクラスがあってもサンプルを追加する場合に指定。",
    )
    return parser


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    # 設定クラスは import 時点で環境変数を読むため、先に上書きしてから studyhub を読み込む。
    os.environ["STUDYHUB_DB_PATH"] = str(args.db_path)
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))

    from studyhub.logging import configure_logging
    from studyhub.seed_demo import seed_demo
    from studyhub.store import StudyStore

    configure_logging()
    store = StudyStore(db_path=str(args.db_path))
    classes, materials, cards = seed_demo(store, datetime.now(timezone.utc), force=args.force)
    if classes == 0:
        print("Demo data already exists. Skipping seed.")
    print(f"Seeded {classes} classes, {materials} materials and {cards} cards into {args.db_path}.")


if __name__ == "__main__":
    main()
