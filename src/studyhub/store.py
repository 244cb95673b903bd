from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .config import settings
from .id_factory import (
    generate_card_id,
    generate_class_id,
    generate_material_id,
    generate_session_id,
    practice_card_id,
)
from .logging import logger
from .models.common import Difficulty, MaterialKind, StudyMethod
from .records import Flashcard, Material, ReviewRecord, StudyClass, StudySession
from .srs import Grade, LearningItem, schedule_review


CARD_KIND_FLASHCARD = "flashcard"
CARD_KIND_PRACTICE = "practice"

_METHOD_BY_KIND = {
    CARD_KIND_FLASHCARD: StudyMethod.flashcards,
    CARD_KIND_PRACTICE: StudyMethod.spaced_practice,
}

_CARD_COLUMNS = (
    "id, material_id, kind, front, back, interval_days, ease_factor, last_reviewed, "
    "next_review, review_count, correct_count, created_at"
)


def _iso(ts: datetime) -> str:
    """Serialise a timestamp as fixed-width UTC ISO-8601 so text order == time order."""

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse(raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    return datetime.fromisoformat(raw)


class StudyStore:
    """SQLite-backed store for classes, materials, cards, reviews and sessions.

    - connections are opened per call and closed afterwards
    - grading runs inside ``BEGIN IMMEDIATE`` so concurrent reviews of one card are serialised
    - the scheduling maths lives in :mod:`studyhub.srs`; this class only loads and persists
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on PRAGMA
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS classes (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        description TEXT,
                        color TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS materials (
                        id TEXT PRIMARY KEY,
                        class_id TEXT NOT NULL,
                        title TEXT NOT NULL,
                        content TEXT NOT NULL,
                        kind TEXT NOT NULL,
                        difficulty TEXT NOT NULL,
                        tags TEXT NOT NULL DEFAULT '[]',
                        last_reviewed TEXT,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cards (
                        id TEXT PRIMARY KEY,
                        material_id TEXT NOT NULL,
                        kind TEXT NOT NULL,
                        front TEXT NOT NULL,
                        back TEXT NOT NULL,
                        interval_days INTEGER NOT NULL DEFAULT 1,
                        ease_factor REAL NOT NULL DEFAULT 2.5,
                        last_reviewed TEXT,
                        next_review TEXT,
                        review_count INTEGER NOT NULL DEFAULT 0,
                        correct_count INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY(material_id) REFERENCES materials(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS reviews (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        card_id TEXT NOT NULL,
                        method TEXT NOT NULL,
                        grade TEXT NOT NULL,
                        reviewed_at TEXT NOT NULL,
                        interval_days INTEGER NOT NULL,
                        ease_factor REAL NOT NULL,
                        FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS sessions (
                        id TEXT PRIMARY KEY,
                        class_id TEXT NOT NULL,
                        material_id TEXT,
                        method TEXT NOT NULL,
                        started_at TEXT NOT NULL,
                        duration_minutes INTEGER NOT NULL,
                        score INTEGER,
                        notes TEXT,
                        FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE CASCADE,
                        FOREIGN KEY(material_id) REFERENCES materials(id) ON DELETE SET NULL
                    );
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_cards_next_review ON cards(next_review);")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_cards_material ON cards(material_id);")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_reviews_reviewed_at ON reviews(reviewed_at);")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_started_at ON sessions(started_at);")
        finally:
            conn.close()
        logger.info("store_initialised", db_path=self.db_path)

    # --- row mappers ---
    @staticmethod
    def _row_to_class(row: sqlite3.Row) -> StudyClass:
        return StudyClass(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            color=row["color"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_material(row: sqlite3.Row) -> Material:
        try:
            tags = json.loads(row["tags"] or "[]")
        except json.JSONDecodeError:
            tags = []
        return Material(
            id=row["id"],
            class_id=row["class_id"],
            title=row["title"],
            content=row["content"],
            kind=MaterialKind(row["kind"]),
            difficulty=Difficulty(row["difficulty"]),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            last_reviewed=_parse(row["last_reviewed"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_card(row: sqlite3.Row) -> Flashcard:
        item = LearningItem(
            id=row["id"],
            interval_days=int(row["interval_days"]),
            ease_factor=float(row["ease_factor"]),
            last_reviewed=_parse(row["last_reviewed"]),
            next_review=_parse(row["next_review"]),
            review_count=int(row["review_count"]),
            correct_count=int(row["correct_count"]),
        )
        return Flashcard(
            material_id=row["material_id"],
            front=row["front"],
            back=row["back"],
            item=item,
            created_at=datetime.fromisoformat(row["created_at"]),
            kind=row["kind"],
        )

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> StudySession:
        return StudySession(
            id=row["id"],
            class_id=row["class_id"],
            material_id=row["material_id"],
            method=StudyMethod(row["method"]),
            started_at=datetime.fromisoformat(row["started_at"]),
            duration_minutes=int(row["duration_minutes"]),
            score=int(row["score"]) if row["score"] is not None else None,
            notes=row["notes"],
        )

    # --- classes ---
    def create_class(
        self,
        name: str,
        color: str,
        now: datetime,
        description: str | None = None,
    ) -> StudyClass:
        study_class = StudyClass(
            id=generate_class_id(), name=name, color=color, description=description, created_at=now
        )
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO classes(id, name, description, color, created_at) VALUES (?, ?, ?, ?, ?);",
                    (study_class.id, name, description, color, _iso(now)),
                )
        finally:
            conn.close()
        logger.info("class_created", class_id=study_class.id)
        return study_class

    def list_classes(self) -> List[StudyClass]:
        conn = self._connect()
        try:
            cur = conn.execute("SELECT * FROM classes ORDER BY created_at ASC, id ASC;")
            return [self._row_to_class(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def get_class(self, class_id: str) -> Optional[StudyClass]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM classes WHERE id = ?;", (class_id,)).fetchone()
            return self._row_to_class(row) if row is not None else None
        finally:
            conn.close()

    def delete_class(self, class_id: str) -> bool:
        """Delete a class with its materials, cards, reviews and sessions."""
        conn = self._connect()
        try:
            with conn:
                cur = conn.execute("DELETE FROM classes WHERE id = ?;", (class_id,))
                return cur.rowcount > 0
        finally:
            conn.close()

    # --- materials ---
    def create_material(
        self,
        class_id: str,
        title: str,
        content: str,
        now: datetime,
        kind: MaterialKind = MaterialKind.note,
        difficulty: Difficulty = Difficulty.medium,
        tags: Optional[List[str]] = None,
    ) -> Optional[Material]:
        """Create a material under ``class_id``; ``None`` when the class is unknown."""
        if self.get_class(class_id) is None:
            return None
        material = Material(
            id=generate_material_id(),
            class_id=class_id,
            title=title,
            content=content,
            kind=kind,
            difficulty=difficulty,
            tags=list(tags or []),
            created_at=now,
        )
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO materials(id, class_id, title, content, kind, difficulty, tags, last_reviewed, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, NULL, ?);
                    """,
                    (
                        material.id,
                        class_id,
                        title,
                        content,
                        kind.value,
                        difficulty.value,
                        json.dumps(material.tags, ensure_ascii=False),
                        _iso(now),
                    ),
                )
        finally:
            conn.close()
        return material

    def list_materials(self, class_id: Optional[str] = None) -> List[Material]:
        conn = self._connect()
        try:
            if class_id is None:
                cur = conn.execute("SELECT * FROM materials ORDER BY created_at ASC, id ASC;")
            else:
                cur = conn.execute(
                    "SELECT * FROM materials WHERE class_id = ? ORDER BY created_at ASC, id ASC;",
                    (class_id,),
                )
            return [self._row_to_material(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def get_material(self, material_id: str) -> Optional[Material]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM materials WHERE id = ?;", (material_id,)).fetchone()
            return self._row_to_material(row) if row is not None else None
        finally:
            conn.close()

    def delete_material(self, material_id: str) -> bool:
        conn = self._connect()
        try:
            with conn:
                cur = conn.execute("DELETE FROM materials WHERE id = ?;", (material_id,))
                return cur.rowcount > 0
        finally:
            conn.close()

    # --- cards ---
    def _insert_card(
        self,
        conn: sqlite3.Connection,
        card_id: str,
        material_id: str,
        kind: str,
        front: str,
        back: str,
        now: datetime,
    ) -> None:
        conn.execute(
            """
            INSERT INTO cards(
                id, material_id, kind, front, back, interval_days, ease_factor,
                last_reviewed, next_review, review_count, correct_count, created_at
            ) VALUES (?, ?, ?, ?, ?, 1, 2.5, NULL, NULL, 0, 0, ?);
            """,
            (card_id, material_id, kind, front, back, _iso(now)),
        )

    def create_card(self, material_id: str, front: str, back: str, now: datetime) -> Optional[Flashcard]:
        """Author a flashcard with default scheduling state; due immediately."""
        if self.get_material(material_id) is None:
            return None
        card_id = generate_card_id()
        conn = self._connect()
        try:
            with conn:
                self._insert_card(conn, card_id, material_id, CARD_KIND_FLASHCARD, front, back, now)
        finally:
            conn.close()
        logger.info("card_created", card_id=card_id, material_id=material_id)
        return Flashcard(
            material_id=material_id, front=front, back=back, item=LearningItem(id=card_id), created_at=now
        )

    def ensure_practice_card(self, material_id: str, now: datetime) -> Optional[Flashcard]:
        """Return the spaced-practice item of a material, creating it on first use.

        教材そのものを復習対象として扱うため、タイトル/本文を表裏にしたカードを
        ``sp:<material_id>`` の固定 ID で 1 枚だけ用意する。
        """
        material = self.get_material(material_id)
        if material is None:
            return None
        card_id = practice_card_id(material_id)
        existing = self.get_card(card_id)
        if existing is not None:
            return existing
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT OR IGNORE INTO cards(id, material_id, kind, front, back, created_at) VALUES (?, ?, ?, ?, ?, ?);",
                    (card_id, material_id, CARD_KIND_PRACTICE, material.title, material.content, _iso(now)),
                )
        finally:
            conn.close()
        return self.get_card(card_id)

    def get_card(self, card_id: str) -> Optional[Flashcard]:
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT {_CARD_COLUMNS} FROM cards WHERE id = ?;", (card_id,)).fetchone()
            return self._row_to_card(row) if row is not None else None
        finally:
            conn.close()

    def list_cards(self, material_id: str) -> List[Flashcard]:
        conn = self._connect()
        try:
            cur = conn.execute(
                f"SELECT {_CARD_COLUMNS} FROM cards WHERE material_id = ? AND kind = ? ORDER BY created_at ASC, id ASC;",
                (material_id, CARD_KIND_FLASHCARD),
            )
            return [self._row_to_card(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def get_due(self, now: datetime, limit: int = 20) -> List[Flashcard]:
        """Cards never reviewed or whose next review is at or before ``now``.

        Never-reviewed cards come first, then the most overdue.
        """
        conn = self._connect()
        try:
            cur = conn.execute(
                f"""
                SELECT {_CARD_COLUMNS} FROM cards
                WHERE next_review IS NULL OR next_review <= ?
                ORDER BY next_review IS NOT NULL, next_review ASC, id ASC
                LIMIT ?;
                """,
                (_iso(now), limit),
            )
            return [self._row_to_card(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def grade_card(
        self,
        card_id: str,
        grade: Grade,
        now: datetime,
    ) -> Optional[Flashcard]:
        """Apply one review to a stored card and record it in the history.

        The review is tagged with the method implied by the card kind
        (flashcard or spaced-practice item). Returns ``None`` when the card
        does not exist.
        """
        conn = self._connect()
        try:
            # BEGIN IMMEDIATE to avoid concurrent writers on the same row
            conn.execute("BEGIN IMMEDIATE;")
            row = conn.execute(f"SELECT {_CARD_COLUMNS} FROM cards WHERE id = ?;", (card_id,)).fetchone()
            if row is None:
                conn.execute("ROLLBACK;")
                return None

            card = self._row_to_card(row)
            method = _METHOD_BY_KIND[card.kind]
            updated = schedule_review(card.item, grade, now)

            conn.execute(
                """
                UPDATE cards
                SET interval_days = ?, ease_factor = ?, last_reviewed = ?, next_review = ?,
                    review_count = ?, correct_count = ?
                WHERE id = ?;
                """,
                (
                    updated.interval_days,
                    updated.ease_factor,
                    _iso(now),
                    _iso(updated.next_review),
                    updated.review_count,
                    updated.correct_count,
                    card_id,
                ),
            )
            conn.execute(
                """
                INSERT INTO reviews(card_id, method, grade, reviewed_at, interval_days, ease_factor)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (card_id, method.value, Grade(grade).value, _iso(now), updated.interval_days, updated.ease_factor),
            )
            conn.execute(
                "UPDATE materials SET last_reviewed = ? WHERE id = ?;",
                (_iso(now), card.material_id),
            )
            conn.execute("COMMIT;")
        except Exception:
            try:
                conn.execute("ROLLBACK;")
            except sqlite3.Error:
                pass
            raise
        finally:
            conn.close()

        logger.info(
            "review_graded",
            card_id=card_id,
            grade=Grade(grade).value,
            method=method.value,
            interval_days=updated.interval_days,
            ease_factor=updated.ease_factor,
            review_count=updated.review_count,
        )
        return Flashcard(
            material_id=card.material_id,
            front=card.front,
            back=card.back,
            item=updated,
            created_at=card.created_at,
            kind=card.kind,
        )

    # --- history ---
    def list_reviews(self, card_id: Optional[str] = None) -> List[ReviewRecord]:
        conn = self._connect()
        try:
            if card_id is None:
                cur = conn.execute("SELECT * FROM reviews ORDER BY reviewed_at ASC, id ASC;")
            else:
                cur = conn.execute(
                    "SELECT * FROM reviews WHERE card_id = ? ORDER BY reviewed_at ASC, id ASC;",
                    (card_id,),
                )
            return [
                ReviewRecord(
                    card_id=row["card_id"],
                    method=StudyMethod(row["method"]),
                    grade=Grade(row["grade"]),
                    reviewed_at=datetime.fromisoformat(row["reviewed_at"]),
                    interval_days=int(row["interval_days"]),
                    ease_factor=float(row["ease_factor"]),
                )
                for row in cur.fetchall()
            ]
        finally:
            conn.close()

    def get_review_counts(self, now: datetime, day_start: datetime) -> tuple[int, int]:
        """Return (due_now_count, reviewed_since_day_start_count)."""
        conn = self._connect()
        try:
            due_now = int(
                conn.execute(
                    "SELECT COUNT(1) AS c FROM cards WHERE next_review IS NULL OR next_review <= ?;",
                    (_iso(now),),
                ).fetchone()["c"]
            )
            reviewed = int(
                conn.execute(
                    "SELECT COUNT(1) AS c FROM reviews WHERE reviewed_at >= ?;",
                    (_iso(day_start),),
                ).fetchone()["c"]
            )
            return due_now, reviewed
        finally:
            conn.close()

    # --- sessions ---
    def log_session(
        self,
        class_id: str,
        method: StudyMethod,
        started_at: datetime,
        duration_minutes: int,
        material_id: Optional[str] = None,
        score: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[StudySession]:
        """Record a finished study session; ``None`` if class or material is unknown."""
        if self.get_class(class_id) is None:
            return None
        if material_id is not None and self.get_material(material_id) is None:
            return None
        session = StudySession(
            id=generate_session_id(),
            class_id=class_id,
            material_id=material_id,
            method=method,
            started_at=started_at,
            duration_minutes=duration_minutes,
            score=score,
            notes=notes,
        )
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO sessions(id, class_id, material_id, method, started_at, duration_minutes, score, notes)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        session.id,
                        class_id,
                        material_id,
                        method.value,
                        _iso(started_at),
                        duration_minutes,
                        score,
                        notes,
                    ),
                )
        finally:
            conn.close()
        logger.info("session_logged", session_id=session.id, class_id=class_id, method=method.value)
        return session

    def list_sessions(self, class_id: Optional[str] = None) -> List[StudySession]:
        conn = self._connect()
        try:
            if class_id is None:
                cur = conn.execute("SELECT * FROM sessions ORDER BY started_at ASC, id ASC;")
            else:
                cur = conn.execute(
                    "SELECT * FROM sessions WHERE class_id = ? ORDER BY started_at ASC, id ASC;",
                    (class_id,),
                )
            return [self._row_to_session(row) for row in cur.fetchall()]
        finally:
            conn.close()


_STORE: StudyStore | None = None


def get_store() -> StudyStore:
    """Return the process-wide store wired to ``settings`` (created lazily)."""
    global _STORE
    if _STORE is None:
        _STORE = StudyStore(db_path=settings.studyhub_db_path)
    return _STORE
