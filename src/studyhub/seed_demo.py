"""Demo data for local development.

ローカル開発用のサンプル（科目・教材・カード）を SQLite に投入する。
既にクラスが存在する場合は ``force`` を指定しない限り何もしない。
"""

from __future__ import annotations

from datetime import datetime

from .logging import logger
from .models.common import Difficulty, MaterialKind
from .store import StudyStore


DEMO_DATA: list[dict] = [
    {
        "name": "Biology",
        "color": "#10B981",
        "materials": [
            {
                "title": "Cell Structure and Function",
                "content": (
                    "Cells are the basic structural and functional units of all living organisms. "
                    "The nucleus contains genetic material, mitochondria produce energy, and the "
                    "cell membrane controls what enters and exits the cell."
                ),
                "difficulty": Difficulty.medium,
                "tags": ["cell biology", "organelles", "structure"],
                "cards": [
                    ("What organelle produces most of the cell's energy?", "The mitochondria"),
                    ("What controls what enters and exits the cell?", "The cell membrane"),
                ],
            },
            {
                "title": "Photosynthesis Process",
                "content": (
                    "Photosynthesis converts light energy into chemical energy in the chloroplasts, "
                    "through the light-dependent reactions and the Calvin cycle."
                ),
                "difficulty": Difficulty.hard,
                "tags": ["photosynthesis", "energy", "plants"],
                "cards": [
                    ("Where does photosynthesis occur?", "In the chloroplasts"),
                    ("What are the products of photosynthesis?", "Glucose and oxygen"),
                ],
            },
        ],
    },
    {
        "name": "Mathematics",
        "color": "#3B82F6",
        "materials": [
            {
                "title": "Quadratic Equations",
                "content": (
                    "A quadratic equation has the form ax^2 + bx + c = 0. The discriminant "
                    "b^2 - 4ac determines the nature of the roots."
                ),
                "difficulty": Difficulty.medium,
                "tags": ["algebra", "equations", "quadratic"],
                "cards": [
                    ("What does the discriminant determine?", "The nature of the roots"),
                ],
            },
            {
                "title": "Trigonometric Functions",
                "content": (
                    "Trigonometric functions relate angles to ratios of sides in right triangles: "
                    "sine, cosine, tangent, cosecant, secant and cotangent."
                ),
                "difficulty": Difficulty.hard,
                "tags": ["trigonometry", "functions", "angles"],
                "cards": [
                    ("Which function is opposite over hypotenuse?", "Sine"),
                ],
            },
        ],
    },
    {
        "name": "History",
        "color": "#8B5CF6",
        "materials": [
            {
                "title": "World War II Timeline",
                "content": (
                    "World War II lasted from 1939 to 1945. Key events include the invasion of Poland, "
                    "Pearl Harbor, Stalingrad, D-Day and the founding of the United Nations."
                ),
                "difficulty": Difficulty.easy,
                "tags": ["world war", "timeline", "history"],
                "cards": [
                    ("In which year did D-Day take place?", "1944"),
                ],
            },
            {
                "title": "Renaissance Art and Culture",
                "content": (
                    "The Renaissance was a period of cultural rebirth in Europe from the 14th to the "
                    "17th century, emphasising humanism and artistic innovation."
                ),
                "difficulty": Difficulty.medium,
                "tags": ["renaissance", "art", "culture"],
                "cards": [],
            },
        ],
    },
]


def seed_demo(store: StudyStore, now: datetime, *, force: bool = False) -> tuple[int, int, int]:
    """Insert the demo dataset and return (classes, materials, cards) created."""

    if store.list_classes() and not force:
        logger.info("seed_demo_skipped", reason="classes_exist")
        return 0, 0, 0

    classes = materials = cards = 0
    for entry in DEMO_DATA:
        study_class = store.create_class(name=entry["name"], color=entry["color"], now=now)
        classes += 1
        for spec in entry["materials"]:
            material = store.create_material(
                class_id=study_class.id,
                title=spec["title"],
                content=spec["content"],
                kind=MaterialKind.note,
                difficulty=spec["difficulty"],
                tags=spec["tags"],
                now=now,
            )
            if material is None:
                continue
            materials += 1
            for front, back in spec["cards"]:
                if store.create_card(material_id=material.id, front=front, back=back, now=now) is not None:
                    cards += 1
    logger.info("seed_demo_done", classes=classes, materials=materials, cards=cards)
    return classes, materials, cards
