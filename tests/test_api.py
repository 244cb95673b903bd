from datetime import datetime, timedelta

import pytest

from conftest import FIXED_NOW


def _create_class(client, name="Biology"):
    resp = client.post("/api/classes", json={"name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _create_material(client, class_id, title="Cells", **extra):
    resp = client.post(f"/api/classes/{class_id}/materials", json={"title": title, "content": "text", **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _create_card(client, material_id, front="Q", back="A"):
    resp = client.post(f"/api/materials/{material_id}/cards", json={"front": front, "back": back})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _log_session(client, class_id, started_at, **extra):
    payload = {
        "class_id": class_id,
        "method": "quiz",
        "started_at": started_at.isoformat(),
        "duration_minutes": 30,
        **extra,
    }
    resp = client.post("/api/sessions", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert client.get("/healthz").headers["X-Request-ID"]


def test_class_and_material_crud(client):
    study_class = _create_class(client)
    assert study_class["id"].startswith("cls:")
    assert study_class["color"] == "#10B981"

    material = _create_material(client, study_class["id"], difficulty="hard", tags=[" cells ", ""])
    assert material["difficulty"] == "hard"
    assert material["tags"] == ["cells"]

    listed = client.get(f"/api/classes/{study_class['id']}/materials").json()["items"]
    assert [m["id"] for m in listed] == [material["id"]]
    assert [c["id"] for c in client.get("/api/classes").json()["items"]] == [study_class["id"]]

    assert client.delete(f"/api/classes/{study_class['id']}").status_code == 204
    assert client.get(f"/api/classes/{study_class['id']}").status_code == 404
    assert client.delete(f"/api/classes/{study_class['id']}").status_code == 404


def test_unknown_parents_are_404(client):
    assert client.post("/api/classes/cls:nope/materials", json={"title": "x"}).status_code == 404
    assert client.get("/api/classes/cls:nope/materials").status_code == 404
    assert client.post("/api/materials/mat:nope/cards", json={"front": "f", "back": "b"}).status_code == 404
    assert client.get("/api/materials/mat:nope/cards").status_code == 404
    assert client.post("/api/materials/mat:nope/practice", json={"grade": "good"}).status_code == 404
    assert client.delete("/api/materials/mat:nope").status_code == 404
    resp = client.post(
        "/api/sessions",
        json={"class_id": "cls:nope", "method": "quiz", "duration_minutes": 10},
    )
    assert resp.status_code == 404


def test_review_flow(client, clock):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])
    card = _create_card(client, material["id"])
    assert card["scheduling"]["interval_days"] == 1
    assert card["scheduling"]["next_review"] is None

    due = client.get("/api/review/due").json()["items"]
    assert [c["id"] for c in due] == [card["id"]]

    resp = client.post("/api/review/grade", json={"card_id": card["id"], "grade": "good"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["ok"] is True
    scheduling = body["card"]["scheduling"]
    assert scheduling["interval_days"] == 3
    assert scheduling["ease_factor"] == pytest.approx(2.5)
    assert scheduling["review_count"] == 1
    assert scheduling["success_rate"] == pytest.approx(1.0)
    assert datetime.fromisoformat(scheduling["next_review"]) == FIXED_NOW + timedelta(days=3)

    assert client.get("/api/review/due").json()["items"] == []
    clock.now = FIXED_NOW + timedelta(days=3)
    assert [c["id"] for c in client.get("/api/review/due").json()["items"]] == [card["id"]]

    material_after = client.get(f"/api/classes/{study_class['id']}/materials").json()["items"][0]
    assert datetime.fromisoformat(material_after["last_reviewed"]) == FIXED_NOW


def test_grade_validation(client):
    assert client.post("/api/review/grade", json={"card_id": "card:nope", "grade": "good"}).status_code == 404
    assert client.post("/api/review/grade", json={"card_id": "card:nope", "grade": "perfect"}).status_code == 422
    assert client.post("/api/review/grade", json={"card_id": "card:nope"}).status_code == 422


def test_due_limit_is_clamped(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])
    for i in range(3):
        _create_card(client, material["id"], front=f"Q{i}")

    assert len(client.get("/api/review/due", params={"limit": 2}).json()["items"]) == 2
    assert len(client.get("/api/review/due", params={"limit": 0}).json()["items"]) == 1
    assert len(client.get("/api/review/due").json()["items"]) == 3


def test_preview_does_not_persist(client):
    resp = client.post(
        "/api/review/preview",
        json={"grade": "easy", "interval_days": 10, "ease_factor": 2.0, "review_count": 2, "correct_count": 1},
    )
    assert resp.status_code == 200, resp.text
    scheduling = resp.json()["scheduling"]
    assert scheduling["interval_days"] == 26
    assert scheduling["ease_factor"] == pytest.approx(2.15)
    assert scheduling["review_count"] == 3
    assert scheduling["correct_count"] == 2
    assert datetime.fromisoformat(scheduling["next_review"]) == FIXED_NOW + timedelta(days=26)
    assert client.get("/metrics").json()["reviews"] == {}


@pytest.mark.parametrize(
    "payload",
    [
        {"grade": "good", "interval_days": 0},
        {"grade": "good", "ease_factor": 1.2},
        {"grade": "good", "review_count": 1, "correct_count": 2},
        {"grade": "meh"},
    ],
)
def test_preview_rejects_invalid_state(client, payload):
    assert client.post("/api/review/preview", json=payload).status_code == 422


def test_practice_material(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])

    resp = client.post(f"/api/materials/{material['id']}/practice", json={"grade": "easy"})
    assert resp.status_code == 200, resp.text
    card = resp.json()["card"]
    assert card["id"] == f"sp:{material['id']}"
    assert card["scheduling"]["interval_days"] == 3

    again = client.post(f"/api/materials/{material['id']}/practice", json={"grade": "again"}).json()["card"]
    assert again["id"] == card["id"]
    assert again["scheduling"]["review_count"] == 2

    assert client.get(f"/api/materials/{material['id']}/cards").json()["items"] == []
    rates = client.get("/api/progress").json()["success_rates"]
    assert rates == {"spaced-practice": pytest.approx(0.5)}


def test_practice_logs_scored_session(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])

    resp = client.post(
        f"/api/materials/{material['id']}/practice",
        json={"grade": "good", "duration_minutes": 20, "notes": "chapter 1"},
    )
    assert resp.status_code == 200, resp.text
    session = resp.json()["session"]
    assert session["method"] == "spaced-practice"
    assert session["score"] == 75
    assert session["class_id"] == study_class["id"]
    assert session["material_id"] == material["id"]
    assert resp.json()["card"]["kind"] == "practice"

    sessions = client.get("/api/sessions").json()["items"]
    assert [s["id"] for s in sessions] == [session["id"]]

    body = client.get("/api/progress").json()
    assert body["method_stats"] == {
        "spaced-practice": {"sessions": 1, "total_minutes": 20, "average_score": 75}
    }
    assert body["weekly_minutes"][-1]["minutes"] == 20
    assert study_class["id"] in body["class_mastery"]


def test_flashcard_session_is_scored_from_grades(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])

    resp = client.post(
        f"/api/materials/{material['id']}/flashcard-session",
        json={"grades": ["good", "easy", "again"], "duration_minutes": 15},
    )
    assert resp.status_code == 201, resp.text
    session = resp.json()
    assert session["method"] == "flashcards"
    assert session["score"] == 56
    assert session["duration_minutes"] == 15
    assert datetime.fromisoformat(session["started_at"]) == FIXED_NOW

    stats = client.get("/api/progress").json()["method_stats"]
    assert stats["flashcards"] == {"sessions": 1, "total_minutes": 15, "average_score": 56}


def test_flashcard_session_validation(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])
    url = f"/api/materials/{material['id']}/flashcard-session"

    assert client.post(url, json={"grades": []}).status_code == 422
    assert client.post(url, json={"grades": ["perfect"]}).status_code == 422
    assert client.post("/api/materials/mat:nope/flashcard-session", json={"grades": ["good"]}).status_code == 404


def test_due_practice_item_is_graded_as_spaced_practice(client, clock):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])
    card = _create_card(client, material["id"])
    assert card["kind"] == "flashcard"
    client.post(f"/api/materials/{material['id']}/practice", json={"grade": "good"})

    clock.now = FIXED_NOW + timedelta(days=3)
    due = {c["id"]: c["kind"] for c in client.get("/api/review/due").json()["items"]}
    practice_id = f"sp:{material['id']}"
    assert due == {card["id"]: "flashcard", practice_id: "practice"}

    resp = client.post("/api/review/grade", json={"card_id": practice_id, "grade": "again", "method": "feynman"})
    assert resp.status_code == 200, resp.text
    client.post("/api/review/grade", json={"card_id": card["id"], "grade": "good"})

    rates = client.get("/api/progress").json()["success_rates"]
    assert rates == {"spaced-practice": pytest.approx(0.5), "flashcards": pytest.approx(1.0)}


def test_progress_overview(client):
    study_class = _create_class(client)
    for days_ago in (0, 1, 2, 4):
        _log_session(client, study_class["id"], FIXED_NOW - timedelta(days=days_ago), score=80)

    body = client.get("/api/progress").json()

    assert body["streak_days"] == 3
    assert body["total_minutes"] == 120
    assert body["sessions_completed"] == 4
    assert body["mastery_level"] == 38
    assert body["class_mastery"] == {study_class["id"]: 38}
    assert [d["minutes"] for d in body["weekly_minutes"]] == [0, 0, 30, 0, 30, 30, 30]
    assert body["weekly_minutes"][-1]["day"] == "2024-01-10"
    assert body["method_stats"] == {"quiz": {"sessions": 4, "total_minutes": 120, "average_score": 80}}
    assert body["success_rates"] == {}
    assert body["due_now"] == 0
    assert body["reviewed_today"] == 0


def test_reviews_count_towards_streak(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])
    card = _create_card(client, material["id"])
    _create_card(client, material["id"], front="Q2")
    client.post("/api/review/grade", json={"card_id": card["id"], "grade": "hard"})

    body = client.get("/api/progress").json()

    assert body["streak_days"] == 1
    assert body["reviewed_today"] == 1
    assert body["due_now"] == 1
    assert body["success_rates"] == {"flashcards": pytest.approx(1.0)}


def test_study_plan(client):
    study_class = _create_class(client)
    first = _create_material(client, study_class["id"], title="Easy", difficulty="easy")
    second = _create_material(client, study_class["id"], title="Hard", difficulty="hard")

    plan = client.get("/api/plan").json()
    assert plan["daily_goal_minutes"] == 60
    assert [m["id"] for m in plan["items"]] == [second["id"], first["id"]]

    short = client.get("/api/plan", params={"daily_goal_minutes": 20}).json()
    assert [m["id"] for m in short["items"]] == [second["id"]]
    assert client.get("/api/plan", params={"daily_goal_minutes": 0}).status_code == 422


def test_methods_catalog(client):
    methods = client.get("/api/methods").json()
    assert [m["method"] for m in methods] == [
        "sq3r",
        "flashcards",
        "spaced-practice",
        "feynman",
        "quiz",
        "sleep-review",
    ]


def test_reminder(client, clock):
    assert client.get("/api/reminder").json()["show"] is False

    clock.now = FIXED_NOW.replace(hour=21)
    body = client.get("/api/reminder").json()
    assert body == {"show": True, "reminder_time": "20:00", "last_study": None}

    study_class = _create_class(client)
    _log_session(client, study_class["id"], clock.now - timedelta(hours=1))
    assert client.get("/api/reminder").json()["show"] is False


def test_metrics_snapshot(client):
    study_class = _create_class(client)
    material = _create_material(client, study_class["id"])
    card = _create_card(client, material["id"])
    client.post("/api/review/grade", json={"card_id": card["id"], "grade": "again"})
    client.post("/api/review/grade", json={"card_id": card["id"], "grade": "again"})

    snapshot = client.get("/metrics").json()

    assert snapshot["reviews"] == {"again": 2}
    assert snapshot["paths"]["/api/review/grade"]["count"] == 2
    assert snapshot["paths"]["/api/review/grade"]["errors"] == 0


def test_metrics_are_keyed_by_route_template(client):
    first = _create_class(client, "Biology")
    second = _create_class(client, "History")
    client.get(f"/api/classes/{first['id']}")
    client.get(f"/api/classes/{second['id']}")
    client.get("/api/classes/cls:nope")
    client.get("/no-such-path")

    paths = client.get("/metrics").json()["paths"]

    assert paths["/api/classes/{class_id}"]["count"] == 3
    assert not any(first["id"] in key or second["id"] in key for key in paths)
    assert paths["<unmatched>"]["count"] == 1
