"""
Integration tests for API endpoints using the SQLite test database.

Every request pins `today` so results do not depend on the wall clock.
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from habitcore.models.challenge import ChallengeDay

TODAY = date(2026, 3, 2)  # Monday
T = {"today": str(TODAY)}


def _ago(days: int) -> str:
    return str(TODAY - timedelta(days=days))


def _create_habit(client, headers, **body) -> dict:
    payload = {"name": "Read", "created_on": _ago(30)}
    payload.update(body)
    r = client.post("/habits", json=payload, headers=headers, params=T)
    assert r.status_code == 201, r.text
    return r.json()


def _check_in(client, headers, habit_id, days_ago, **body):
    payload = {"habit_id": habit_id, "day": _ago(days_ago)}
    payload.update(body)
    r = client.post("/tracking/check-in", json=payload, headers=headers, params=T)
    assert r.status_code == 201, r.text
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestHabits:
    def test_create_daily(self, client, headers):
        body = _create_habit(client, headers)
        assert body["id"] > 0
        assert body["cadence"] == "daily"
        assert body["value_kind"] == "boolean"
        assert body["current_streak"] == 0
        assert body["created_on"] == _ago(30)

    def test_created_on_defaults_to_today(self, client, headers):
        r = client.post("/habits", json={"name": "Stretch"}, headers=headers, params=T)
        assert r.json()["created_on"] == str(TODAY)

    def test_create_weekly(self, client, headers):
        body = _create_habit(client, headers, cadence="weekly", days_of_week=[5, 1, 3, 3])
        assert body["days_of_week"] == [1, 3, 5]

    def test_list_get_archive(self, client, headers):
        a = _create_habit(client, headers, name="A")
        b = _create_habit(client, headers, name="B")

        r = client.get("/habits", headers=headers)
        assert r.json()["total"] == 2

        r = client.post(f"/habits/{a['id']}/archive", headers=headers)
        assert r.status_code == 200
        assert r.json()["is_archived"] is True

        r = client.get("/habits", headers=headers)
        assert [h["id"] for h in r.json()["items"]] == [b["id"]]

        r = client.get("/habits", headers=headers, params={"include_archived": True})
        assert r.json()["total"] == 2

        r = client.get(f"/habits/{b['id']}", headers=headers)
        assert r.json()["name"] == "B"

    def test_owners_are_isolated(self, client, headers):
        _create_habit(client, headers)
        r = client.get("/habits", headers={"X-User-Id": "nobody-else"})
        assert all(h["name"] != "Read" for h in r.json()["items"])
        assert client.get("/habits", headers=headers).json()["total"] == 1


class TestTracking:
    def test_check_in_and_streak(self, client, headers):
        habit = _create_habit(client, headers)
        for days in (3, 2, 1):
            body = _check_in(client, headers, habit["id"], days)
        assert body["streak"]["current"] == 3
        # yesterday had ended unlogged before this write, so the run was broken
        assert body["previous_streak"] == 0

        # today not logged yet: still 3
        r = client.get(f"/tracking/habits/{habit['id']}/streak", headers=headers, params=T)
        assert r.json()["current"] == 3

        r = client.get(f"/habits/{habit['id']}", headers=headers)
        assert r.json()["current_streak"] == 3
        assert r.json()["last_completed_on"] == _ago(1)

    def test_check_in_defaults_to_today(self, client, headers):
        habit = _create_habit(client, headers)
        r = client.post("/tracking/check-in", json={"habit_id": habit["id"]}, headers=headers, params=T)
        assert r.status_code == 201
        assert r.json()["day"] == str(TODAY)

    def test_future_day_rejected(self, client, headers):
        habit = _create_habit(client, headers)
        r = client.post(
            "/tracking/check-in",
            json={"habit_id": habit["id"], "day": str(TODAY + timedelta(days=1))},
            headers=headers,
            params=T,
        )
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_RANGE"

    def test_before_creation_is_conflict(self, client, headers):
        habit = _create_habit(client, headers, created_on=_ago(1))
        r = client.post(
            "/tracking/check-in",
            json={"habit_id": habit["id"], "day": _ago(5)},
            headers=headers,
            params=T,
        )
        assert r.status_code == 409
        assert r.json()["code"] == "DATA_INTEGRITY_ERROR"

    def test_milestone_reported_once(self, client, headers):
        habit = _create_habit(client, headers)
        for days in (9, 8, 6, 5, 4, 3, 2, 1):
            _check_in(client, headers, habit["id"], days)
        body = _check_in(client, headers, habit["id"], 7)
        assert body["streak"]["current"] == 9
        assert [(m["kind"], m["threshold"]) for m in body["milestones"]] == [("streak", 7)]

        body = _check_in(client, headers, habit["id"], 7, notes="again")
        assert body["milestones"] == []

        r = client.get("/tracking/milestones", headers=headers, params={"habit_id": habit["id"]})
        assert r.json()["total"] == 1
        assert r.json()["items"][0]["achieved_on"] == str(TODAY)

    def test_undo(self, client, headers):
        habit = _create_habit(client, headers)
        _check_in(client, headers, habit["id"], 2)
        _check_in(client, headers, habit["id"], 1)
        r = client.request(
            "DELETE",
            "/tracking/check-in",
            json={"habit_id": habit["id"], "day": _ago(1)},
            headers=headers,
            params=T,
        )
        assert r.status_code == 200
        assert r.json()["current"] == 0

        r = client.request(
            "DELETE",
            "/tracking/check-in",
            json={"habit_id": habit["id"], "day": _ago(1)},
            headers=headers,
            params=T,
        )
        assert r.status_code == 404

    def test_audit_and_rebuild(self, client, headers):
        habit = _create_habit(client, headers)
        _check_in(client, headers, habit["id"], 1)

        r = client.get(f"/tracking/habits/{habit['id']}/audit", headers=headers, params=T)
        assert r.json()["drift"] is False

        later = {"today": str(TODAY + timedelta(days=3))}
        r = client.get(f"/tracking/habits/{habit['id']}/audit", headers=headers, params=later)
        assert r.json()["drift"] is True
        assert r.json()["cached"]["current"] == 1
        assert r.json()["recomputed"]["current"] == 0

        r = client.post(f"/tracking/habits/{habit['id']}/rebuild", headers=headers, params=later)
        assert r.json()["current"] == 0
        r = client.get(f"/tracking/habits/{habit['id']}/audit", headers=headers, params=later)
        assert r.json()["drift"] is False


class TestAnalytics:
    @pytest.fixture()
    def paired(self, client, headers):
        """Two daily habits done together on the last ten elapsed days."""
        a = _create_habit(client, headers, name="Run")
        b = _create_habit(client, headers, name="Stretch")
        for days in range(10, 0, -1):
            _check_in(client, headers, a["id"], days)
            _check_in(client, headers, b["id"], days)
        return a, b

    def test_calendar_month(self, client, headers, paired):
        r = client.get(
            "/analytics/calendar",
            params={"year": 2026, "month": 2, **T},
            headers=headers,
        )
        body = r.json()
        assert r.status_code == 200
        assert body["start"] == "2026-02-01"
        assert body["end"] == "2026-02-28"
        assert len(body["days"]) == 28
        by_day = {d["day"]: d for d in body["days"]}
        assert by_day["2026-02-28"]["percentage"] == 100
        assert by_day["2026-02-28"]["level"] == 4
        assert by_day["2026-02-01"]["total"] == 2
        assert by_day["2026-02-01"]["completed"] == 0
        assert by_day["2026-02-01"]["level"] == 0
        assert sum(w["total"] for w in body["weeks"]) == body["summary"]["total"]

    def test_calendar_default_is_current_week(self, client, headers, paired):
        body = client.get("/analytics/calendar", params=T, headers=headers).json()
        assert body["start"] == str(TODAY)
        assert body["end"] == str(TODAY)
        assert body["summary"] == {"completed": 0, "total": 2, "rate": 0}

    def test_heatmap(self, client, headers, paired):
        body = client.get("/analytics/heatmap", params=T, headers=headers).json()
        assert body["year"] == 2026
        assert len(body["days"]) == 61
        assert body["days"][-1]["day"] == str(TODAY)

    def test_streak_leaderboard(self, client, headers, paired):
        solo = _create_habit(client, headers, name="Solo")
        _check_in(client, headers, solo["id"], 1)
        body = client.get("/analytics/streaks", params=T, headers=headers).json()
        assert body["total"] == 3
        assert [e["current_streak"] for e in body["items"]] == [10, 10, 1]

        page = client.get("/analytics/streaks", params={"limit": 1, "offset": 2, **T}, headers=headers).json()
        assert [e["habit_id"] for e in page["items"]] == [solo["id"]]

    def test_habit_stats(self, client, headers):
        habit = _create_habit(client, headers, value_kind="counter", target_value=8, unit="glasses")
        _check_in(client, headers, habit["id"], 2, value=10)
        _check_in(client, headers, habit["id"], 1, value=4)
        body = client.get(
            f"/analytics/habits/{habit['id']}",
            params={"window_days": 7, **T},
            headers=headers,
        ).json()
        assert body["completion"] == {"completed": 1, "total": 7, "rate": 14}
        assert body["average_value"] == 7.0
        assert body["streak"]["current"] == 0
        assert body["window_start"] == _ago(6)

    def test_week_comparison(self, client, headers, paired):
        body = client.get("/analytics/week-comparison", params=T, headers=headers).json()
        assert body["previous"]["rate"] == 100
        assert body["current"]["total"] == 2
        assert body["trend"] == "down"

    def test_monthly_trend(self, client, headers, paired):
        body = client.get("/analytics/monthly-trend", params=T, headers=headers).json()
        assert len(body["days"]) == 30
        assert body["days"][-1]["day"] == str(TODAY)
        # ten full days out of thirty scheduled
        assert body["average_rate"] == 33

    def test_overview(self, client, headers, paired):
        body = client.get("/analytics/overview", params=T, headers=headers).json()
        assert body["total_habits"] == 2
        assert body["current_best_streak"] == 10
        assert body["today"] == {"completed": 0, "total": 2, "rate": 0}
        assert body["weekly_average"] == 0.0
        assert body["monthly_rate"] == 50

    def test_day_of_week(self, client, headers, paired):
        body = client.get("/analytics/day-of-week", params={"window_days": 14, **T}, headers=headers).json()
        assert [w["weekday"] for w in body["weekdays"]] == [1, 2, 3, 4, 5, 6, 7]
        assert body["window_end"] == _ago(1)
        assert body["most_consistent"]["rate"] == body["least_consistent"]["rate"]

    def test_correlations(self, client, headers, paired):
        body = client.get("/analytics/correlations", params=T, headers=headers).json()
        assert body["total"] == 1
        item = body["items"][0]
        assert item["coefficient"] == pytest.approx(1.0)
        assert item["interpretation"] == "strong positive"
        assert item["table"]["both"] == 10
        assert body["failures"] == {}

    def test_correlations_insufficient(self, client, headers):
        a = _create_habit(client, headers, created_on=_ago(3))
        _create_habit(client, headers, created_on=_ago(3))
        _check_in(client, headers, a["id"], 1)
        body = client.get("/analytics/correlations", params=T, headers=headers).json()
        assert body["items"][0]["coefficient"] is None
        assert body["items"][0]["interpretation"] == "insufficient data"

    def test_productivity(self, client, headers, paired):
        body = client.get("/analytics/productivity", params=T, headers=headers).json()
        assert 0 <= body["score"] <= 100
        assert body["grade"] in {"A", "B", "C", "D", "F"}
        assert body["window_end"] == _ago(1)
        assert body["score"] == sum(body["breakdown"].values())
        # habits were created 30 days ago; the preceding window had nothing scheduled
        assert body["trend"] == "insufficient_data"

    def test_predictions(self, client, headers, paired):
        body = client.get("/analytics/predictions", params=T, headers=headers).json()
        assert len(body["items"]) == 2
        first = body["items"][0]
        assert first["current_streak"] == 10
        assert first["next_milestone"] == 14
        assert first["days_to_milestone"] == 4
        assert first["risk_level"] == "low"


class TestChallenges:
    def _setup(self, client, headers):
        a = _create_habit(client, headers, name="A")
        b = _create_habit(client, headers, name="B")
        r = client.post(
            "/challenges",
            json={"name": "Three days", "habit_ids": [a["id"], b["id"]], "start_date": _ago(2), "duration_days": 3},
            headers=headers,
            params=T,
        )
        assert r.status_code == 201, r.text
        return a, b, r.json()

    def test_create(self, client, headers):
        a, b, challenge = self._setup(client, headers)
        assert challenge["status"] == "active"
        assert challenge["end_date"] == str(TODAY)
        assert challenge["habit_ids"] == sorted([a["id"], b["id"]])

    def test_progress(self, client, headers, db):
        a, b, challenge = self._setup(client, headers)
        _check_in(client, headers, a["id"], 2)
        _check_in(client, headers, b["id"], 2)
        _check_in(client, headers, a["id"], 1)
        _check_in(client, headers, a["id"], 0)
        _check_in(client, headers, b["id"], 0)

        stored = db.query(ChallengeDay).filter(ChallengeDay.challenge_id == challenge["id"]).count()
        assert stored == 3

        r = client.get(f"/challenges/{challenge['id']}/progress", headers=headers, params=T)
        body = r.json()
        assert body["perfect_days"] == 2
        assert body["days_completed"] == 3
        assert body["current_streak"] == 1
        assert body["overall_completion"] == 83
        assert body["status"] == "active"

        again = client.get(f"/challenges/{challenge['id']}/progress", headers=headers, params=T).json()
        assert again == body

    def test_auto_complete_then_abandon_rejected(self, client, headers):
        _, _, challenge = self._setup(client, headers)
        later = {"today": str(TODAY + timedelta(days=1))}
        body = client.get(f"/challenges/{challenge['id']}/progress", headers=headers, params=later).json()
        assert body["status"] == "completed"

        r = client.post(f"/challenges/{challenge['id']}/abandon", headers=headers, params=later)
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_STATUS_TRANSITION"

    def test_abandon(self, client, headers):
        _, _, challenge = self._setup(client, headers)
        r = client.post(f"/challenges/{challenge['id']}/abandon", headers=headers, params=T)
        assert r.status_code == 200
        assert r.json()["status"] == "abandoned"

        r = client.post(f"/challenges/{challenge['id']}/abandon", headers=headers, params=T)
        assert r.status_code == 409

    def test_unknown_habit(self, client, headers):
        r = client.post(
            "/challenges",
            json={"name": "X", "habit_ids": [987654321], "duration_days": 7},
            headers=headers,
            params=T,
        )
        assert r.status_code == 404
