"""
Timer analytics, consent-gated events, user stats and achievements.
"""
from datetime import date, timedelta

import pytest

from models import AnalyticsEvent, Notification, UserStats
from services import achievement_service, analytics_service


class TestTimerSessions:
    def test_early_completion(self, client, headers):
        response = client.post(
            "/v1/analytics/timer-sessions",
            json={"planned_duration": 1500, "actual_duration": 1200, "timer_type": "focus"},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["completed_early"] is True
        assert body["early_completion_percentage"] == 20.0

    def test_full_run_is_not_early(self, client, headers):
        body = client.post(
            "/v1/analytics/timer-sessions",
            json={"planned_duration": 600, "actual_duration": 600},
            headers=headers,
        ).json()
        assert body["completed_early"] is False
        assert body["early_completion_percentage"] is None

    def test_foreign_task_rejected(self, client, headers, make_user, auth_for):
        other = make_user("bob")
        task = client.post("/v1/tasks", json={"title": "Bob's"}, headers=auth_for(other)).json()
        response = client.post(
            "/v1/analytics/timer-sessions",
            json={"planned_duration": 600, "actual_duration": 300, "task_id": task["id"]},
            headers=headers,
        )
        assert response.status_code == 404

    def test_productivity_summary(self, client, headers):
        for actual in (1200, 1500):
            client.post(
                "/v1/analytics/timer-sessions",
                json={"planned_duration": 1500, "actual_duration": actual},
                headers=headers,
            )
        stats = client.get("/v1/analytics/productivity", headers=headers).json()
        assert stats == {
            "total_sessions": 2,
            "early_completions": 1,
            "early_completion_rate": 50.0,
            "average_early_percentage": 20.0,
            "trend": "improving",
        }

    def test_productivity_empty(self, client, headers):
        stats = client.get("/v1/analytics/productivity", headers=headers).json()
        assert stats["total_sessions"] == 0
        assert stats["trend"] == "stable"

    @pytest.mark.parametrize("recent,previous,expected", [
        (60.0, 40.0, "improving"),
        (40.0, 60.0, "declining"),
        (50.0, 45.0, "stable"),
    ])
    def test_trend_band(self, recent, previous, expected):
        assert analytics_service.productivity_trend(recent, previous) == expected


class TestEvents:
    def test_not_recorded_without_consent(self, client, headers, db_session):
        response = client.post("/v1/analytics/events", json={"event_type": "feature_used"}, headers=headers)
        assert response.json() == {"recorded": False}
        assert db_session.query(AnalyticsEvent).count() == 0

    def test_recorded_with_consent_and_filtered(self, client, make_user, auth_for, db_session):
        opted_in = make_user("olga", data_collection_consent=True)
        response = client.post(
            "/v1/analytics/events",
            json={"event_type": "feature_used", "data": {"feature": "voice", "email": "olga@example.com"}},
            headers=auth_for(opted_in),
        )
        assert response.json() == {"recorded": True}

        event = db_session.query(AnalyticsEvent).one()
        assert event.event_data == {"feature": "voice"}

    def test_task_creation_tracked_for_consenting_user(self, client, make_user, auth_for, db_session):
        opted_in = make_user("olga", data_collection_consent=True)
        client.post("/v1/tasks", json={"title": "Tracked", "category": "Work"}, headers=auth_for(opted_in))

        db_session.expire_all()
        event = db_session.query(AnalyticsEvent).filter(AnalyticsEvent.event_type == "task_created").one()
        assert event.event_data["category"] == "Work"


class TestStreaks:
    def test_first_completion_starts_streak(self):
        stats = UserStats(current_streak=0, longest_streak=0)
        achievement_service.advance_streak(stats, date(2026, 5, 1))
        assert stats.current_streak == 1

    def test_next_day_extends_and_same_day_keeps(self):
        stats = UserStats(current_streak=2, longest_streak=2, last_completion_date=date(2026, 5, 1))
        achievement_service.advance_streak(stats, date(2026, 5, 2))
        achievement_service.advance_streak(stats, date(2026, 5, 2))
        assert stats.current_streak == 3
        assert stats.longest_streak == 3

    def test_gap_restarts(self):
        stats = UserStats(current_streak=5, longest_streak=5, last_completion_date=date(2026, 5, 1))
        achievement_service.advance_streak(stats, date(2026, 5, 1) + timedelta(days=3))
        assert stats.current_streak == 1
        assert stats.longest_streak == 5


class TestAchievements:
    def test_catalogue_with_progress(self, client, headers, seeded):
        achievements = client.get("/v1/achievements", headers=headers).json()
        assert len(achievements) == len(achievement_service.DEFAULT_ACHIEVEMENTS)
        assert all(a["progress"] == 0 and not a["is_completed"] for a in achievements)

    def test_first_completion_unlocks_first_steps(self, client, headers, seeded, db_session, user):
        task = client.post("/v1/tasks", json={"title": "Anything"}, headers=headers).json()
        client.post(f"/v1/tasks/{task['id']}/toggle", headers=headers)

        by_key = {a["key"]: a for a in client.get("/v1/achievements", headers=headers).json()}
        assert by_key["first_steps"]["is_completed"] is True
        assert by_key["getting_started"]["progress"] == 1

        stats = client.get("/v1/achievements/stats", headers=headers).json()
        assert stats["total_points"] == 10
        assert stats["completed_tasks"] == 1

        db_session.expire_all()
        notes = db_session.query(Notification).filter(Notification.user_id == user.id).all()
        assert [n.type for n in notes] == ["achievement"]

    def test_points_can_complete_milestones_in_one_pass(self, db_session, seeded, user):
        stats = achievement_service.get_stats(db_session, user.id)
        stats.completed_tasks = 100

        unlocked = {a.key for a in achievement_service.check_achievements(db_session, user.id)}

        assert {"first_steps", "legendary", "power_user"} <= unlocked
        assert "elite" not in unlocked

    def test_opted_out_user_gets_stats_but_no_unlocks(self, client, make_user, auth_for, seeded):
        quiet = make_user("quiet", achievements_enabled=False)
        quiet_headers = auth_for(quiet)
        task = client.post("/v1/tasks", json={"title": "Anything"}, headers=quiet_headers).json()
        client.post(f"/v1/tasks/{task['id']}/toggle", headers=quiet_headers)

        stats = client.get("/v1/achievements/stats", headers=quiet_headers).json()
        assert stats["completed_tasks"] == 1
        assert stats["total_points"] == 0
