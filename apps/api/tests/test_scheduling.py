"""
Booking page settings, slot generation and the public booking flow.
"""
from datetime import date, datetime, timedelta

import pytest

from core.clock import utcnow
from core.exceptions import ConflictError
from models import SchedulingSettings, Task, Notification
from services import scheduling_service

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _every_day(start="09:00", end="17:00"):
    return {day: {"enabled": True, "slots": [{"start": start, "end": end}]} for day in WEEKDAYS}


@pytest.fixture
def page(db_session, user):
    """UTC booking page open 09:00-12:00 every day, 30 minute slots."""
    row = SchedulingSettings(
        user_id=user.id,
        slug="alice",
        is_enabled=True,
        timezone="UTC",
        slot_duration=30,
        min_notice_minutes=0,
        booking_window_days=30,
        availability=_every_day("09:00", "12:00"),
        blocked_dates=[],
        blocked_time_slots=[],
    )
    db_session.add(row)
    db_session.commit()
    return row


# Monday, well before any slot of the tested days
NOW = datetime(2026, 3, 2, 6, 0)
DAY = date(2026, 3, 4)


class TestSlotGeneration:
    def test_window_is_walked_in_slot_steps(self, page):
        slots = scheduling_service.generate_day_slots(page, DAY)
        starts = [scheduling_service.format_minutes(s) for s, _ in slots]
        assert starts == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
        assert all(end - start == 30 for start, end in slots)

    def test_disabled_weekday(self, page):
        page.availability = dict(page.availability, wednesday={"enabled": False, "slots": []})
        assert scheduling_service.generate_day_slots(page, DAY) == []

    def test_blocked_date(self, page):
        page.blocked_dates = [DAY.isoformat()]
        assert scheduling_service.generate_day_slots(page, DAY) == []

    def test_blocked_range_matches_slot_start(self, page):
        page.blocked_time_slots = [{"date": DAY.isoformat(), "slots": [{"start": "10:00", "end": "11:00"}]}]
        starts = [scheduling_service.format_minutes(s) for s, _ in scheduling_service.generate_day_slots(page, DAY)]
        assert starts == ["09:00", "09:30", "11:00", "11:30"]

    def test_min_notice(self, db_session, page):
        page.min_notice_minutes = 60
        now = datetime(2026, 3, 4, 9, 10)
        times = [s["time"] for s in scheduling_service.available_slots(db_session, page, DAY, now=now)]
        assert times == ["10:30", "11:00", "11:30"]

    def test_past_and_beyond_window(self, db_session, page):
        assert scheduling_service.available_slots(db_session, page, NOW.date() - timedelta(days=1), now=NOW) == []
        page.booking_window_days = 1
        assert scheduling_service.available_slots(db_session, page, NOW.date() + timedelta(days=2), now=NOW) == []

    def test_host_timezone(self, db_session, page):
        page.timezone = "America/New_York"
        slot = scheduling_service.available_slots(db_session, page, DAY, now=NOW)[0]
        assert slot["time"] == "09:00"
        # EST is UTC-5 in early March
        assert slot["start_utc"] == datetime(2026, 3, 4, 14, 0)

    def test_booked_slot_excluded(self, db_session, page):
        scheduling_service.book_appointment(db_session, page, DAY, "09:30", "Ann", "ann@example.com", now=NOW)
        times = [s["time"] for s in scheduling_service.available_slots(db_session, page, DAY, now=NOW)]
        assert "09:30" not in times
        assert "09:00" in times

    def test_available_dates(self, db_session, page):
        page.booking_window_days = 3
        page.blocked_dates = [(NOW.date() + timedelta(days=1)).isoformat()]
        dates = scheduling_service.available_dates(db_session, page, now=NOW)
        assert dates == [NOW.date(), NOW.date() + timedelta(days=2), NOW.date() + timedelta(days=3)]


class TestBookingService:
    def test_booking_creates_task_and_notification(self, db_session, page, user):
        appointment = scheduling_service.book_appointment(
            db_session, page, DAY, "10:00", "Ann", "ANN@example.com", "About the proposal", now=NOW,
        )
        assert appointment.status == "scheduled"
        assert appointment.attendee_email == "ann@example.com"
        assert appointment.cancellation_token

        task = db_session.query(Task).filter(Task.id == appointment.task_id).one()
        assert task.user_id == user.id
        assert task.is_fixed is True
        assert task.created_via == "booking"
        assert task.scheduled_date == datetime(2026, 3, 4, 10, 0)
        assert db_session.query(Notification).filter(Notification.type == "booking").count() == 1

    def test_double_booking_conflicts(self, db_session, page):
        scheduling_service.book_appointment(db_session, page, DAY, "10:00", "Ann", "ann@example.com", now=NOW)
        with pytest.raises(ConflictError):
            scheduling_service.book_appointment(db_session, page, DAY, "10:00", "Ben", "ben@example.com", now=NOW)

    def test_cancel_releases_slot_and_task(self, db_session, page):
        appointment = scheduling_service.book_appointment(db_session, page, DAY, "10:00", "Ann", "ann@example.com", now=NOW)
        task_id = appointment.task_id

        scheduling_service.cancel_by_token(db_session, appointment.cancellation_token)

        assert appointment.status == "cancelled"
        assert appointment.cancelled_at is not None
        assert db_session.query(Task).filter(Task.id == task_id).first() is None
        times = [s["time"] for s in scheduling_service.available_slots(db_session, page, DAY, now=NOW)]
        assert "10:00" in times

    def test_completed_appointment_completes_task(self, db_session, page, user):
        appointment = scheduling_service.book_appointment(db_session, page, DAY, "10:00", "Ann", "ann@example.com", now=NOW)
        scheduling_service.update_appointment_status(db_session, user, appointment.id, "completed")
        task = db_session.query(Task).filter(Task.id == appointment.task_id).one()
        assert task.completed is True


class TestSettingsApi:
    def test_settings_created_on_first_read(self, client, headers):
        response = client.get("/v1/scheduling/settings", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["slug"] == "alice"
        assert body["is_enabled"] is False
        assert body["slot_duration"] == 30
        assert body["availability"]["monday"]["enabled"] is True
        assert body["availability"]["sunday"]["enabled"] is False
        assert body["public_url"].endswith("/alice")

    def test_update_settings(self, client, headers):
        response = client.patch(
            "/v1/scheduling/settings",
            json={
                "slug": "alice-meetings",
                "slot_duration": 45,
                "timezone": "Europe/Berlin",
                "blocked_dates": ["2026-12-25"],
            },
            headers=headers,
        )
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["slug"] == "alice-meetings"
        assert body["slot_duration"] == 45
        assert body["timezone"] == "Europe/Berlin"
        assert body["blocked_dates"] == ["2026-12-25"]

    def test_slug_taken(self, client, headers, make_user, auth_for):
        other = make_user("bob")
        client.patch("/v1/scheduling/settings", json={"slug": "shared-name"}, headers=auth_for(other))
        response = client.patch("/v1/scheduling/settings", json={"slug": "shared-name"}, headers=headers)
        assert response.status_code == 409

    def test_window_must_start_before_end(self, client, headers):
        response = client.patch(
            "/v1/scheduling/settings",
            json={"availability": {"monday": {"enabled": True, "slots": [{"start": "12:00", "end": "09:00"}]}}},
            headers=headers,
        )
        assert response.status_code == 400

    def test_enable_disable(self, client, headers):
        assert client.post("/v1/scheduling/settings/enable", headers=headers).json()["is_enabled"] is True
        assert client.post("/v1/scheduling/settings/disable", headers=headers).json()["is_enabled"] is False


class TestPublicBookingApi:
    def _open_page(self, client, headers):
        response = client.patch(
            "/v1/scheduling/settings",
            json={
                "is_enabled": True,
                "timezone": "UTC",
                "min_notice_minutes": 0,
                "availability": _every_day("09:00", "17:00"),
            },
            headers=headers,
        )
        assert response.status_code == 200, response.text
        return response.json()["slug"]

    def test_disabled_page_is_404_for_public(self, client, headers):
        client.get("/v1/scheduling/settings", headers=headers)
        assert client.get("/v1/public/schedule/alice").status_code == 404
        # The host can still preview it
        assert client.get("/v1/public/schedule/alice", headers=headers).status_code == 200

    def test_public_page(self, client, headers):
        slug = self._open_page(client, headers)
        response = client.get(f"/v1/public/schedule/{slug}")
        assert response.status_code == 200
        assert response.json()["host_username"] == "alice"

    def test_book_and_cancel(self, client, headers, db_session):
        slug = self._open_page(client, headers)
        day = (utcnow() + timedelta(days=2)).date().isoformat()

        slots = client.get(f"/v1/public/schedule/{slug}/slots", params={"date": day}).json()
        assert slots, "expected open slots two days out"
        time = slots[0]["time"]

        booking = {"date": day, "time": time, "attendee_name": "Ann", "attendee_email": "ann@example.com"}
        response = client.post(f"/v1/public/schedule/{slug}/book", json=booking)
        assert response.status_code == 201, response.text
        token = response.json()["cancellation_token"]

        # Same slot again
        assert client.post(f"/v1/public/schedule/{slug}/book", json=booking).status_code == 409

        # The meeting shows on the host's task list with its appointment
        tasks = client.get("/v1/tasks", headers=headers).json()
        assert len(tasks) == 1
        assert tasks[0]["appointment"]["attendee_name"] == "Ann"

        appointments = client.get("/v1/scheduling/appointments", headers=headers).json()
        assert len(appointments) == 1

        cancelled = client.post(f"/v1/public/schedule/cancel/{token}")
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"
        assert client.get("/v1/tasks", headers=headers).json() == []

    def test_unknown_cancellation_token(self, client):
        assert client.post("/v1/public/schedule/cancel/not-a-token").status_code == 404

    def test_booking_rejects_bad_time(self, client, headers):
        slug = self._open_page(client, headers)
        day = (utcnow() + timedelta(days=2)).date().isoformat()
        response = client.post(
            f"/v1/public/schedule/{slug}/book",
            json={"date": day, "time": "25:00", "attendee_name": "Ann", "attendee_email": "ann@example.com"},
        )
        assert response.status_code == 422
