"""
Manual archiving, the archive listing and the hourly auto-archive run.
"""
from datetime import timedelta

from core.clock import utcnow
from models import Appointment, Task
from services import archive_service


def _task(db_session, user, **fields):
    task = Task(user_id=user.id, title=fields.pop("title", "Done thing"), **fields)
    db_session.add(task)
    db_session.commit()
    return task


class TestArchiveApi:
    def test_archive_requires_completion(self, client, headers, db_session, user):
        task = _task(db_session, user)
        response = client.post(f"/v1/archive/tasks/{task.id}", headers=headers)
        assert response.status_code == 400

    def test_archive_and_unarchive(self, client, headers, db_session, user):
        task = _task(db_session, user, completed=True, completed_at=utcnow())

        archived = client.post(f"/v1/archive/tasks/{task.id}", headers=headers)
        assert archived.status_code == 200
        assert archived.json()["archived"] is True

        # Archived tasks leave the main list
        assert client.get("/v1/tasks", headers=headers).json() == []
        listed = client.get("/v1/archive", headers=headers).json()
        assert [t["id"] for t in listed] == [str(task.id)]

        restored = client.delete(f"/v1/archive/tasks/{task.id}", headers=headers)
        assert restored.json()["archived"] is False
        assert restored.json()["archived_at"] is None

    def test_archive_all_completed(self, client, headers, db_session, user):
        _task(db_session, user, title="a", completed=True, completed_at=utcnow())
        _task(db_session, user, title="b", completed=True, completed_at=utcnow())
        _task(db_session, user, title="open")

        response = client.post("/v1/archive/completed", headers=headers)
        assert response.json() == {"success": True, "archived": 2}
        assert [t["title"] for t in client.get("/v1/tasks", headers=headers).json()] == ["open"]

    def test_category_filter(self, client, headers, db_session, user):
        now = utcnow()
        _task(db_session, user, title="w", category="Work", completed=True, archived=True, archived_at=now)
        _task(db_session, user, title="h", category="Health", completed=True, archived=True, archived_at=now)

        listed = client.get("/v1/archive", params={"category": "Work"}, headers=headers).json()
        assert [t["title"] for t in listed] == ["w"]


class TestAutoArchive:
    def test_archives_after_window_and_backdates(self, db_session, make_user):
        owner = make_user("carol", auto_archive_enabled=True, auto_archive_hours=24)
        now = utcnow()
        old = _task(db_session, owner, title="old", completed=True, completed_at=now - timedelta(hours=30))
        fresh = _task(db_session, owner, title="fresh", completed=True, completed_at=now - timedelta(hours=2))

        archived, deleted = archive_service.auto_archive_for_user(db_session, owner, now=now)

        assert (archived, deleted) == (1, 0)
        assert old.archived is True
        assert old.archived_at == old.completed_at
        assert fresh.archived is False

    def test_retention_deletes_old_archives(self, db_session, make_user):
        owner = make_user("dave", auto_archive_enabled=True, delete_archived_after_days=7)
        now = utcnow()
        _task(db_session, owner, title="ancient", completed=True, archived=True, archived_at=now - timedelta(days=10))
        keep = _task(db_session, owner, title="recent", completed=True, archived=True, archived_at=now - timedelta(days=2))

        archived, deleted = archive_service.auto_archive_for_user(db_session, owner, now=now)
        db_session.commit()

        assert deleted == 1
        remaining = db_session.query(Task).filter(Task.user_id == owner.id).all()
        assert [t.id for t in remaining] == [keep.id]

    def test_null_retention_keeps_forever(self, db_session, make_user):
        owner = make_user("erin", auto_archive_enabled=True)
        now = utcnow()
        _task(db_session, owner, completed=True, archived=True, archived_at=now - timedelta(days=400))

        _, deleted = archive_service.auto_archive_for_user(db_session, owner, now=now)
        assert deleted == 0

    def test_missing_window_falls_back_to_a_day(self, db_session, make_user):
        owner = make_user("hana", auto_archive_enabled=True)
        owner.auto_archive_hours = None
        db_session.commit()
        now = utcnow()
        done = _task(db_session, owner, completed=True, completed_at=now - timedelta(hours=25))

        archived, _ = archive_service.auto_archive_for_user(db_session, owner, now=now)
        db_session.commit()

        assert archived == 1
        assert done.archived is True
        db_session.refresh(owner)
        assert owner.auto_archive_hours == 24

    def test_retention_removes_linked_appointments(self, db_session, make_user):
        owner = make_user("ivan", auto_archive_enabled=True, delete_archived_after_days=7)
        now = utcnow()
        task = _task(db_session, owner, completed=True, archived=True, archived_at=now - timedelta(days=10))
        booking = Appointment(
            user_id=owner.id,
            task_id=task.id,
            attendee_name="Jo",
            attendee_email="jo@example.com",
            start_time=now - timedelta(days=12),
            end_time=now - timedelta(days=12) + timedelta(minutes=30),
            cancellation_token="retention-token",
        )
        db_session.add(booking)
        db_session.commit()
        task_id, booking_id = task.id, booking.id

        _, deleted = archive_service.auto_archive_for_user(db_session, owner, now=now)
        db_session.commit()

        assert deleted == 1
        assert db_session.query(Task).filter(Task.id == task_id).count() == 0
        assert db_session.query(Appointment).filter(Appointment.id == booking_id).count() == 0

    def test_run_only_touches_opted_in_users(self, db_session, make_user):
        now = utcnow()
        opted_in = make_user("frank", auto_archive_enabled=True, auto_archive_hours=12)
        opted_out = make_user("grace")
        _task(db_session, opted_in, completed=True, completed_at=now - timedelta(hours=13))
        untouched = _task(db_session, opted_out, completed=True, completed_at=now - timedelta(days=3))

        totals = archive_service.run_auto_archive(db_session, now=now)

        assert totals["users"] == 1
        assert totals["archived"] == 1
        assert totals["errors"] == 0
        db_session.refresh(untouched)
        assert untouched.archived is False
