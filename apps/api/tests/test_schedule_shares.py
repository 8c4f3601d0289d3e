"""
Schedule sharing between users: invitations, scope and permissions.
"""
from datetime import timedelta

import pytest

from core.clock import utcnow
from models import Notification, ScheduleShare, Task


@pytest.fixture
def bob(make_user):
    return make_user("bob", email="bob.builder@example.com")


def _scheduled(db_session, owner, title, days=1, **fields):
    task = Task(user_id=owner.id, title=title, scheduled_date=utcnow() + timedelta(days=days), **fields)
    db_session.add(task)
    db_session.commit()
    return task


def _share(client, headers, recipient="bob", **fields):
    payload = {"recipient_identifier": recipient}
    payload.update(fields)
    return client.post("/v1/schedule-shares", json=payload, headers=headers)


class TestCreateShare:
    def test_share_by_username_notifies_recipient(self, client, headers, bob, db_session):
        response = _share(client, headers, message="My week")
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["permission"] == "view"
        assert body["share_type"] == "full"
        assert body["owner_username"] == "alice"
        assert body["shared_with_username"] == "bob"
        assert body["accepted_at"] is None

        notes = db_session.query(Notification).filter(Notification.user_id == bob.id).all()
        assert [n.type for n in notes] == ["share"]

    def test_share_by_email_is_case_insensitive(self, client, headers, bob):
        assert _share(client, headers, recipient="BOB.Builder@example.com").status_code == 201

    def test_share_by_username_is_case_insensitive(self, client, headers, bob):
        response = _share(client, headers, recipient="BOB")
        assert response.status_code == 201
        assert response.json()["shared_with_username"] == "bob"

    def test_unknown_recipient(self, client, headers):
        assert _share(client, headers, recipient="nobody").status_code == 404

    def test_cannot_share_with_self(self, client, headers):
        assert _share(client, headers, recipient="alice").status_code == 400

    def test_one_active_share_per_pair(self, client, headers, bob):
        _share(client, headers)
        assert _share(client, headers, permission="edit").status_code == 400

    def test_selective_needs_tasks(self, client, headers, bob):
        assert _share(client, headers, share_type="selective").status_code == 400

    def test_selective_rejects_foreign_task(self, client, headers, bob, db_session):
        theirs = _scheduled(db_session, bob, "Bob's dentist")
        response = _share(client, headers, share_type="selective", selected_task_ids=[str(theirs.id)])
        assert response.status_code == 404


class TestRecipientFlow:
    def test_accept_then_see_events(self, client, headers, bob, auth_for, db_session, user):
        _scheduled(db_session, user, "Later", days=3)
        _scheduled(db_session, user, "Sooner", days=1)
        _scheduled(db_session, user, "Archived", archived=True)
        db_session.add(Task(user_id=user.id, title="Unscheduled"))
        db_session.commit()

        share = _share(client, headers).json()
        bob_headers = auth_for(bob)

        # Pending shares expose nothing on the calendar yet
        assert client.get("/v1/schedule-shares/events", headers=bob_headers).json() == []

        accepted = client.post(f"/v1/schedule-shares/{share['id']}/accept", headers=bob_headers)
        assert accepted.status_code == 200
        assert accepted.json()["accepted_at"] is not None

        events = client.get("/v1/schedule-shares/events", headers=bob_headers).json()
        assert [e["title"] for e in events] == ["Sooner", "Later"]
        assert all(e["share_owner_username"] == "alice" for e in events)
        assert all(e["is_shared"] for e in events)

    def test_selective_scope(self, client, headers, bob, auth_for, db_session, user):
        picked = _scheduled(db_session, user, "Picked")
        _scheduled(db_session, user, "Private")
        share = _share(client, headers, share_type="selective", selected_task_ids=[str(picked.id)]).json()

        schedule = client.get(f"/v1/schedule-shares/{share['id']}/schedule", headers=auth_for(bob)).json()
        assert [t["title"] for t in schedule["tasks"]] == ["Picked"]

    def test_owner_cannot_accept(self, client, headers, bob):
        share = _share(client, headers).json()
        assert client.post(f"/v1/schedule-shares/{share['id']}/accept", headers=headers).status_code == 404

    def test_decline_keeps_it_visible_to_owner(self, client, headers, bob, auth_for):
        share = _share(client, headers).json()
        declined = client.post(f"/v1/schedule-shares/{share['id']}/decline", headers=auth_for(bob)).json()
        assert declined["is_active"] is False
        assert declined["declined_at"] is not None

        mine = client.get("/v1/schedule-shares/mine", headers=headers).json()
        assert [s["id"] for s in mine] == [share["id"]]
        assert client.get("/v1/schedule-shares/shared-with-me", headers=auth_for(bob)).json() == []

        # A declined share frees the pair for a new invitation
        assert _share(client, headers).status_code == 201

    def test_removed_share_is_hidden(self, client, headers, bob, auth_for, db_session):
        share = _share(client, headers).json()
        assert client.delete(f"/v1/schedule-shares/{share['id']}", headers=auth_for(bob)).json() == {"success": True}

        assert client.get("/v1/schedule-shares/mine", headers=headers).json() == []
        db_session.expire_all()
        row = db_session.query(ScheduleShare).one()
        assert row.is_active is False

    def test_outsider_cannot_remove(self, client, headers, bob, make_user, auth_for):
        share = _share(client, headers).json()
        outsider = make_user("mallory")
        assert client.delete(f"/v1/schedule-shares/{share['id']}", headers=auth_for(outsider)).status_code == 404


class TestSharedTaskPermissions:
    def _accepted(self, client, headers, bob_headers, permission):
        share = _share(client, headers, permission=permission).json()
        client.post(f"/v1/schedule-shares/{share['id']}/accept", headers=bob_headers)
        return share

    def test_view_cannot_edit(self, client, headers, bob, auth_for, db_session, user):
        task = _scheduled(db_session, user, "Review")
        bob_headers = auth_for(bob)
        self._accepted(client, headers, bob_headers, "view")

        response = client.patch(f"/v1/schedule-shares/tasks/{task.id}", json={"title": "Hijacked"}, headers=bob_headers)
        assert response.status_code == 403

    def test_edit_can_update_but_not_delete(self, client, headers, bob, auth_for, db_session, user):
        task = _scheduled(db_session, user, "Review")
        bob_headers = auth_for(bob)
        self._accepted(client, headers, bob_headers, "edit")

        response = client.patch(
            f"/v1/schedule-shares/tasks/{task.id}",
            json={"title": "Review slides", "notes": "bring laptop"},
            headers=bob_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["title"] == "Review slides"
        assert response.json()["user_id"] == str(user.id)

        assert client.delete(f"/v1/schedule-shares/tasks/{task.id}", headers=bob_headers).status_code == 403

    def test_full_can_delete(self, client, headers, bob, auth_for, db_session, user):
        task = _scheduled(db_session, user, "Review")
        bob_headers = auth_for(bob)
        self._accepted(client, headers, bob_headers, "full")

        assert client.delete(f"/v1/schedule-shares/tasks/{task.id}", headers=bob_headers).status_code == 204
        db_session.expire_all()
        assert db_session.query(Task).filter(Task.id == task.id).first() is None

    def test_pending_share_grants_nothing(self, client, headers, bob, auth_for, db_session, user):
        task = _scheduled(db_session, user, "Review")
        _share(client, headers, permission="full")
        response = client.delete(f"/v1/schedule-shares/tasks/{task.id}", headers=auth_for(bob))
        assert response.status_code == 403

    def test_owner_can_change_permission(self, client, headers, bob):
        share = _share(client, headers).json()
        response = client.patch(f"/v1/schedule-shares/{share['id']}", json={"permission": "edit"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["permission"] == "edit"


class TestUserSearch:
    def test_search_masks_email_and_skips_self(self, client, headers, bob, make_user):
        make_user("bobby", email="bobby@example.com")
        results = client.get("/v1/schedule-shares/search-users", params={"q": "bob"}, headers=headers).json()
        assert [r["username"] for r in results] == ["bob", "bobby"]
        assert results[0]["email"] == "bo***@example.com"

        own = client.get("/v1/schedule-shares/search-users", params={"q": "alice"}, headers=headers).json()
        assert own == []

    def test_search_needs_two_characters(self, client, headers):
        response = client.get("/v1/schedule-shares/search-users", params={"q": "b"}, headers=headers)
        assert response.status_code == 400

    def test_blocked_users_hidden(self, client, headers, make_user):
        make_user("bobcat", is_blocked=True)
        assert client.get("/v1/schedule-shares/search-users", params={"q": "bobcat"}, headers=headers).json() == []
