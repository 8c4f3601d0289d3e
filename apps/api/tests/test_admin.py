"""
Admin dashboard: role checks, user management, overview and share oversight.
"""
import pytest

from core import cache
from core.account_security import MAX_FAILED_ATTEMPTS, is_account_locked, record_login_attempt
from models import ScheduleShare, Task
from services import analytics_service


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
def admin(make_user):
    return make_user("root", role="admin")


@pytest.fixture
def owner(make_user):
    return make_user("boss", role="owner")


class TestAccess:
    @pytest.mark.parametrize("path", [
        "/v1/admin/overview",
        "/v1/admin/users",
        "/v1/admin/schedule-shares",
        "/v1/admin/schedule-shares/summary",
    ])
    def test_regular_user_forbidden(self, client, headers, path):
        assert client.get(path, headers=headers).status_code == 403

    def test_admin_cannot_change_roles(self, client, admin, auth_for, user):
        response = client.patch(f"/v1/admin/users/{user.id}/role", json={"role": "admin"}, headers=auth_for(admin))
        assert response.status_code == 403


class TestUsers:
    def test_list_and_search(self, client, admin, auth_for, user, make_user):
        make_user("bob")
        body = client.get("/v1/admin/users", params={"search": "ali"}, headers=auth_for(admin)).json()
        assert body["total"] == 1
        assert body["users"][0]["username"] == "alice"

        admins = client.get("/v1/admin/users", params={"role": "admin"}, headers=auth_for(admin)).json()
        assert [u["username"] for u in admins["users"]] == ["root"]

    def test_block_locks_user_out(self, client, admin, auth_for, user, headers):
        response = client.post(f"/v1/admin/users/{user.id}/block", json={"blocked": True}, headers=auth_for(admin))
        assert response.json()["is_blocked"] is True
        assert client.get("/v1/tasks", headers=headers).status_code == 403

        client.post(f"/v1/admin/users/{user.id}/block", json={"blocked": False}, headers=auth_for(admin))
        assert client.get("/v1/tasks", headers=headers).status_code == 200

    def test_unblock_clears_login_lockout(self, client, admin, auth_for, user):
        for _ in range(MAX_FAILED_ATTEMPTS):
            record_login_attempt("alice", success=False)
        assert is_account_locked("alice")[0] is True

        client.post(f"/v1/admin/users/{user.id}/block", json={"blocked": False}, headers=auth_for(admin))
        assert is_account_locked("alice")[0] is False

    def test_cannot_block_self(self, client, admin, auth_for):
        response = client.post(f"/v1/admin/users/{admin.id}/block", json={"blocked": True}, headers=auth_for(admin))
        assert response.status_code == 400

    def test_admin_cannot_block_owner(self, client, admin, owner, auth_for):
        response = client.post(f"/v1/admin/users/{owner.id}/block", json={"blocked": True}, headers=auth_for(admin))
        assert response.status_code == 403

    def test_owner_changes_role(self, client, owner, auth_for, user):
        response = client.patch(f"/v1/admin/users/{user.id}/role", json={"role": "admin"}, headers=auth_for(owner))
        assert response.json() == {"success": True, "user_id": str(user.id), "role": "admin"}

    def test_owner_cannot_demote_self(self, client, owner, auth_for):
        response = client.patch(f"/v1/admin/users/{owner.id}/role", json={"role": "user"}, headers=auth_for(owner))
        assert response.status_code == 400


class TestOverview:
    def test_counts(self, client, admin, auth_for, db_session, user):
        db_session.add_all([
            Task(user_id=user.id, title="a", category="Work", completed=True),
            Task(user_id=user.id, title="b", category="Work"),
            Task(user_id=user.id, title="c", category="Health", created_via="voice"),
            Task(user_id=user.id, title="d", category="Health", completed=True),
        ])
        db_session.commit()

        overview = client.get("/v1/admin/overview", headers=auth_for(admin)).json()
        assert overview["users"]["total"] == 2
        assert overview["tasks"]["total"] == 4
        assert overview["tasks"]["completion_rate"] == 50.0
        assert overview["tasks"]["by_category"] == {"Work": 2, "Health": 2}
        assert overview["tasks"]["voice_created"] == 1
        assert overview["schedule_shares"]["total"] == 0

    def test_cached_until_refresh(self, db_session, user, monkeypatch):
        monkeypatch.setattr(cache, "_redis_client", FakeRedis())
        first = analytics_service.get_admin_overview(db_session)

        db_session.add(Task(user_id=user.id, title="new"))
        db_session.commit()

        assert analytics_service.get_admin_overview(db_session)["tasks"]["total"] == first["tasks"]["total"]
        assert analytics_service.get_admin_overview(db_session, refresh=True)["tasks"]["total"] == first["tasks"]["total"] + 1


class TestScheduleShareOversight:
    @pytest.fixture
    def shares(self, db_session, make_user, user):
        bob, carol = make_user("bob"), make_user("carol")
        rows = [
            ScheduleShare(owner_user_id=user.id, shared_with_user_id=bob.id, permission="view", share_type="full", is_active=True),
            ScheduleShare(owner_user_id=user.id, shared_with_user_id=carol.id, permission="edit", share_type="full", is_active=True),
            ScheduleShare(owner_user_id=bob.id, shared_with_user_id=carol.id, permission="full", share_type="full", is_active=False),
        ]
        db_session.add_all(rows)
        db_session.commit()
        return rows

    def test_summary(self, client, admin, auth_for, shares):
        summary = client.get("/v1/admin/schedule-shares/summary", headers=auth_for(admin)).json()
        assert summary["total"] == 3
        assert summary["active"] == 2
        assert summary["pending"] == 2
        assert summary["by_permission"] == {"view": 1, "edit": 1, "full": 1}
        assert summary["created_last_7_days"] == 3

    def test_list_filters(self, client, admin, auth_for, shares):
        admin_headers = auth_for(admin)
        active = client.get("/v1/admin/schedule-shares", params={"status": "active"}, headers=admin_headers).json()
        assert active["total"] == 2
        assert {s["owner_username"] for s in active["shares"]} == {"alice"}

        edit = client.get("/v1/admin/schedule-shares", params={"permission": "edit"}, headers=admin_headers).json()
        assert [s["shared_with_username"] for s in edit["shares"]] == ["carol"]

    def test_timeline(self, client, admin, auth_for, shares):
        body = client.get("/v1/admin/schedule-shares/timeline", params={"days": 7}, headers=auth_for(admin)).json()
        assert body["days"] == 7
        assert len(body["timeline"]) == 8
        today = body["timeline"][-1]
        assert today["created"] == 3
        assert today["declined"] == 1
