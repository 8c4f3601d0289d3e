"""
Task CRUD, completion side effects, ordering and checklist items.
"""
from uuid import UUID, uuid4

import pytest

from models import Task, UserStats


def _create(client, headers, **fields):
    payload = {"title": "Write report"}
    payload.update(fields)
    response = client.post("/v1/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestTaskCrud:
    def test_create_defaults(self, client, headers):
        task = _create(client, headers)
        assert task["category"] == "Other"
        assert task["priority"] == "Medium"
        assert task["completed"] is False
        assert task["created_via"] == "manual"
        assert task["archived"] is False

    def test_blank_title_rejected(self, client, headers):
        response = client.post("/v1/tasks", json={"title": ""}, headers=headers)
        assert response.status_code == 422

    def test_list_only_own_tasks(self, client, headers, make_user, auth_for):
        _create(client, headers, title="Mine")
        other = make_user("bob")
        _create(client, auth_for(other), title="Not mine")

        titles = [t["title"] for t in client.get("/v1/tasks", headers=headers).json()]
        assert titles == ["Mine"]

    def test_get_other_users_task_is_404(self, client, headers, make_user, auth_for):
        other = make_user("bob")
        task = _create(client, auth_for(other))
        assert client.get(f"/v1/tasks/{task['id']}", headers=headers).status_code == 404

    def test_update(self, client, headers):
        task = _create(client, headers)
        response = client.patch(
            f"/v1/tasks/{task['id']}",
            json={"title": "Write final report", "priority": "High", "notes": "due Friday"},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Write final report"
        assert body["priority"] == "High"
        assert body["notes"] == "due Friday"

    @pytest.mark.parametrize("field", [
        "display_order", "is_fixed", "is_recurring", "buffer_before", "buffer_after", "recurring_interval",
    ])
    def test_null_for_required_field_keeps_value(self, client, headers, field):
        task = _create(client, headers)
        response = client.patch(f"/v1/tasks/{task['id']}", json={field: None}, headers=headers)
        assert response.status_code == 200, response.text
        assert response.json()[field] == task[field]

    def test_delete(self, client, headers):
        task = _create(client, headers)
        assert client.delete(f"/v1/tasks/{task['id']}", headers=headers).status_code == 204
        assert client.get(f"/v1/tasks/{task['id']}", headers=headers).status_code == 404

    def test_missing_task_is_404(self, client, headers):
        assert client.delete(f"/v1/tasks/{uuid4()}", headers=headers).status_code == 404

    def test_requires_auth(self, client):
        assert client.get("/v1/tasks").status_code == 401


class TestCompletion:
    def test_toggle_sets_and_clears_completed_at(self, client, headers):
        task = _create(client, headers)
        done = client.post(f"/v1/tasks/{task['id']}/toggle", headers=headers).json()
        assert done["completed"] is True
        assert done["completed_at"] is not None

        undone = client.post(f"/v1/tasks/{task['id']}/toggle", headers=headers).json()
        assert undone["completed"] is False
        assert undone["completed_at"] is None

    def test_completion_updates_stats(self, client, headers, user, db_session, seeded):
        task = _create(client, headers, category="Work", timer=25)
        client.post(f"/v1/tasks/{task['id']}/toggle", headers=headers)

        db_session.expire_all()
        stats = db_session.query(UserStats).filter(UserStats.user_id == user.id).one()
        assert stats.total_tasks == 1
        assert stats.completed_tasks == 1
        assert stats.work_tasks == 1
        assert stats.total_timer_minutes == 25
        assert stats.timer_tasks_completed == 1
        assert stats.current_streak == 1

    def test_incomplete_listed_first(self, client, headers):
        first = _create(client, headers, title="First")
        _create(client, headers, title="Second")
        client.post(f"/v1/tasks/{first['id']}/toggle", headers=headers)

        tasks = client.get("/v1/tasks", headers=headers).json()
        assert [t["title"] for t in tasks] == ["Second", "First"]

    def test_high_priority_excludes_completed(self, client, headers):
        urgent = _create(client, headers, title="Urgent", priority="High")
        _create(client, headers, title="Also urgent", priority="High")
        _create(client, headers, title="Later", priority="Low")
        client.post(f"/v1/tasks/{urgent['id']}/toggle", headers=headers)

        titles = [t["title"] for t in client.get("/v1/tasks/high-priority", headers=headers).json()]
        assert titles == ["Also urgent"]


class TestOrderingAndChecklist:
    def test_reorder(self, client, headers):
        a = _create(client, headers, title="A")
        b = _create(client, headers, title="B")
        c = _create(client, headers, title="C")

        response = client.post("/v1/tasks/reorder", json={"task_ids": [c["id"], a["id"], b["id"]]}, headers=headers)
        assert response.status_code == 200
        assert response.json()["updated"] == 3

        titles = [t["title"] for t in client.get("/v1/tasks", headers=headers).json()]
        assert titles == ["C", "A", "B"]

    def test_reorder_rejects_foreign_ids(self, client, headers):
        a = _create(client, headers, title="A")
        response = client.post("/v1/tasks/reorder", json={"task_ids": [a["id"], str(uuid4())]}, headers=headers)
        assert response.status_code == 404

    def test_checklist_items_get_ids_and_toggle(self, client, headers):
        task = _create(client, headers, checklist_items=[{"text": "Eggs"}, {"text": "Milk"}])
        items = task["checklist_items"]
        assert len(items) == 2
        assert all(item["id"] for item in items)

        item_id = items[1]["id"]
        toggled = client.post(f"/v1/tasks/{task['id']}/checklist/{item_id}/toggle", headers=headers).json()
        assert [i["completed"] for i in toggled["checklist_items"]] == [False, True]

    def test_unknown_checklist_item(self, client, headers):
        task = _create(client, headers, checklist_items=[{"text": "Eggs"}])
        response = client.post(f"/v1/tasks/{task['id']}/checklist/nope/toggle", headers=headers)
        assert response.status_code == 404


class TestRecurringViaApi:
    def test_recurring_task_gets_first_occurrence(self, client, headers, db_session):
        parent = _create(client, headers, title="Water plants", is_recurring=True, recurring_frequency="daily")

        db_session.expire_all()
        children = db_session.query(Task).filter(Task.parent_task_id == UUID(parent["id"])).all()
        assert len(children) == 1
        assert children[0].created_via == "recurring"
        assert children[0].next_due_date is not None

    def test_recurring_requires_frequency(self, client, headers):
        response = client.post("/v1/tasks", json={"title": "Loop", "is_recurring": True}, headers=headers)
        assert response.status_code == 400

    def test_completing_occurrence_creates_next(self, client, headers, db_session):
        parent = _create(client, headers, title="Standup", is_recurring=True, recurring_frequency="daily")
        db_session.expire_all()
        first = db_session.query(Task).filter(Task.parent_task_id == UUID(parent["id"])).one()

        client.post(f"/v1/tasks/{first.id}/toggle", headers=headers)

        db_session.expire_all()
        children = (
            db_session.query(Task)
            .filter(Task.parent_task_id == UUID(parent["id"]))
            .order_by(Task.next_due_date)
            .all()
        )
        assert len(children) == 2
        assert (children[1].next_due_date - children[0].next_due_date).days == 1

    def test_turning_on_recurrence_starts_series(self, client, headers, db_session):
        task = _create(client, headers, title="Stretch")
        response = client.patch(
            f"/v1/tasks/{task['id']}",
            json={"is_recurring": True, "recurring_frequency": "daily"},
            headers=headers,
        )
        assert response.status_code == 200

        db_session.expire_all()
        children = db_session.query(Task).filter(Task.parent_task_id == UUID(task["id"])).all()
        assert len(children) == 1
        assert children[0].created_via == "recurring"

        # A further edit does not add another occurrence
        client.patch(f"/v1/tasks/{task['id']}", json={"notes": "morning"}, headers=headers)
        db_session.expire_all()
        assert db_session.query(Task).filter(Task.parent_task_id == UUID(task["id"])).count() == 1
