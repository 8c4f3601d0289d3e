"""
Recurring task date arithmetic and series top-up.
"""
from datetime import datetime, timedelta

import pytest

from models import Task
from services import recurrence


NOW = datetime(2026, 1, 10, 12, 0)


def _task(frequency, interval=1, **fields):
    return Task(
        title="Recurring",
        is_recurring=True,
        recurring_frequency=frequency,
        recurring_interval=interval,
        **fields,
    )


class TestNextDueDate:
    def test_daily(self):
        assert recurrence.next_due_date(_task("daily"), base=NOW, now=NOW) == NOW + timedelta(days=1)

    def test_daily_with_interval(self):
        assert recurrence.next_due_date(_task("daily", 3), base=NOW, now=NOW) == NOW + timedelta(days=3)

    def test_custom_behaves_like_daily(self):
        assert recurrence.next_due_date(_task("custom", 4), base=NOW, now=NOW) == NOW + timedelta(days=4)

    def test_weekly_without_days(self):
        assert recurrence.next_due_date(_task("weekly", 2), base=NOW, now=NOW) == NOW + timedelta(days=14)

    def test_weekly_picks_next_listed_weekday(self):
        # 2026-01-10 is a Saturday; days_of_week uses 0=Sunday
        task = _task("weekly", days_of_week=[1, 3])  # Monday, Wednesday
        assert recurrence.next_due_date(task, base=NOW, now=NOW) == datetime(2026, 1, 12, 12, 0)

    def test_weekly_same_weekday_moves_a_full_week(self):
        task = _task("weekly", days_of_week=[6])  # Saturday
        assert recurrence.next_due_date(task, base=NOW, now=NOW) == datetime(2026, 1, 17, 12, 0)

    def test_biweekly(self):
        assert recurrence.next_due_date(_task("biweekly"), base=NOW, now=NOW) == NOW + timedelta(days=14)

    def test_monthly_clamps_to_month_end(self):
        base = datetime(2026, 1, 31, 9, 0)
        assert recurrence.next_due_date(_task("monthly"), base=base, now=base) == datetime(2026, 2, 28, 9, 0)

    def test_monthly_pinned_day(self):
        task = _task("monthly", day_of_month=15)
        assert recurrence.next_due_date(task, base=NOW, now=NOW) == datetime(2026, 2, 15, 12, 0)

    def test_yearly_leap_day_clamps(self):
        base = datetime(2024, 2, 29, 8, 0)
        assert recurrence.next_due_date(_task("yearly"), base=base, now=base) == datetime(2025, 2, 28, 8, 0)

    def test_yearly_pinned_month_and_day(self):
        task = _task("yearly", month_of_year=2, day_of_month=20)  # 0=January
        assert recurrence.next_due_date(task, base=NOW, now=NOW) == datetime(2027, 3, 20, 12, 0)

    def test_no_frequency(self):
        assert recurrence.next_due_date(Task(title="x"), base=NOW, now=NOW) is None

    def test_unknown_frequency(self):
        assert recurrence.next_due_date(_task("hourly"), base=NOW, now=NOW) is None


@pytest.fixture
def parent(db_session, user):
    task = _task("daily", user_id=user.id, category="Health", priority="High", next_due_date=NOW)
    db_session.add(task)
    db_session.commit()
    return task


class TestSeries:
    def test_create_next_instance_copies_fields(self, db_session, parent):
        child = recurrence.create_next_instance(db_session, parent, now=NOW)
        assert child.parent_task_id == parent.id
        assert child.is_recurring is False
        assert child.category == "Health"
        assert child.priority == "High"
        assert child.next_due_date == NOW + timedelta(days=1)
        assert parent.next_due_date == child.next_due_date

    def test_successive_instances_advance(self, db_session, parent):
        first = recurrence.create_next_instance(db_session, parent, now=NOW)
        second = recurrence.create_next_instance(db_session, parent, now=NOW)
        assert second.next_due_date == first.next_due_date + timedelta(days=1)

    def test_end_date_stops_series(self, db_session, parent):
        parent.end_date = NOW + timedelta(hours=12)
        assert recurrence.create_next_instance(db_session, parent, now=NOW) is None

    def test_process_creates_when_missing_or_overdue(self, db_session, parent):
        assert recurrence.process_recurring_tasks(db_session, now=NOW) == 1
        # Latest occurrence is due tomorrow: nothing to do yet
        assert recurrence.process_recurring_tasks(db_session, now=NOW) == 0
        # Two days later the occurrence is overdue
        assert recurrence.process_recurring_tasks(db_session, now=NOW + timedelta(days=2)) == 1

    def test_archived_parent_ignored(self, db_session, parent):
        parent.archived = True
        db_session.flush()
        assert recurrence.process_recurring_tasks(db_session, now=NOW) == 0
