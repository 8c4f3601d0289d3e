"""
Scheduling Service

Public appointment booking against a host's weekly availability.

Slot generation for a calendar day (host timezone):

1. The day is unavailable when it is a blocked date, its weekday is
   disabled, or the weekday has no windows.
2. Each window ``{start, end}`` is walked from ``start`` in
   ``slot_duration`` steps while the cursor is before ``end``. A slot
   always lasts ``slot_duration`` minutes.
3. A slot is dropped when its start minute falls inside a blocked range
   for that date (``block_start <= slot_start < block_end``).

Bookable slots additionally exclude slots that overlap a non-cancelled
appointment, start sooner than ``min_notice_minutes`` from now, or fall
outside today .. today + ``booking_window_days``.
"""
import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Tuple, Any
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from core.clock import utcnow, to_naive_utc
from core.config import settings as app_settings
from core.events import emit, EVENT_APPOINTMENT_BOOKED
from core.exceptions import NotFoundError, BadRequestError, ConflictError
from core.security import generate_url_token
from models import SchedulingSettings, Appointment, User, Task, Notification, default_availability
from services import task_service

logger = logging.getLogger(__name__)

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{1,58}[a-z0-9])$")
ACTIVE_APPOINTMENT_STATUSES = ("scheduled", "confirmed")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug[:50] or "user"


def _unique_slug(db: Session, base: str, owner_id: Optional[UUID] = None) -> str:
    base = base if len(base) >= 3 else f"{base}-schedule"
    candidate = base
    suffix = 2
    while True:
        existing = db.query(SchedulingSettings).filter(SchedulingSettings.slug == candidate).first()
        if existing is None or existing.user_id == owner_id:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


def get_or_create_settings(db: Session, user: User) -> SchedulingSettings:
    row = db.query(SchedulingSettings).filter(SchedulingSettings.user_id == user.id).first()
    if row is None:
        row = SchedulingSettings(
            user_id=user.id,
            slug=_unique_slug(db, slugify(user.username), user.id),
            timezone=user.timezone or "America/New_York",
            availability=default_availability(),
            blocked_dates=[],
            blocked_time_slots=[],
        )
        db.add(row)
        db.flush()
        logger.info(f"Created scheduling settings for user {user.id}")
    return row


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise BadRequestError(f"Unknown timezone: {name}")
    return name


def _validate_availability(availability: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for day, config in availability.items():
        key = day.lower()
        if key not in DAY_NAMES:
            raise BadRequestError(f"Unknown day in availability: {day}")
        windows = []
        for window in config.get("slots", []):
            if to_minutes(window["start"]) >= to_minutes(window["end"]):
                raise BadRequestError(f"Availability window on {key} must start before it ends")
            windows.append({"start": window["start"], "end": window["end"]})
        cleaned[key] = {"enabled": bool(config.get("enabled")), "slots": windows}
    for day in DAY_NAMES:
        cleaned.setdefault(day, {"enabled": False, "slots": []})
    return cleaned


def update_settings(db: Session, user: User, data: Dict[str, Any]) -> SchedulingSettings:
    row = get_or_create_settings(db, user)

    if data.get("slug") is not None:
        slug = data["slug"].strip().lower()
        if not SLUG_PATTERN.match(slug):
            raise BadRequestError("Slug may only contain lowercase letters, digits and hyphens")
        taken = (
            db.query(SchedulingSettings)
            .filter(SchedulingSettings.slug == slug, SchedulingSettings.user_id != user.id)
            .first()
        )
        if taken:
            raise ConflictError("This booking link is already taken")
        row.slug = slug

    if data.get("timezone") is not None:
        row.timezone = _validate_timezone(data["timezone"])

    if data.get("availability") is not None:
        row.availability = _validate_availability(data["availability"])

    if data.get("blocked_dates") is not None:
        row.blocked_dates = sorted({d.isoformat() if isinstance(d, date) else str(d) for d in data["blocked_dates"]})

    if data.get("blocked_time_slots") is not None:
        blocked = []
        for entry in data["blocked_time_slots"]:
            day = entry["date"]
            for window in entry["slots"]:
                if to_minutes(window["start"]) >= to_minutes(window["end"]):
                    raise BadRequestError("Blocked time range must start before it ends")
            blocked.append({
                "date": day.isoformat() if isinstance(day, date) else str(day),
                "slots": [{"start": w["start"], "end": w["end"]} for w in entry["slots"]],
            })
        row.blocked_time_slots = blocked

    for field in (
        "is_enabled", "booking_window_days", "min_notice_minutes", "slot_duration",
        "meeting_title", "meeting_description", "notification_email", "show_branding", "business_name",
    ):
        if field in data and (data[field] is not None or field in ("meeting_description", "notification_email", "business_name")):
            setattr(row, field, data[field])

    db.flush()
    return row


def public_url(row: SchedulingSettings) -> str:
    return f"{app_settings.PUBLIC_BOOKING_BASE_URL.rstrip('/')}/{row.slug}"


def get_public_settings(db: Session, slug: str, viewer: Optional[User] = None) -> SchedulingSettings:
    """Enabled page for ``slug``; the owner can preview a disabled page."""
    row = db.query(SchedulingSettings).filter(SchedulingSettings.slug == slug.lower()).first()
    if row is None:
        raise NotFoundError("Booking page", slug)
    if not row.is_enabled and not (viewer and viewer.id == row.user_id):
        raise NotFoundError("Booking page", slug)
    return row


# ---------------------------------------------------------------------------
# Slot generation
# ---------------------------------------------------------------------------

def to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def _zone(row: SchedulingSettings) -> ZoneInfo:
    try:
        return ZoneInfo(row.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("America/New_York")


def blocked_ranges(row: SchedulingSettings, day: date) -> List[Tuple[int, int]]:
    iso = day.isoformat()
    ranges = []
    for entry in row.blocked_time_slots or []:
        if entry.get("date") != iso:
            continue
        for window in entry.get("slots", []):
            ranges.append((to_minutes(window["start"]), to_minutes(window["end"])))
    return ranges


def is_blocked_date(row: SchedulingSettings, day: date) -> bool:
    return day.isoformat() in set(row.blocked_dates or [])


def generate_day_slots(row: SchedulingSettings, day: date) -> List[Tuple[int, int]]:
    """Candidate slots for ``day`` as (start_minute, end_minute) from local midnight."""
    if is_blocked_date(row, day):
        return []

    config = (row.availability or {}).get(DAY_NAMES[day.weekday()])
    if not config or not config.get("enabled") or not config.get("slots"):
        return []

    step = row.slot_duration
    blocked = blocked_ranges(row, day)
    slots = []
    for window in config["slots"]:
        cursor = to_minutes(window["start"])
        window_end = to_minutes(window["end"])
        while cursor < window_end:
            if not any(start <= cursor < end for start, end in blocked):
                slots.append((cursor, cursor + step))
            cursor += step
    return sorted(set(slots))


def _local_to_utc(row: SchedulingSettings, day: date, minute: int) -> datetime:
    local = datetime.combine(day, time(0, 0), tzinfo=_zone(row)) + timedelta(minutes=minute)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def _local_today(row: SchedulingSettings, now: datetime) -> date:
    return now.replace(tzinfo=timezone.utc).astimezone(_zone(row)).date()


def _booked_intervals(db: Session, row: SchedulingSettings, start: datetime, end: datetime) -> List[Tuple[datetime, datetime]]:
    rows = (
        db.query(Appointment.start_time, Appointment.end_time)
        .filter(
            Appointment.user_id == row.user_id,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
            Appointment.start_time < end,
            Appointment.end_time > start,
        )
        .all()
    )
    return [(s, e) for s, e in rows]


def available_slots(db: Session, row: SchedulingSettings, day: date, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Bookable slots for ``day``; each carries local and UTC bounds."""
    now = now or utcnow()
    today = _local_today(row, now)
    if day < today or day > today + timedelta(days=row.booking_window_days):
        return []

    candidates = generate_day_slots(row, day)
    if not candidates:
        return []

    earliest = now + timedelta(minutes=row.min_notice_minutes)
    day_start = _local_to_utc(row, day, 0)
    booked = _booked_intervals(db, row, day_start - timedelta(days=1), day_start + timedelta(days=2))
    zone = _zone(row)

    slots = []
    for start_min, end_min in candidates:
        start_utc = _local_to_utc(row, day, start_min)
        end_utc = _local_to_utc(row, day, end_min)
        if start_utc < earliest:
            continue
        if any(b_start < end_utc and b_end > start_utc for b_start, b_end in booked):
            continue
        slots.append({
            "date": day,
            "time": format_minutes(start_min),
            "start": start_utc.replace(tzinfo=timezone.utc).astimezone(zone),
            "end": end_utc.replace(tzinfo=timezone.utc).astimezone(zone),
            "start_utc": start_utc,
            "end_utc": end_utc,
        })
    return slots


def available_dates(db: Session, row: SchedulingSettings, now: Optional[datetime] = None) -> List[date]:
    now = now or utcnow()
    today = _local_today(row, now)
    return [
        today + timedelta(days=offset)
        for offset in range(row.booking_window_days + 1)
        if available_slots(db, row, today + timedelta(days=offset), now=now)
    ]


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------

def book_appointment(
    db: Session,
    row: SchedulingSettings,
    day: date,
    time_hhmm: str,
    attendee_name: str,
    attendee_email: str,
    attendee_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Book the slot starting at ``time_hhmm`` on ``day`` (host-local).
    Creates a fixed, scheduled task on the host's list and notifies the host.
    """
    slot = next((s for s in available_slots(db, row, day, now=now) if s["time"] == time_hhmm), None)
    if slot is None:
        raise ConflictError("This time slot is no longer available")

    host = db.query(User).filter(User.id == row.user_id).first()
    if host is None or host.is_blocked:
        raise NotFoundError("Booking page", row.slug)

    notes = f"Booked by {attendee_name} <{attendee_email}>"
    if attendee_notes:
        notes = f"{notes}\n\n{attendee_notes}"
    task = task_service.create_task(db, host, {
        "title": f"{row.meeting_title} with {attendee_name}",
        "category": "Work",
        "priority": "High",
        "notes": notes,
        "scheduled_date": slot["start_utc"],
        "scheduled_end": slot["end_utc"],
        "duration_min": row.slot_duration,
        "is_fixed": True,
    }, created_via="booking")

    appointment = Appointment(
        user_id=row.user_id,
        task_id=task.id,
        attendee_name=attendee_name.strip(),
        attendee_email=attendee_email.strip().lower(),
        attendee_notes=attendee_notes,
        start_time=slot["start_utc"],
        end_time=slot["end_utc"],
        status="scheduled",
        cancellation_token=generate_url_token(),
    )
    db.add(appointment)
    db.add(Notification(
        user_id=row.user_id,
        type="booking",
        title="New appointment booked",
        message=f"{attendee_name} booked {row.meeting_title} on {day.isoformat()} at {time_hhmm}",
        task_id=task.id,
        scheduled_for=slot["start_utc"],
    ))
    db.flush()

    emit(EVENT_APPOINTMENT_BOOKED, db=db, appointment=appointment)
    logger.info(
        "Appointment booked",
        extra={"extra_fields": {"host_id": str(row.user_id), "appointment_id": str(appointment.id)}},
    )
    return appointment


def _release_linked_task(db: Session, appointment: Appointment) -> None:
    if appointment.task_id:
        task = db.query(Task).filter(Task.id == appointment.task_id).first()
        if task is not None and not task.completed:
            db.delete(task)
        appointment.task_id = None


def cancel_by_token(db: Session, token: str) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.cancellation_token == token).first()
    if appointment is None:
        raise NotFoundError("Appointment")
    if appointment.status == "cancelled":
        return appointment
    if appointment.status in ("completed", "no_show"):
        raise BadRequestError("This appointment can no longer be cancelled")

    appointment.status = "cancelled"
    appointment.cancelled_at = utcnow()
    _release_linked_task(db, appointment)
    db.add(Notification(
        user_id=appointment.user_id,
        type="booking",
        title="Appointment cancelled",
        message=f"{appointment.attendee_name} cancelled their appointment",
    ))
    db.flush()
    logger.info(f"Appointment {appointment.id} cancelled by attendee")
    return appointment


def list_appointments(
    db: Session,
    user: User,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[str] = None,
) -> List[Appointment]:
    query = db.query(Appointment).filter(Appointment.user_id == user.id)
    if start is not None:
        query = query.filter(Appointment.start_time >= to_naive_utc(start))
    if end is not None:
        query = query.filter(Appointment.start_time < to_naive_utc(end))
    if status:
        query = query.filter(Appointment.status == status)
    return query.order_by(Appointment.start_time.asc()).all()


def update_appointment_status(db: Session, user: User, appointment_id: UUID, status: str) -> Appointment:
    appointment = (
        db.query(Appointment)
        .filter(Appointment.id == appointment_id, Appointment.user_id == user.id)
        .first()
    )
    if appointment is None:
        raise NotFoundError("Appointment", str(appointment_id))

    if status == "cancelled" and appointment.status != "cancelled":
        appointment.cancelled_at = utcnow()
        _release_linked_task(db, appointment)
    appointment.status = status

    if status == "completed" and appointment.task_id:
        task = db.query(Task).filter(Task.id == appointment.task_id).first()
        if task is not None:
            task_service.set_completed(db, task, True)

    db.flush()
    return appointment
