"""
Public booking page.

Unauthenticated: attendees read a host's page, list open slots, book one and
cancel with the token from their confirmation. A signed-in host may preview
their own page while it is disabled.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, date
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user_optional
from models import User
from schemas import SlotResponse, BookingRequest
from services import scheduling_service

router = APIRouter(prefix="/v1/public/schedule", tags=["public-scheduling"])


class PublicPageResponse(BaseModel):
    slug: str
    meeting_title: str
    meeting_description: Optional[str] = None
    slot_duration: int
    booking_window_days: int
    timezone: str
    business_name: Optional[str] = None
    show_branding: bool
    host_username: str
    is_enabled: bool


class BookingConfirmation(BaseModel):
    id: UUID
    start_time: datetime
    end_time: datetime
    timezone: str
    status: str
    meeting_title: str
    cancellation_token: str


class CancellationResponse(BaseModel):
    id: UUID
    status: str
    cancelled_at: Optional[datetime] = None


@router.post("/cancel/{token}", response_model=CancellationResponse)
def cancel_appointment(
    token: str,
    db: Session = Depends(get_db),
):
    appointment = scheduling_service.cancel_by_token(db, token)
    db.commit()
    return CancellationResponse(id=appointment.id, status=appointment.status, cancelled_at=appointment.cancelled_at)


@router.get("/{slug}", response_model=PublicPageResponse)
def get_public_page(
    slug: str,
    viewer: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    row = scheduling_service.get_public_settings(db, slug, viewer)
    host = db.query(User).filter(User.id == row.user_id).first()
    return PublicPageResponse(
        slug=row.slug,
        meeting_title=row.meeting_title,
        meeting_description=row.meeting_description,
        slot_duration=row.slot_duration,
        booking_window_days=row.booking_window_days,
        timezone=row.timezone,
        business_name=row.business_name,
        show_branding=row.show_branding,
        host_username=host.username if host else "",
        is_enabled=row.is_enabled,
    )


@router.get("/{slug}/dates", response_model=List[date])
def get_available_dates(
    slug: str,
    viewer: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    """Dates inside the booking window that still have at least one open slot."""
    row = scheduling_service.get_public_settings(db, slug, viewer)
    return scheduling_service.available_dates(db, row)


@router.get("/{slug}/slots", response_model=List[SlotResponse])
def get_slots(
    slug: str,
    day: date = Query(..., alias="date"),
    viewer: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    row = scheduling_service.get_public_settings(db, slug, viewer)
    return scheduling_service.available_slots(db, row, day)


@router.post("/{slug}/book", response_model=BookingConfirmation, status_code=status.HTTP_201_CREATED)
def book(
    slug: str,
    payload: BookingRequest,
    db: Session = Depends(get_db),
):
    """409 when the requested time is not one of the currently open slots."""
    row = scheduling_service.get_public_settings(db, slug)
    appointment = scheduling_service.book_appointment(
        db,
        row,
        payload.date,
        payload.time,
        payload.attendee_name,
        payload.attendee_email,
        payload.attendee_notes,
    )
    db.commit()
    db.refresh(appointment)
    return BookingConfirmation(
        id=appointment.id,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        timezone=row.timezone,
        status=appointment.status,
        meeting_title=row.meeting_title,
        cancellation_token=appointment.cancellation_token,
    )
