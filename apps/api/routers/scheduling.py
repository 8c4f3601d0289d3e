"""
Scheduling API Router (host side)

Booking-page settings and the host's appointment list. The public booking
page lives in routers/public_scheduling.py.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, date
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user
from models import User, SchedulingSettings
from schemas import (
    SchedulingSettingsResponse,
    SchedulingSettingsUpdate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    SlotResponse,
)
from services import scheduling_service

router = APIRouter(prefix="/v1/scheduling", tags=["scheduling"])


def settings_response(row: SchedulingSettings) -> SchedulingSettingsResponse:
    response = SchedulingSettingsResponse.model_validate(row)
    response.public_url = scheduling_service.public_url(row)
    return response


@router.get("/settings", response_model=SchedulingSettingsResponse)
def get_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Created with defaults on first read."""
    row = scheduling_service.get_or_create_settings(db, current_user)
    db.commit()
    return settings_response(row)


@router.patch("/settings", response_model=SchedulingSettingsResponse)
def update_settings(
    payload: SchedulingSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = scheduling_service.update_settings(db, current_user, payload.model_dump(exclude_unset=True, mode="json"))
    db.commit()
    db.refresh(row)
    return settings_response(row)


@router.post("/settings/enable", response_model=SchedulingSettingsResponse)
def enable_booking_page(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = scheduling_service.update_settings(db, current_user, {"is_enabled": True})
    db.commit()
    return settings_response(row)


@router.post("/settings/disable", response_model=SchedulingSettingsResponse)
def disable_booking_page(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = scheduling_service.update_settings(db, current_user, {"is_enabled": False})
    db.commit()
    return settings_response(row)


@router.get("/slots", response_model=List[SlotResponse])
def preview_slots(
    day: date = Query(..., alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Slots as attendees would see them, including while the page is disabled."""
    row = scheduling_service.get_or_create_settings(db, current_user)
    return scheduling_service.available_slots(db, row, day)


@router.get("/appointments", response_model=List[AppointmentResponse])
def list_appointments(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return scheduling_service.list_appointments(db, current_user, start=start, end=end, status=status)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: UUID,
    payload: AppointmentStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    appointment = scheduling_service.update_appointment_status(db, current_user, appointment_id, payload.status)
    db.commit()
    db.refresh(appointment)
    return appointment
