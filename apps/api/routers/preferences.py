"""
User Preferences API Router

Timer/alarm sounds, locale, notification toggles, consent flags and the
archive settings used by the hourly auto-archive job.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.database import get_db
from core.auth import get_current_user
from models import User, AUTO_ARCHIVE_HOUR_OPTIONS, MIN_RETENTION_DAYS, MAX_RETENTION_DAYS

router = APIRouter(prefix="/v1/preferences", tags=["Preferences"])


class PreferencesResponse(BaseModel):
    """Current user preferences."""
    timer_sound: str
    alarm_sound: str
    timer_enabled: bool
    alarm_enabled: bool
    timezone: str
    language: str
    email_notifications: bool
    marketing_emails: bool
    achievements_enabled: bool
    data_collection_consent: bool
    voice_enabled: bool
    auto_archive_enabled: bool
    auto_archive_hours: Optional[int] = None
    delete_archived_after_days: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class UpdatePreferencesRequest(BaseModel):
    """Request to update preferences. Unknown fields are rejected."""
    timer_sound: Optional[str] = Field(default=None, min_length=1, max_length=100)
    alarm_sound: Optional[str] = Field(default=None, min_length=1, max_length=100)
    timer_enabled: Optional[bool] = None
    alarm_enabled: Optional[bool] = None
    timezone: Optional[str] = None
    language: Optional[str] = Field(default=None, min_length=2, max_length=10)
    email_notifications: Optional[bool] = None
    marketing_emails: Optional[bool] = None
    achievements_enabled: Optional[bool] = None
    data_collection_consent: Optional[bool] = None
    voice_enabled: Optional[bool] = None
    auto_archive_enabled: Optional[bool] = None
    auto_archive_hours: Optional[int] = None
    delete_archived_after_days: Optional[int] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("auto_archive_hours")
    @classmethod
    def _archive_hours(cls, value):
        if value is not None and value not in AUTO_ARCHIVE_HOUR_OPTIONS:
            raise ValueError(f"auto_archive_hours must be one of {list(AUTO_ARCHIVE_HOUR_OPTIONS)}")
        return value

    @field_validator("delete_archived_after_days")
    @classmethod
    def _retention(cls, value):
        if value is not None and not (MIN_RETENTION_DAYS <= value <= MAX_RETENTION_DAYS):
            raise ValueError(
                f"delete_archived_after_days must be null or between {MIN_RETENTION_DAYS} and {MAX_RETENTION_DAYS}"
            )
        return value

    @field_validator("timezone")
    @classmethod
    def _timezone(cls, value):
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value


# Fields that may not be cleared to null
_NON_NULLABLE = {
    "timer_sound", "alarm_sound", "timer_enabled", "alarm_enabled", "timezone", "language",
    "email_notifications", "marketing_emails", "achievements_enabled", "data_collection_consent",
    "voice_enabled", "auto_archive_enabled", "auto_archive_hours",
}


@router.get("", response_model=PreferencesResponse)
def get_preferences(
    user: User = Depends(get_current_user),
):
    """Get current user preferences."""
    return user


@router.patch("", response_model=PreferencesResponse)
def update_preferences(
    request: UpdatePreferencesRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update user preferences. Only the fields present in the body change."""
    updates = request.model_dump(exclude_unset=True)
    updates = {k: v for k, v in updates.items() if v is not None or k not in _NON_NULLABLE}
    if not updates:
        raise HTTPException(status_code=400, detail="No valid preference fields provided")

    for field, value in updates.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user
