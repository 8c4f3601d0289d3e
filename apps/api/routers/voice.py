"""
Voice command API

The client sends each final speech-recognition transcript; the server keeps
the dialogue state (pending confirmation, active timer task) per user.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user
from models import User
from routers.tasks import to_task_responses
from schemas import TaskResponse
from services import voice_commands

router = APIRouter(prefix="/v1/voice", tags=["voice"])


class VoiceCommandRequest(BaseModel):
    transcript: str = Field(min_length=1, max_length=2000)


class VoiceCommandResponse(BaseModel):
    action: str
    message: str
    listening: bool
    pending_action: Optional[str] = None
    tasks: List[TaskResponse] = []


class VoiceSessionResponse(BaseModel):
    is_listening: bool
    pending_action: Optional[str] = None
    active_task_id: Optional[UUID] = None
    timer_minutes: Optional[int] = None


@router.post("/command", response_model=VoiceCommandResponse)
def process_command(
    payload: VoiceCommandRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not current_user.voice_enabled:
        raise HTTPException(status_code=403, detail="Voice commands are disabled in your preferences")

    result = voice_commands.process_command(db, current_user, payload.transcript)
    db.commit()
    return VoiceCommandResponse(
        action=result.action,
        message=result.message,
        listening=result.listening,
        pending_action=result.pending_action,
        tasks=to_task_responses(db, result.tasks),
    )


@router.get("/session", response_model=VoiceSessionResponse)
def get_session(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = voice_commands.get_session(db, current_user)
    db.commit()
    return VoiceSessionResponse(
        is_listening=session.is_listening,
        pending_action=session.pending_action,
        active_task_id=session.active_task_id,
        timer_minutes=session.timer_minutes,
    )
