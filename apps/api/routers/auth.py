"""
Authentication API endpoints.

Provides:
- User registration
- Login by username or email (JWT token generation)
- Token refresh
- Account lockout protection
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
import logging
import re

from core.database import get_db
from core.clock import utcnow
from core.security import verify_password, get_password_hash, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from core.auth import get_current_user
from core.account_security import record_login_attempt, is_account_locked, get_remaining_attempts
from core.events import emit, EVENT_USER_REGISTERED, EVENT_USER_LOGGED_IN
from models import User
from schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 8
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")


class UserRegister(BaseModel):
    """Schema for user registration."""
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str


class UserLogin(BaseModel):
    """Username or email plus password."""
    identifier: str = Field(min_length=1)
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = ACCESS_TOKEN_EXPIRE_MINUTES * 60  # seconds
    user: Optional[UserResponse] = None

    model_config = ConfigDict(from_attributes=True)


def _token_for(user: User) -> dict:
    access_token = create_access_token(data={"sub": str(user.id), "username": user.username, "role": user.role})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "user": user,
    }


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db)
):
    """
    Register a new account and issue a token so the client can continue
    without a second login call.
    """
    username = user_data.username.strip()
    email = user_data.email.lower()

    if not USERNAME_PATTERN.match(username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username may only contain letters, digits, '.', '_' and '-'",
        )
    if len(user_data.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if db.query(User).filter(func.lower(User.username) == username.lower()).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(user_data.password),
        role="user",
    )
    db.add(user)
    db.flush()
    emit(EVENT_USER_REGISTERED, db=db, user=user)
    db.commit()
    db.refresh(user)

    logger.info("User registered", extra={"extra_fields": {"user_id": str(user.id)}})
    return _token_for(user)


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Authenticate by username or email and return a JWT.

    Five failed attempts within 30 minutes lock the account for 15 minutes,
    whichever identifier was used. Unknown identifiers are tracked as typed.
    """
    identifier = credentials.identifier.strip()

    user = (
        db.query(User)
        .filter(or_(func.lower(User.username) == identifier.lower(), func.lower(User.email) == identifier.lower()))
        .first()
    )
    lockout_key = user.username if user else identifier

    locked, seconds_remaining = is_account_locked(lockout_key)
    if locked:
        minutes_remaining = (seconds_remaining or 0) // 60 + 1
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Account temporarily locked. Try again in {minutes_remaining} minutes.",
            headers={"Retry-After": str(seconds_remaining)},
        )

    if not user or not verify_password(credentials.password, user.password_hash):
        # Unknown identifiers count too, so attempts cannot enumerate accounts
        record_login_attempt(lockout_key, success=False)
        remaining = get_remaining_attempts(lockout_key)

        detail = "Invalid username or password"
        if 0 < remaining <= 2:
            detail += f" ({remaining} attempts remaining)"
        elif remaining == 0:
            detail = "Account temporarily locked due to too many failed attempts"

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked")

    record_login_attempt(lockout_key, success=True)
    user.last_login_at = utcnow()
    emit(EVENT_USER_LOGGED_IN, db=db, user=user)
    db.commit()
    db.refresh(user)

    return _token_for(user)


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current authenticated user information."""
    return current_user


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    current_user: User = Depends(get_current_user)
):
    """Issue a new token with a fresh expiry."""
    return _token_for(current_user)
