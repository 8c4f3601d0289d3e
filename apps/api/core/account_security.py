"""
Login lockout.

Failed logins are tracked per account (the username) when the login
identifier resolves to a user, otherwise per normalized identifier. Five
failures inside a 30 minute window lock the key for 15 minutes after the
last failure. A successful login clears the history.
"""
from datetime import timedelta
from typing import Optional, Tuple
from collections import defaultdict
import threading

from core.clock import utcnow

# In-memory store; per process. {identifier: [(timestamp, success), ...]}
_login_attempts: dict = defaultdict(list)
_lock = threading.Lock()

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION_MINUTES = 15
ATTEMPT_WINDOW_MINUTES = 30


def _key(identifier: str) -> str:
    return (identifier or "").strip().lower()


def _recent_failures(key: str) -> list:
    """Drop attempts outside the window and return remaining failure timestamps. Caller holds _lock."""
    cutoff = utcnow() - timedelta(minutes=ATTEMPT_WINDOW_MINUTES)
    attempts = [(ts, ok) for ts, ok in _login_attempts.get(key, []) if ts > cutoff]
    if attempts:
        _login_attempts[key] = attempts
    else:
        _login_attempts.pop(key, None)
    return [ts for ts, ok in attempts if not ok]


def record_login_attempt(identifier: str, success: bool) -> None:
    key = _key(identifier)
    with _lock:
        if success:
            _login_attempts[key] = [(utcnow(), True)]
            return
        _recent_failures(key)
        _login_attempts[key].append((utcnow(), False))


def is_account_locked(identifier: str) -> Tuple[bool, Optional[int]]:
    """
    Returns:
        (is_locked, seconds_until_unlock or None)
    """
    key = _key(identifier)
    with _lock:
        failures = _recent_failures(key)
        if len(failures) < MAX_FAILED_ATTEMPTS:
            return False, None

        lockout_end = max(failures) + timedelta(minutes=LOCKOUT_DURATION_MINUTES)
        now = utcnow()
        if now < lockout_end:
            return True, int((lockout_end - now).total_seconds())
        return False, None


def get_remaining_attempts(identifier: str) -> int:
    key = _key(identifier)
    with _lock:
        return max(0, MAX_FAILED_ATTEMPTS - len(_recent_failures(key)))


def clear_lockout(identifier: str) -> None:
    """Admin unlock."""
    with _lock:
        _login_attempts.pop(_key(identifier), None)


def reset_all() -> None:
    with _lock:
        _login_attempts.clear()
