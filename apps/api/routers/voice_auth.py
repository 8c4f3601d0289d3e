"""
Retired voice-biometric authentication.

Both the legacy /api/auth/voice/* paths and /v1/auth/voice/* answer 410 Gone
for every method so old clients get a clear message instead of a 404.
"""
from fastapi import APIRouter

from core.exceptions import GoneError

DISCONTINUED_MESSAGE = (
    "Voice authentication has been discontinued. Please sign in with your username or email and password."
)

METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

router = APIRouter(tags=["voice-auth"])


def _gone(path: str = ""):
    raise GoneError(DISCONTINUED_MESSAGE)


router.add_api_route("/api/auth/voice", _gone, methods=METHODS, include_in_schema=False)
router.add_api_route("/api/auth/voice/{path:path}", _gone, methods=METHODS, include_in_schema=False)
router.add_api_route("/v1/auth/voice", _gone, methods=METHODS, include_in_schema=False)
router.add_api_route("/v1/auth/voice/{path:path}", _gone, methods=METHODS, include_in_schema=False)
