"""
Voice command dispatcher.

Turns one spoken transcript into an action on the caller's tasks. Commands
that change or remove an existing task are staged in the user's
VoiceCommandSession and only applied after a spoken "yes". Anything that
is not a recognised command is treated as dictation and parsed into tasks.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import User, Task, VoiceCommandSession
from services import ai_service, task_service

logger = logging.getLogger(__name__)

ADD_TASK = re.compile(r"^(add|create|put down) (task|to-do|todo|shopping)(.*)$", re.IGNORECASE)
COMPLETE_TASK = re.compile(r"^(complete|finish|mark done|check) (task|to-do|todo)(.*)$", re.IGNORECASE)
DELETE_TASK = re.compile(r"^(delete|remove) (task|to-do|todo)(.*)$", re.IGNORECASE)
LIST_TASKS = re.compile(r"^(list|show|display) (tasks|to-dos|todos)$", re.IGNORECASE)
SET_TIMER = re.compile(r"^set timer (?:for|to) (\d+) (minutes|minute|mins|min)(.*)$", re.IGNORECASE)
START_TIMER = re.compile(r"^start timer$", re.IGNORECASE)
STOP_LISTENING = re.compile(r"^(stop listening|stop voice commands|stop)$", re.IGNORECASE)
DELETE_LAST = re.compile(
    r"^(delete last item|remove last item|delete last task|remove last task|undo last|delete most recent)$",
    re.IGNORECASE,
)
CONFIRM = re.compile(r"^(yes|correct|right|confirm|ok|okay|sure)$", re.IGNORECASE)
REJECT = re.compile(r"^(no|wrong|incorrect|cancel|nope)$", re.IGNORECASE)
FILLER = re.compile(r"^(called|named|titled|about|for|to)\s+", re.IGNORECASE)

MIN_DICTATION_LENGTH = 3

CATEGORY_KEYWORDS = (
    ("Work", ("work", "job", "project", "business")),
    ("Shopping", ("shop", "buy", "purchase", "store", "shopping")),
    ("Health", ("health", "exercise", "workout", "doctor")),
    ("Personal", ("personal", "home", "family", "friend")),
)

HIGH_PRIORITY = re.compile(
    r"high priority|urgent|important|critical|highest priority|top priority|\bhigh\b|priority(?:\s+is)?\s+high"
)
LOW_PRIORITY = re.compile(
    r"low priority|whenever|not urgent|lowest priority|\blow\b|priority(?:\s+is)?\s+low"
)


@dataclass
class VoiceResult:
    action: str
    message: str
    listening: bool = True
    pending_action: Optional[str] = None
    tasks: List[Task] = field(default_factory=list)


def detect_category(text: str) -> str:
    lower = text.lower()
    for category, words in CATEGORY_KEYWORDS:
        if any(w in lower for w in words):
            return category
    return "Other"


def detect_priority(text: str) -> str:
    lower = text.lower()
    if HIGH_PRIORITY.search(lower):
        return "High"
    if LOW_PRIORITY.search(lower):
        return "Low"
    return "Medium"


def extract_task_name(text: str) -> str:
    return FILLER.sub("", text.strip())


def get_session(db: Session, user: User) -> VoiceCommandSession:
    session = db.query(VoiceCommandSession).filter(VoiceCommandSession.user_id == user.id).first()
    if session is None:
        session = VoiceCommandSession(user_id=user.id, is_listening=True)
        db.add(session)
        db.flush()
    return session


def _stage(session: VoiceCommandSession, action: str, payload: dict) -> None:
    session.pending_action = action
    session.pending_payload = payload


def _clear_pending(session: VoiceCommandSession) -> None:
    session.pending_action = None
    session.pending_payload = None


def _owned_task(db: Session, user: User, task_id: Optional[str]) -> Optional[Task]:
    if not task_id:
        return None
    return db.query(Task).filter(Task.id == UUID(task_id), Task.user_id == user.id).first()


def _commit_pending(db: Session, user: User, session: VoiceCommandSession) -> VoiceResult:
    action = session.pending_action
    payload = session.pending_payload or {}
    _clear_pending(session)

    if action == "add":
        task = task_service.create_task(db, user, payload, created_via="voice")
        return VoiceResult("task_added", f"Task added: {task.title}", tasks=[task])

    task = _owned_task(db, user, payload.get("task_id"))
    if task is None:
        return VoiceResult("error", "That task no longer exists.")

    if action == "complete":
        task_service.set_completed(db, task, True)
        return VoiceResult("task_completed", f"Task completed: {task.title}", tasks=[task])
    if action == "delete":
        title = task.title
        if session.active_task_id == task.id:
            session.active_task_id = None
        task_service.delete_task(db, task)
        return VoiceResult("task_deleted", f"Task deleted: {title}")
    if action == "timer":
        minutes = int(payload["minutes"])
        task.timer = minutes
        session.active_task_id = task.id
        session.timer_minutes = minutes
        db.flush()
        return VoiceResult("timer_set", f"Timer set for {minutes} minutes for task: {task.title}", tasks=[task])

    logger.warning(f"Unknown pending voice action: {action}")
    return VoiceResult("error", "Sorry, there was an error processing your request. Please try again.")


def _pending_reply(db: Session, user: User, session: VoiceCommandSession, transcript: str) -> VoiceResult:
    if CONFIRM.match(transcript):
        return _commit_pending(db, user, session)
    if REJECT.match(transcript):
        _clear_pending(session)
        return VoiceResult("cancelled", "Task cancelled.", listening=False)
    return VoiceResult(
        "awaiting_confirmation",
        "Please say yes to confirm or no to cancel.",
        pending_action=session.pending_action,
    )


def _dictation(db: Session, user: User, transcript: str) -> VoiceResult:
    titles = [t for t in ai_service.parse_tasks(transcript) if len(t.strip()) > 2]
    created = []
    for title in titles:
        created.append(task_service.create_task(
            db, user,
            {"title": title, "category": detect_category(title), "priority": detect_priority(title)},
            created_via="voice",
        ))
    if not created:
        return VoiceResult("not_recognized", "I didn't catch a task there. Try again.")
    if len(created) == 1:
        message = f'Added: "{created[0].title}". Say "next item" for another task or "stop" to finish.'
    else:
        message = f'Added {len(created)} tasks. Say "next item" for more tasks or "stop" to finish.'
    return VoiceResult("tasks_created", message, tasks=created)


def process_command(db: Session, user: User, transcript: str) -> VoiceResult:
    """Dispatch one transcript. Order matters: stop, pending reply, commands, dictation."""
    transcript = (transcript or "").strip()
    session = get_session(db, user)
    session.is_listening = True

    if STOP_LISTENING.match(transcript):
        _clear_pending(session)
        session.is_listening = False
        db.flush()
        return VoiceResult("stopped", "Voice commands stopped.", listening=False)

    if session.pending_action:
        result = _pending_reply(db, user, session, transcript)
        db.flush()
        return result

    result = _dispatch(db, user, session, transcript)
    if not result.listening:
        session.is_listening = False
    db.flush()
    logger.info(
        "Voice command processed",
        extra={"extra_fields": {"user_id": str(user.id), "action": result.action}},
    )
    return result


def _dispatch(db: Session, user: User, session: VoiceCommandSession, transcript: str) -> VoiceResult:
    if DELETE_LAST.match(transcript):
        task = task_service.most_recent_incomplete(db, user.id)
        if task is None:
            return VoiceResult("nothing_to_delete", "No recent tasks to delete")
        title = task.title
        task_service.delete_task(db, task)
        return VoiceResult("task_deleted", f'Deleted: "{title}"')

    match = ADD_TASK.match(transcript)
    if match and extract_task_name(match.group(3)):
        title = extract_task_name(match.group(3))
        category = "Shopping" if match.group(2).lower() == "shopping" else detect_category(title)
        payload = {"title": title, "category": category, "priority": detect_priority(title)}
        _stage(session, "add", payload)
        return VoiceResult(
            "confirm", f'I\'ll add "{title}" as a {payload["priority"]} priority {category} task. Is that correct?',
            pending_action="add",
        )

    match = COMPLETE_TASK.match(transcript)
    if match and extract_task_name(match.group(3)):
        fragment = extract_task_name(match.group(3))
        task = task_service.find_task_by_title(db, user.id, fragment)
        if task is None:
            return VoiceResult("not_found", f'Sorry, I couldn\'t find an incomplete task containing "{fragment.lower()}"', listening=False)
        _stage(session, "complete", {"task_id": str(task.id)})
        return VoiceResult("confirm", f'I\'ll mark "{task.title}" as complete. Is that correct?', pending_action="complete")

    match = DELETE_TASK.match(transcript)
    if match and extract_task_name(match.group(3)):
        fragment = extract_task_name(match.group(3))
        task = task_service.find_task_by_title(db, user.id, fragment, incomplete_only=False)
        if task is None:
            return VoiceResult("not_found", f'Sorry, I couldn\'t find a task containing "{fragment.lower()}"', listening=False)
        _stage(session, "delete", {"task_id": str(task.id)})
        return VoiceResult("confirm", f'I\'ll delete the task "{task.title}". Is that correct?', pending_action="delete")

    if LIST_TASKS.match(transcript):
        tasks = task_service.incomplete_tasks(db, user.id)
        if not tasks:
            return VoiceResult("list", "You don't have any incomplete tasks.", listening=False)
        names = ", ".join(t.title for t in tasks[:3])
        tail = ", and more." if len(tasks) > 3 else "."
        return VoiceResult(
            "list", f"You have {len(tasks)} incomplete tasks. The first few are: {names}{tail}",
            listening=False, tasks=tasks[:3],
        )

    match = SET_TIMER.match(transcript)
    if match and int(match.group(1)) > 0:
        minutes = int(match.group(1))
        fragment = extract_task_name(match.group(3) or "")
        if not fragment:
            session.timer_minutes = minutes
            return VoiceResult("timer_set", f"Timer set for {minutes} minutes")
        task = task_service.find_task_by_title(db, user.id, fragment, incomplete_only=False)
        if task is None:
            return VoiceResult("not_found", f'Sorry, I couldn\'t find a task containing "{fragment.lower()}"', listening=False)
        _stage(session, "timer", {"task_id": str(task.id), "minutes": minutes})
        return VoiceResult(
            "confirm", f'I\'ll set a {minutes} minute timer for task "{task.title}". Is that correct?',
            pending_action="timer",
        )

    if START_TIMER.match(transcript):
        if session.active_task_id is None:
            return VoiceResult("no_active_timer", "No active task with timer set. Please set a timer first.", listening=False)
        return VoiceResult("timer_started", "Timer started")

    if len(transcript) > MIN_DICTATION_LENGTH:
        return _dictation(db, user, transcript)

    return VoiceResult(
        "not_recognized",
        "I didn't recognize that command. Try saying things like 'add task', 'complete task', or 'list tasks'.",
    )
