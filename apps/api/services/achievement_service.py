"""
User statistics and achievements.

Stats are counters updated from domain events (task created/completed,
voice tasks, shares). After every update the achievement catalogue is
re-evaluated; newly completed achievements award their points, which can
in turn unlock point milestones.
"""
import logging
from datetime import date
from typing import List, Optional, Dict
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import utcnow, local_today
from core.events import subscribe, EVENT_TASK_CREATED, EVENT_TASK_COMPLETED, EVENT_TASK_SHARED, EVENT_USER_REGISTERED
from models import Achievement, UserAchievement, UserStats, User, Task, Notification

logger = logging.getLogger(__name__)


DEFAULT_ACHIEVEMENTS = [
    # Task completion
    {"key": "first_steps", "name": "First Steps", "description": "Complete your first task", "type": "task_completion", "icon": "CheckCircle", "target": 1, "points": 10, "rarity": "common"},
    {"key": "getting_started", "name": "Getting Started", "description": "Complete 5 tasks", "type": "task_completion", "icon": "Target", "target": 5, "points": 25, "rarity": "common"},
    {"key": "productive", "name": "Productive", "description": "Complete 10 tasks", "type": "task_completion", "icon": "Award", "target": 10, "points": 50, "rarity": "common"},
    {"key": "task_master", "name": "Task Master", "description": "Complete 25 tasks", "type": "task_completion", "icon": "Trophy", "target": 25, "points": 100, "rarity": "rare"},
    {"key": "achievement_hunter", "name": "Achievement Hunter", "description": "Complete 50 tasks", "type": "task_completion", "icon": "Star", "target": 50, "points": 200, "rarity": "rare"},
    {"key": "legendary", "name": "Legendary", "description": "Complete 100 tasks", "type": "task_completion", "icon": "Crown", "target": 100, "points": 500, "rarity": "legendary"},
    # Streaks
    {"key": "consistent", "name": "Consistent", "description": "Complete tasks for 3 days in a row", "type": "streak", "icon": "Flame", "target": 3, "points": 30, "rarity": "common"},
    {"key": "dedicated", "name": "Dedicated", "description": "Complete tasks for 7 days in a row", "type": "streak", "icon": "FireExtinguisher", "target": 7, "points": 75, "rarity": "rare"},
    {"key": "unstoppable", "name": "Unstoppable", "description": "Complete tasks for 30 days in a row", "type": "streak", "icon": "Zap", "target": 30, "points": 300, "rarity": "epic"},
    # Categories
    {"key": "work_warrior", "name": "Work Warrior", "description": "Complete 10 work tasks", "type": "category", "category": "Work", "icon": "Briefcase", "target": 10, "points": 50, "rarity": "common"},
    {"key": "personal_growth", "name": "Personal Growth", "description": "Complete 10 personal tasks", "type": "category", "category": "Personal", "icon": "User", "target": 10, "points": 50, "rarity": "common"},
    {"key": "health_hero", "name": "Health Hero", "description": "Complete 10 health tasks", "type": "category", "category": "Health", "icon": "Heart", "target": 10, "points": 50, "rarity": "common"},
    {"key": "shopping_spree", "name": "Shopping Spree", "description": "Complete 10 shopping tasks", "type": "category", "category": "Shopping", "icon": "ShoppingCart", "target": 10, "points": 50, "rarity": "common"},
    # Timer ("minutes" category counts timer minutes, otherwise timed tasks)
    {"key": "time_keeper", "name": "Time Keeper", "description": "Complete 5 timed tasks", "type": "timer", "icon": "Clock", "target": 5, "points": 40, "rarity": "common"},
    {"key": "time_master", "name": "Time Master", "description": "Complete 25 timed tasks", "type": "timer", "icon": "Timer", "target": 25, "points": 125, "rarity": "rare"},
    {"key": "marathon_runner", "name": "Marathon Runner", "description": "Complete 60 minutes of timed tasks", "type": "timer", "category": "minutes", "icon": "Activity", "target": 60, "points": 150, "rarity": "rare"},
    # Voice
    {"key": "voice_commander", "name": "Voice Commander", "description": "Create 10 tasks using voice", "type": "voice", "icon": "Mic", "target": 10, "points": 75, "rarity": "common"},
    {"key": "voice_master", "name": "Voice Master", "description": "Create 50 tasks using voice", "type": "voice", "icon": "MicOff", "target": 50, "points": 200, "rarity": "rare"},
    # Sharing
    {"key": "team_player", "name": "Team Player", "description": "Share 5 tasks with others", "type": "sharing", "icon": "Share", "target": 5, "points": 60, "rarity": "common"},
    {"key": "collaboration_king", "name": "Collaboration King", "description": "Share 25 tasks with others", "type": "sharing", "icon": "Users", "target": 25, "points": 150, "rarity": "rare"},
    # Milestones
    {"key": "power_user", "name": "Power User", "description": "Reach 500 total points", "type": "milestone", "icon": "Gem", "target": 500, "points": 100, "rarity": "epic"},
    {"key": "elite", "name": "Elite", "description": "Reach 1000 total points", "type": "milestone", "icon": "Diamond", "target": 1000, "points": 200, "rarity": "legendary"},
]

CATEGORY_COUNTERS = {
    "Work": "work_tasks",
    "Personal": "personal_tasks",
    "Shopping": "shopping_tasks",
    "Health": "health_tasks",
    "Business": "business_tasks",
    "Other": "other_tasks",
}


def seed_achievements(db: Session) -> int:
    """Insert catalogue entries that are missing (matched on key). Returns count inserted."""
    existing = {key for (key,) in db.query(Achievement.key).all()}
    added = 0
    for entry in DEFAULT_ACHIEVEMENTS:
        if entry["key"] in existing:
            continue
        db.add(Achievement(**entry))
        added += 1
    if added:
        db.flush()
        logger.info(f"Seeded {added} achievements")
    return added


def get_stats(db: Session, user_id: UUID) -> UserStats:
    """Stats row for the user, created on first access."""
    stats = db.query(UserStats).filter(UserStats.user_id == user_id).first()
    if stats is None:
        stats = UserStats(user_id=user_id)
        db.add(stats)
        db.flush()
    return stats


def _category_counter(category: Optional[str]) -> str:
    return CATEGORY_COUNTERS.get(category or "Other", "other_tasks")


def achievement_progress(achievement: Achievement, stats: UserStats) -> int:
    if achievement.type == "task_completion":
        return stats.completed_tasks
    if achievement.type == "streak":
        return max(stats.current_streak, stats.longest_streak)
    if achievement.type == "category":
        counter = CATEGORY_COUNTERS.get(achievement.category or "")
        return getattr(stats, counter) if counter else 0
    if achievement.type == "timer":
        if achievement.category == "minutes":
            return stats.total_timer_minutes
        return stats.timer_tasks_completed
    if achievement.type == "voice":
        return stats.voice_tasks_created
    if achievement.type == "sharing":
        return stats.tasks_shared
    if achievement.type == "milestone":
        return stats.total_points
    return 0


def check_achievements(db: Session, user_id: UUID) -> List[Achievement]:
    """
    Update progress for every unfinished achievement and award points for
    newly completed ones. Loops so that points earned in this pass can
    complete point milestones.
    """
    stats = get_stats(db, user_id)
    catalogue = db.query(Achievement).filter(Achievement.is_active.is_(True)).all()
    rows: Dict[UUID, UserAchievement] = {
        ua.achievement_id: ua
        for ua in db.query(UserAchievement).filter(UserAchievement.user_id == user_id).all()
    }

    unlocked: List[Achievement] = []
    changed = True
    while changed:
        changed = False
        for achievement in catalogue:
            row = rows.get(achievement.id)
            if row is not None and row.is_completed:
                continue
            if row is None:
                row = UserAchievement(user_id=user_id, achievement_id=achievement.id, progress=0, is_completed=False)
                db.add(row)
                rows[achievement.id] = row

            progress = achievement_progress(achievement, stats)
            row.progress = min(progress, achievement.target)
            if progress >= achievement.target:
                row.is_completed = True
                row.completed_at = utcnow()
                stats.total_points += achievement.points
                unlocked.append(achievement)
                changed = True

    db.flush()
    for achievement in unlocked:
        db.add(Notification(
            user_id=user_id,
            type="achievement",
            title=f"Achievement unlocked: {achievement.name}",
            message=f"{achievement.description} (+{achievement.points} points)",
        ))
        logger.info(
            "Achievement unlocked",
            extra={"extra_fields": {"user_id": str(user_id), "achievement": achievement.key}},
        )
    return unlocked


def advance_streak(stats: UserStats, today: date) -> None:
    """Same day keeps the streak, the next day extends it, any gap restarts at 1."""
    last = stats.last_completion_date
    if last is None:
        stats.current_streak = 1
    else:
        gap = (today - last).days
        if gap == 1:
            stats.current_streak += 1
        elif gap != 0:
            stats.current_streak = 1
    stats.longest_streak = max(stats.longest_streak, stats.current_streak)
    stats.last_completion_date = today


def record_task_completion(db: Session, user: User, task: Task) -> List[Achievement]:
    stats = get_stats(db, user.id)
    advance_streak(stats, local_today(user.timezone))

    counter = _category_counter(task.category)
    setattr(stats, counter, getattr(stats, counter) + 1)
    if task.timer:
        stats.total_timer_minutes += task.timer
        stats.timer_tasks_completed += 1
    stats.completed_tasks += 1

    if not user.achievements_enabled:
        db.flush()
        return []
    return check_achievements(db, user.id)


def record_task_created(db: Session, user_id: UUID, via_voice: bool = False) -> None:
    stats = get_stats(db, user_id)
    stats.total_tasks += 1
    if via_voice:
        stats.voice_tasks_created += 1
    db.flush()


def record_share(db: Session, owner_id: UUID, recipient_id: UUID, task_count: int) -> None:
    owner_stats = get_stats(db, owner_id)
    recipient_stats = get_stats(db, recipient_id)
    owner_stats.tasks_shared += task_count
    recipient_stats.tasks_received += task_count
    db.flush()
    check_achievements(db, owner_id)


def list_user_achievements(db: Session, user_id: UUID) -> List[Dict]:
    """Full catalogue with the user's progress merged in."""
    catalogue = (
        db.query(Achievement)
        .filter(Achievement.is_active.is_(True))
        .order_by(Achievement.type, Achievement.target)
        .all()
    )
    rows = {
        ua.achievement_id: ua
        for ua in db.query(UserAchievement).filter(UserAchievement.user_id == user_id).all()
    }
    result = []
    for achievement in catalogue:
        row = rows.get(achievement.id)
        result.append({
            "id": str(achievement.id),
            "key": achievement.key,
            "name": achievement.name,
            "description": achievement.description,
            "type": achievement.type,
            "icon": achievement.icon,
            "target": achievement.target,
            "points": achievement.points,
            "rarity": achievement.rarity,
            "progress": row.progress if row else 0,
            "is_completed": bool(row and row.is_completed),
            "completed_at": row.completed_at if row else None,
        })
    return result


# ---------------------------------------------------------------------------
# Event subscribers
# ---------------------------------------------------------------------------

@subscribe(EVENT_USER_REGISTERED)
def on_user_registered(db: Session, user: User, **_):
    get_stats(db, user.id)


@subscribe(EVENT_TASK_CREATED)
def on_task_created(db: Session, task: Task, **_):
    record_task_created(db, task.user_id, via_voice=task.created_via == "voice")


@subscribe(EVENT_TASK_COMPLETED)
def on_task_completed(db: Session, task: Task, **_):
    owner = db.query(User).filter(User.id == task.user_id).first()
    if owner is not None:
        record_task_completion(db, owner, task)


@subscribe(EVENT_TASK_SHARED)
def on_task_shared(db: Session, owner_id: UUID, recipient_id: UUID, task_count: int, **_):
    record_share(db, owner_id, recipient_id, task_count)
