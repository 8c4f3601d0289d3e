"""
In-process domain events.

Services emit events after a state change; subscribers (stats,
achievements, analytics) react in the same request. A failing handler is
logged and never breaks the caller.
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

# event_name -> list of handlers
_event_handlers: Dict[str, List[Callable]] = {}


def subscribe(event_name: str, handler: Callable = None):
    """
    Subscribe a handler to an event. Usable directly or as a decorator:

        subscribe(EVENT_TASK_COMPLETED, on_task_completed)

        @subscribe(EVENT_TASK_CREATED)
        def on_task_created(db, user, task):
            ...
    """
    def register(func: Callable) -> Callable:
        handlers = _event_handlers.setdefault(event_name, [])
        if func not in handlers:
            handlers.append(func)
            logger.debug(f"Subscribed {func.__name__} to event: {event_name}")
        return func

    if handler is None:
        return register
    return register(handler)


def emit(event_name: str, **kwargs) -> None:
    """Call every handler subscribed to event_name with kwargs."""
    for handler in list(_event_handlers.get(event_name, [])):
        try:
            handler(**kwargs)
        except Exception as e:
            logger.error(f"Error in event handler for {event_name}: {e}", exc_info=True)


EVENT_TASK_CREATED = "task.created"
EVENT_TASK_COMPLETED = "task.completed"
EVENT_TASK_SHARED = "task.shared"
EVENT_USER_REGISTERED = "user.registered"
EVENT_USER_LOGGED_IN = "user.logged_in"
EVENT_APPOINTMENT_BOOKED = "appointment.booked"
