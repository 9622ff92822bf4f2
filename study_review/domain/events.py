"""Domain events for the review task lifecycle.

Defines event types and a lightweight async EventBus so that callers
(UI layers, notification hooks) can react to task resolution without the
state machine knowing about them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


@dataclass
class ReviewTaskCompleted:
    """Emitted after a task's status is persisted as completed."""

    task_id: str
    study_log_id: str
    user_id: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass
class ReviewTaskSkipped:
    """Emitted after a task's status is persisted as skipped."""

    task_id: str
    study_log_id: str
    user_id: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass
class ScheduleReset:
    """Emitted after a study log's future timetable was rebuilt."""

    study_log_id: str
    user_id: str
    deleted_count: int
    inserted_count: int
    timestamp: datetime = field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------

# Type alias for an async event handler
EventHandler = Callable[[Any], Coroutine[Any, Any, None]]


class EventBus:
    """Simple in-process async event bus.

    Subscribers register for a specific event type. When that event is
    published, all registered handlers are invoked. A failing handler
    logs the error but does not prevent remaining handlers from running.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Type, List[EventHandler]] = {}

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        """Register *handler* for *event_type*."""
        self._subscribers.setdefault(event_type, []).append(handler)

    async def publish(self, event: Any) -> None:
        """Dispatch *event* to all registered handlers for its type."""
        handlers = self._subscribers.get(type(event), [])
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s",
                    getattr(handler, "__name__", handler),
                    type(event).__name__,
                )


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Return the global EventBus singleton (create on first call)."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Replace the global EventBus (useful in tests)."""
    global _event_bus
    _event_bus = None
