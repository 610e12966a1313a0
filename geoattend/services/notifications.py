"""
Outbound signals: flagged-record notifications and cache invalidation.

Delivery channels live outside this service; the defaults here only log. A
failing notifier never rolls back an attendance write.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlaggedEvent:
    employee_id: int
    manager_id: Optional[int]
    record_id: int
    work_date: date
    flag_type: Optional[str]
    message: Optional[str]
    distance: Optional[float] = None


class FlagNotifier:
    def notify(self, event: FlaggedEvent) -> None:
        logger.info(
            "Attendance flagged: employee_id=%s manager_id=%s record_id=%s type=%s message=%s",
            event.employee_id, event.manager_id, event.record_id, event.flag_type, event.message,
        )


class CacheInvalidator:
    def invalidate(self, user_ids: Iterable[int]) -> None:
        ids = sorted(set(user_ids))
        if ids:
            logger.info("Attendance cache invalidation for %d user(s): %s", len(ids), ids)


default_notifier = FlagNotifier()
default_cache_invalidator = CacheInvalidator()


def deliver_flag_event(event: FlaggedEvent, notifier: Optional[FlagNotifier] = None) -> bool:
    """Hand the event to the notifier. Returns False (and logs) if delivery fails."""
    notifier = notifier or default_notifier
    try:
        notifier.notify(event)
    except Exception:
        logger.warning("Flag notification failed for record_id=%s", event.record_id, exc_info=True)
        return False
    return True


def signal_cache_invalidation(user_ids: Iterable[int], invalidator: Optional[CacheInvalidator] = None) -> None:
    invalidator = invalidator or default_cache_invalidator
    try:
        invalidator.invalidate(user_ids)
    except Exception:
        logger.warning("Cache invalidation signal failed", exc_info=True)
