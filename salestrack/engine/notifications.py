"""Follow-up reminder reconciliation.

The storage core knows nothing about device reminders. Instead,
FollowUpNotifier subscribes to the database's follow-up commit events
and, once per committed transaction that touched a user's follow-ups,
loads that user's pending follow-ups and hands the complete list to
every registered NotificationBridge. Because it reads after commit, a
bridge never sees a deleted follow-up and never misses a new one.

Delivery is best-effort: a failing bridge is logged and skipped.

Usage:
    from salestrack.engine.notifications import FollowUpNotifier, LoggingNotificationBridge

    notifier = FollowUpNotifier(db, [LoggingNotificationBridge()])
    notifier.start()
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Iterable, Optional

from salestrack.core.logging import get_logger
from salestrack.db.database import Database
from salestrack.db.models import FollowUpWithDetails
from salestrack.db.repositories import FOLLOW_UPS_TOPIC, FollowUpRepository

logger = get_logger(__name__)


def schedulable_reminders(
    pending: Iterable[FollowUpWithDetails], now: Optional[datetime] = None
) -> list[FollowUpWithDetails]:
    """Pending follow-ups whose date is still in the future."""
    now = now or datetime.now()
    return [f for f in pending if not f.is_completed and f.date is not None and f.date > now]


class NotificationBridge(ABC):
    """Receiver of the full pending follow-up list after each change.

    Subclasses must implement:
        - reconcile(): Replace all scheduled reminders with the given list
    """

    @abstractmethod
    def reconcile(self, pending: list[FollowUpWithDetails]) -> None:
        """Bring reminders in line with pending.

        Args:
            pending: Every open follow-up of one user, with resolved details
        """
        pass


class LoggingNotificationBridge(NotificationBridge):
    """Default bridge: logs the reminder plan instead of scheduling alarms.

    Attributes:
        scheduled: Reminders planned by the most recent reconcile
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self.scheduled: list[FollowUpWithDetails] = []

    def reconcile(self, pending: list[FollowUpWithDetails]) -> None:
        self.scheduled = schedulable_reminders(pending, self._clock())
        logger.info(
            "Reminders reconciled",
            extra={"context": {"pending": len(pending), "scheduled": len(self.scheduled)}},
        )
        for follow_up in self.scheduled:
            logger.debug(
                f"Reminder: follow up with {follow_up.entity_name} at {follow_up.date}",
                extra={"context": {"follow_up_id": follow_up.id}},
            )


class FollowUpNotifier:
    """Pushes pending follow-ups to bridges after every committed change."""

    def __init__(self, db: Database, bridges: Iterable[NotificationBridge] = ()) -> None:
        self._db = db
        self._follow_ups = FollowUpRepository(db)
        self._bridges: list[NotificationBridge] = list(bridges)
        self._started = False

    @property
    def bridges(self) -> list[NotificationBridge]:
        return list(self._bridges)

    def add_bridge(self, bridge: NotificationBridge) -> None:
        self._bridges.append(bridge)

    def start(self) -> None:
        """Subscribe to follow-up commit events."""
        if not self._started:
            self._db.subscribe(FOLLOW_UPS_TOPIC, self._on_commit)
            self._started = True

    def stop(self) -> None:
        if self._started:
            self._db.unsubscribe(FOLLOW_UPS_TOPIC, self._on_commit)
            self._started = False

    def _on_commit(self, user_id: int) -> None:
        self.reconcile_user(user_id)

    def reconcile_user(self, user_id: int) -> list[FollowUpWithDetails]:
        """Hand user_id's current pending follow-ups to every bridge.

        Returns:
            The pending list that was delivered
        """
        pending = self._follow_ups.list_with_details(user_id, pending_only=True)
        for bridge in self._bridges:
            try:
                bridge.reconcile(list(pending))
            except Exception as e:
                logger.warning(
                    f"Notification bridge {type(bridge).__name__} failed: {e}",
                    exc_info=True,
                    extra={"context": {"user_id": user_id}},
                )
        return pending
