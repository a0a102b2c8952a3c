"""Follow-up lifecycle.

create -> update (date/notes) -> complete -> delete. The target entity is
fixed at creation. Completion is one-way and idempotent.

Reminders are not touched here: every mutation marks the owning user's
follow-ups as changed, and FollowUpNotifier reconciles after commit.
"""

from datetime import date, datetime
from typing import Optional, Union

from salestrack.core.logging import get_logger
from salestrack.db.database import Database
from salestrack.db.models import FollowUp, FollowUpTarget, FollowUpWithDetails
from salestrack.db.repositories import FollowUpRepository

logger = get_logger(__name__)


class FollowUpService:
    """Create, reschedule, complete and delete follow-ups."""

    def __init__(self, db: Database) -> None:
        self._follow_ups = FollowUpRepository(db)

    def create(
        self,
        target: FollowUpTarget,
        when: Union[datetime, date, str],
        notes: str = "",
    ) -> FollowUp:
        """Schedule a follow-up on a client, prospect, or phone number.

        Raises:
            NotFoundError: If the target does not exist
            ValidationError: If no date is given
        """
        return self._follow_ups.add(FollowUp(target=target, date=when, notes=notes))

    def update(
        self,
        follow_up_id: int,
        when: Union[datetime, date, str, None] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """Reschedule and/or re-annotate. Passing neither is a no-op."""
        fields = {}
        if when is not None:
            fields["date"] = when
        if notes is not None:
            fields["notes"] = notes
        return self._follow_ups.update(follow_up_id, **fields)

    def complete(self, follow_up_id: int) -> bool:
        """Mark done. Completing twice is the same as completing once."""
        completed = self._follow_ups.complete(follow_up_id)
        if not completed:
            logger.warning(
                "Cannot complete missing follow-up",
                extra={"context": {"follow_up_id": follow_up_id}},
            )
        return completed

    def delete(self, follow_up_id: int) -> bool:
        return self._follow_ups.delete(follow_up_id)

    def get(self, follow_up_id: int) -> Optional[FollowUp]:
        return self._follow_ups.get(follow_up_id)

    def list_with_details(self, user_id: int) -> list[FollowUpWithDetails]:
        """Every follow-up of user_id with its target's name and phone."""
        return self._follow_ups.list_with_details(user_id)

    def pending_with_details(self, user_id: int) -> list[FollowUpWithDetails]:
        """Open follow-ups of user_id, soonest first."""
        return self._follow_ups.list_with_details(user_id, pending_only=True)
