"""Call session service for the dialer.

Records what happened on a call:
    - Phone number lookup-or-create, with last-called stamp
    - Call log entry with feedback, duration and notes
    - Optional follow-up on the number

Usage:
    from salestrack.engine.call_session import CallSession

    session = CallSession(db)
    record = session.record_call(
        user_id, "0700 111 222", CallOutcome(feedback=CallFeedback.CONNECTED_LEAD)
    )
"""

from datetime import datetime
from typing import Any

from salestrack.core.exceptions import NotFoundError
from salestrack.core.logging import get_logger
from salestrack.db.database import Database
from salestrack.db.models import (
    CallLog,
    CallOutcome,
    CallRecord,
    FollowUp,
    PhoneNumberTarget,
    coerce_datetime,
)
from salestrack.db.repositories import (
    CallLogRepository,
    FollowUpRepository,
    PhoneNumberRepository,
)
from salestrack.engine.workflow import atomic_workflow

logger = get_logger(__name__)


class CallSession:
    """Manages the business logic for dialing.

    Logs calls and keeps the call history per number.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._phone_numbers = PhoneNumberRepository(db)
        self._call_logs = CallLogRepository(db)
        self._follow_ups = FollowUpRepository(db)

    def record_call(self, user_id: int, number: str, outcome: CallOutcome) -> CallRecord:
        """Log a call to a raw dialed number.

        Args:
            user_id: Caller
            number: Number as typed or dialed (normalized before lookup)
            outcome: Feedback, duration, notes and optional next follow-up

        Returns:
            CallRecord with the number, the call log and any follow-up

        Raises:
            ValidationError: Unusable number, feedback or duration
            WorkflowError: If a storage step failed (nothing persisted)
        """
        call_date = coerce_datetime(outcome.date) or datetime.now()

        with atomic_workflow(self._db, "record_call", user_id=user_id):
            phone, created = self._phone_numbers.record_dial(user_id, number, call_date)
            call_log = self._call_logs.add(
                CallLog(
                    phone_number_id=phone.id,
                    date=call_date,
                    feedback=outcome.feedback,
                    duration=outcome.duration,
                    short_notes=outcome.short_notes,
                    next_follow_up_date=outcome.next_follow_up_date,
                )
            )

            follow_up = None
            if outcome.next_follow_up_date is not None:
                notes = outcome.follow_up_notes
                if notes is None:
                    notes = outcome.short_notes
                follow_up = self._follow_ups.add(
                    FollowUp(
                        target=PhoneNumberTarget(phone.id),
                        date=outcome.next_follow_up_date,
                        notes=notes,
                    )
                )

        logger.info(
            f"Logged call: {call_log.feedback.value}",
            extra={
                "context": {
                    "phone_number_id": phone.id,
                    "call_log_id": call_log.id,
                    "new_number": created,
                    "follow_up_id": follow_up.id if follow_up else None,
                }
            },
        )
        return CallRecord(
            phone_number=phone,
            call_log=call_log,
            follow_up=follow_up,
            created_phone_number=created,
        )

    def get_phone_number_history(self, phone_number_id: int) -> list[CallLog]:
        """Calls made to one number, newest first.

        Raises:
            NotFoundError: If the phone number does not exist
        """
        if self._phone_numbers.get(phone_number_id) is None:
            raise NotFoundError(f"Phone number {phone_number_id} not found")
        return self._call_logs.list_for_phone_number(phone_number_id)

    def update_call(self, call_log_id: int, **fields: Any) -> bool:
        """Correct a logged call (date, feedback, duration, notes, next follow-up)."""
        return self._call_logs.update(call_log_id, **fields)

    def delete_call(self, call_log_id: int) -> bool:
        """Remove a logged call."""
        deleted = self._call_logs.delete(call_log_id)
        if deleted:
            logger.info("Call log deleted", extra={"context": {"call_log_id": call_log_id}})
        return deleted
