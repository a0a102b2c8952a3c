"""SalesTracker - the single entry point the presentation layer talks to.

Owns one Database for its whole lifetime and wires the credential store,
repositories, workflows, analytics and reminder notifier on top of it.

Usage:
    from salestrack.engine.tracker import SalesTracker

    with SalesTracker.open("sales.db") as tracker:
        user = tracker.signin("amina", "s3cret")
        tracker.record_call(user.id, "0700111222", CallOutcome(feedback=CallFeedback.BUSY))

AsyncSalesTracker exposes the same operations as futures executed one at
a time on a single worker thread.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Union

from salestrack.core.config import Config, get_config
from salestrack.core.logging import get_logger
from salestrack.core.tasks import TaskManager, TaskResult
from salestrack.db.database import Database
from salestrack.db.identity import CredentialStore
from salestrack.db.models import (
    AnalyticsData,
    CallLog,
    CallLogWithNumber,
    CallOutcome,
    CallRecord,
    Client,
    ConversionResult,
    DailyCallStats,
    FollowUp,
    FollowUpTarget,
    FollowUpWithDetails,
    PhoneNumber,
    Prospect,
    ProspectInput,
    ProspectStatus,
    Sale,
    SaleInput,
    SaleWithClient,
    User,
)
from salestrack.db.repositories import (
    CallLogRepository,
    ClientRepository,
    PhoneNumberRepository,
    ProspectRepository,
    SaleRepository,
)
from salestrack.engine import analytics
from salestrack.engine.call_session import CallSession
from salestrack.engine.conversion import ConversionService
from salestrack.engine.follow_ups import FollowUpService
from salestrack.engine.notifications import (
    FollowUpNotifier,
    LoggingNotificationBridge,
    NotificationBridge,
)

logger = get_logger(__name__)

DateLike = Union[datetime, date, str, None]


class SalesTracker:
    """Facade over storage, workflows and analytics for one user session.

    Attributes:
        db: The owned database
        notifier: Reminder notifier subscribed to follow-up commits
    """

    def __init__(
        self,
        db: Database,
        bridges: Iterable[NotificationBridge] = (),
        config: Optional[Config] = None,
    ) -> None:
        config = config or get_config()
        self.db = db
        self._credentials = CredentialStore(db, config.min_password_length)
        self._clients = ClientRepository(db)
        self._prospects = ProspectRepository(db)
        self._sales = SaleRepository(db)
        self._phone_numbers = PhoneNumberRepository(db)
        self._call_logs = CallLogRepository(db)
        self._conversions = ConversionService(db, config.default_industry)
        self._calls = CallSession(db)
        self._follow_ups = FollowUpService(db)

        bridges = list(bridges) or [LoggingNotificationBridge()]
        self.notifier = FollowUpNotifier(db, bridges)

    @classmethod
    def open(
        cls,
        db_path: Optional[str] = None,
        bridges: Iterable[NotificationBridge] = (),
        config: Optional[Config] = None,
    ) -> "SalesTracker":
        """Open the database at db_path (config default) and start the tracker."""
        tracker = cls(Database(db_path), bridges, config)
        tracker.start()
        return tracker

    def start(self) -> None:
        """Create the schema if needed and begin reminder reconciliation."""
        self.db.initialize()
        self.notifier.start()
        logger.info("Sales tracker started", extra={"context": {"path": self.db.db_path}})

    def close(self) -> None:
        self.notifier.stop()
        self.db.close()
        logger.info("Sales tracker closed")

    def __enter__(self) -> "SalesTracker":
        if not self.db.is_initialized:
            self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def signup(self, username: str, password: str, name: str) -> User:
        return self._credentials.signup(username, password, name)

    def signin(self, username: str, password: str) -> User:
        return self._credentials.signin(username, password)

    def update_password(self, user_id: int, new_password_hash: str) -> bool:
        return self._credentials.update_password(user_id, new_password_hash)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._credentials.get_user_by_username(username)

    # =========================================================================
    # CLIENTS
    # =========================================================================

    def add_client(
        self,
        user_id: int,
        name: str,
        phone: str = "",
        email: str = "",
        company: str = "",
        industry: str = "",
    ) -> Client:
        return self._clients.add(
            Client(
                user_id=user_id,
                name=name,
                phone=phone,
                email=email,
                company=company,
                industry=industry,
            )
        )

    def get_client(self, client_id: int) -> Optional[Client]:
        return self._clients.get(client_id)

    def get_clients(self, user_id: int) -> list[Client]:
        return self._clients.list_for_user(user_id)

    def update_client(self, client_id: int, **fields: Any) -> bool:
        return self._clients.update(client_id, **fields)

    def delete_client(self, client_id: int) -> bool:
        return self._clients.delete(client_id)

    # =========================================================================
    # PROSPECTS
    # =========================================================================

    def add_prospect(
        self,
        user_id: int,
        name: str,
        phone: str = "",
        email: str = "",
        company: str = "",
        status: Union[ProspectStatus, str] = ProspectStatus.NEW,
        follow_up_date: DateLike = None,
    ) -> Prospect:
        return self._prospects.add(
            Prospect(
                user_id=user_id,
                name=name,
                phone=phone,
                email=email,
                company=company,
                status=status,
                follow_up_date=follow_up_date,
            )
        )

    def get_prospect(self, prospect_id: int) -> Optional[Prospect]:
        return self._prospects.get(prospect_id)

    def get_prospects(self, user_id: int) -> list[Prospect]:
        return self._prospects.list_for_user(user_id)

    def update_prospect(self, prospect_id: int, **fields: Any) -> bool:
        return self._prospects.update(prospect_id, **fields)

    def update_prospect_status(
        self, prospect_id: int, status: Union[ProspectStatus, str]
    ) -> bool:
        return self._prospects.update_status(prospect_id, status)

    def delete_prospect(self, prospect_id: int) -> bool:
        return self._prospects.delete(prospect_id)

    def convert_prospect_to_client(
        self, prospect_id: int, sale_input: SaleInput
    ) -> ConversionResult:
        """Convert a prospect into a client and record the closing sale."""
        return self._conversions.convert_prospect_to_client_and_record_sale(
            prospect_id, sale_input
        )

    # =========================================================================
    # SALES
    # =========================================================================

    def add_sale(
        self,
        client_id: int,
        amount: Union[Decimal, int, float, str],
        product_or_service: str,
        sale_date: DateLike = None,
    ) -> Sale:
        return self._sales.add(
            Sale(
                client_id=client_id,
                date=sale_date,
                amount=amount,
                product_or_service=product_or_service,
            )
        )

    def get_sales(
        self, user_id: int, start: DateLike = None, end: DateLike = None
    ) -> list[SaleWithClient]:
        return self._sales.list_for_user(user_id, start, end)

    def get_sales_by_client(self, client_id: int) -> list[Sale]:
        return self._sales.list_for_client(client_id)

    def update_sale(self, sale_id: int, **fields: Any) -> bool:
        return self._sales.update(sale_id, **fields)

    def delete_sale(self, sale_id: int) -> bool:
        return self._sales.delete(sale_id)

    # =========================================================================
    # CALLS AND PHONE NUMBERS
    # =========================================================================

    def record_call(self, user_id: int, number: str, outcome: CallOutcome) -> CallRecord:
        return self._calls.record_call(user_id, number, outcome)

    def get_phone_numbers(self, user_id: int) -> list[PhoneNumber]:
        return self._phone_numbers.list_for_user(user_id)

    def get_phone_number_history(self, phone_number_id: int) -> list[CallLog]:
        return self._calls.get_phone_number_history(phone_number_id)

    def get_call_logs(self, user_id: int) -> list[CallLogWithNumber]:
        return self._call_logs.list_for_user(user_id)

    def update_call(self, call_log_id: int, **fields: Any) -> bool:
        return self._calls.update_call(call_log_id, **fields)

    def delete_call(self, call_log_id: int) -> bool:
        return self._calls.delete_call(call_log_id)

    def delete_phone_number(self, phone_number_id: int) -> bool:
        return self._phone_numbers.delete(phone_number_id)

    def convert_phone_number_to_prospect(
        self, phone_number_id: int, prospect_input: ProspectInput
    ) -> Prospect:
        return self._conversions.convert_phone_number_to_prospect(
            phone_number_id, prospect_input
        )

    # =========================================================================
    # FOLLOW-UPS
    # =========================================================================

    def add_follow_up(self, target: FollowUpTarget, when: DateLike, notes: str = "") -> FollowUp:
        return self._follow_ups.create(target, when, notes)

    def get_follow_ups(self, user_id: int) -> list[FollowUpWithDetails]:
        return self._follow_ups.list_with_details(user_id)

    def get_pending_follow_ups(self, user_id: int) -> list[FollowUpWithDetails]:
        return self._follow_ups.pending_with_details(user_id)

    def update_follow_up(
        self, follow_up_id: int, when: DateLike = None, notes: Optional[str] = None
    ) -> bool:
        return self._follow_ups.update(follow_up_id, when, notes)

    def complete_follow_up(self, follow_up_id: int) -> bool:
        return self._follow_ups.complete(follow_up_id)

    def delete_follow_up(self, follow_up_id: int) -> bool:
        return self._follow_ups.delete(follow_up_id)

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    def get_analytics_data(
        self, user_id: int, start: DateLike = None, end: DateLike = None
    ) -> AnalyticsData:
        return analytics.get_analytics_data(self.db, user_id, start, end)

    def get_analytics_for_period(self, user_id: int, period: str) -> AnalyticsData:
        """Analytics for a dashboard filter: all, day, week, month or year."""
        start, end = analytics.date_range_for(period)
        return analytics.get_analytics_data(self.db, user_id, start, end)

    def get_daily_call_stats(self, user_id: int, day: Union[date, datetime, str]) -> DailyCallStats:
        return analytics.get_daily_call_stats(self.db, user_id, day)


# Operations AsyncSalesTracker runs on its worker
ASYNC_OPERATIONS = frozenset(
    name
    for name, value in vars(SalesTracker).items()
    if callable(value) and not name.startswith("_") and name not in {"open", "start", "close"}
)


class AsyncSalesTracker:
    """Non-blocking wrapper around SalesTracker.

    Every operation returns a Future. Work runs on a single-worker
    TaskManager, so operations execute in submission order and never
    overlap on the shared connection.

    Usage:
        tracker = AsyncSalesTracker(SalesTracker.open("sales.db"))
        future = tracker.record_call(user_id, "0700111222", outcome)
        record = future.result()
    """

    def __init__(self, tracker: SalesTracker, task_manager: Optional[TaskManager] = None) -> None:
        self._tracker = tracker
        self._tasks = task_manager or TaskManager(max_workers=1)

    @property
    def tracker(self) -> SalesTracker:
        return self._tracker

    def submit(
        self,
        operation: str,
        *args: Any,
        callback: Optional[Callable[[TaskResult], None]] = None,
        **kwargs: Any,
    ):
        """Queue a named SalesTracker operation.

        Raises:
            AttributeError: If operation is not a tracker operation
        """
        if operation not in ASYNC_OPERATIONS:
            raise AttributeError(f"SalesTracker has no operation {operation!r}")
        func = getattr(self._tracker, operation)
        return self._tasks.submit(operation, func, *args, callback=callback, **kwargs)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name not in ASYNC_OPERATIONS:
            raise AttributeError(f"{type(self).__name__!s} has no attribute {name!r}")

        def operation(*args: Any, **kwargs: Any):
            return self.submit(name, *args, **kwargs)

        operation.__name__ = name
        return operation

    def close(self, wait: bool = True) -> None:
        """Finish queued work, then close the tracker."""
        self._tasks.shutdown(wait=wait)
        self._tracker.close()
