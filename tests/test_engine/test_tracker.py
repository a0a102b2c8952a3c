"""Tests for the SalesTracker facades."""

from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

from salestrack.core.config import Config
from salestrack.core.exceptions import InvalidCredentialsError, NotInitializedError
from salestrack.db.database import Database
from salestrack.db.models import (
    CallFeedback,
    CallOutcome,
    ClientTarget,
    ProspectInput,
    ProspectStatus,
    SaleInput,
)
from salestrack.engine.notifications import LoggingNotificationBridge
from salestrack.engine.tracker import ASYNC_OPERATIONS, AsyncSalesTracker, SalesTracker


@pytest.fixture
def tracker(mock_config: Config, recording_bridge) -> SalesTracker:
    tracker = SalesTracker(Database(":memory:"), [recording_bridge], config=mock_config)
    tracker.start()
    yield tracker
    tracker.close()


class TestSalesTracker:
    """Test the synchronous facade end to end."""

    def test_full_pipeline(self, tracker: SalesTracker, recording_bridge):
        user = tracker.signup("amina", "s3cret", "Amina Nakato")
        assert tracker.signin("amina", "s3cret").id == user.id

        record = tracker.record_call(
            user.id,
            "0700111222",
            CallOutcome(
                feedback=CallFeedback.CONNECTED_LEAD,
                next_follow_up_date=datetime.now() + timedelta(days=1),
            ),
        )
        assert len(tracker.get_pending_follow_ups(user.id)) == 1
        assert recording_bridge.last_ids == [record.follow_up.id]

        prospect = tracker.convert_phone_number_to_prospect(
            record.phone_number.id, ProspectInput(name="Okello", company="Okello & Sons")
        )
        assert tracker.get_pending_follow_ups(user.id) == []

        tracker.update_prospect_status(prospect.id, ProspectStatus.QUALIFIED)
        result = tracker.convert_prospect_to_client(
            prospect.id, SaleInput(amount=Decimal("2400"), product_or_service="Solar kit")
        )
        assert result.client.industry == "General"
        assert [s.client_name for s in tracker.get_sales(user.id)] == ["Okello"]

        data = tracker.get_analytics_data(user.id)
        assert data.total_revenue == Decimal("2400")
        assert data.conversion_rate == pytest.approx(100.0)
        assert data.total_calls == 1

        stats = tracker.get_daily_call_stats(user.id, record.call_log.date)
        assert stats.leads == 1

    def test_follow_up_operations(self, tracker: SalesTracker):
        user = tracker.signup("amina", "s3cret", "Amina Nakato")
        client = tracker.add_client(user.id, "Kato", phone="0711000000")
        follow_up = tracker.add_follow_up(ClientTarget(client.id), datetime.now() + timedelta(days=1))
        assert tracker.update_follow_up(follow_up.id, notes="Bring samples") is True
        assert tracker.complete_follow_up(follow_up.id) is True
        assert tracker.get_follow_ups(user.id)[0].is_completed is True
        assert tracker.delete_follow_up(follow_up.id) is True

    def test_analytics_for_period(self, tracker: SalesTracker):
        user = tracker.signup("amina", "s3cret", "Amina Nakato")
        client = tracker.add_client(user.id, "Kato")
        tracker.add_sale(client.id, "100", "Panel", sale_date=datetime.now() - timedelta(days=30))
        tracker.add_sale(client.id, "50", "Bulb", sale_date=datetime.now() - timedelta(hours=1))
        assert tracker.get_analytics_for_period(user.id, "all").total_revenue == Decimal("150")
        assert tracker.get_analytics_for_period(user.id, "week").total_revenue == Decimal("50")

    def test_short_password_uses_config(self, mock_config: Config):
        mock_config.min_password_length = 8
        with SalesTracker(Database(":memory:"), config=mock_config) as tracker:
            with pytest.raises(Exception, match="at least 8"):
                tracker.signup("amina", "short", "Amina")

    def test_default_bridge_is_logging(self, mock_config: Config):
        tracker = SalesTracker(Database(":memory:"), config=mock_config)
        assert isinstance(tracker.notifier.bridges[0], LoggingNotificationBridge)

    def test_closed_tracker_rejects_calls(self, mock_config: Config):
        tracker = SalesTracker(Database(":memory:"), config=mock_config)
        tracker.start()
        tracker.close()
        with pytest.raises(NotInitializedError):
            tracker.get_clients(1)

    def test_open_uses_file(self, tmp_path: Path, mock_config: Config):
        path = tmp_path / "sales.db"
        with SalesTracker.open(str(path), config=mock_config) as tracker:
            tracker.signup("amina", "s3cret", "Amina")
        with SalesTracker.open(str(path), config=mock_config) as tracker:
            assert tracker.get_user_by_username("amina") is not None


class TestAsyncSalesTracker:
    """Test the future-returning facade."""

    def test_operations_resolve_in_order(self, tracker: SalesTracker):
        async_tracker = AsyncSalesTracker(tracker)
        signup = async_tracker.signup("amina", "s3cret", "Amina")
        user = signup.result(timeout=10)

        first = async_tracker.record_call(user.id, "0700111222", CallOutcome(feedback=CallFeedback.BUSY))
        second = async_tracker.record_call(user.id, "0700111222", CallOutcome(feedback=CallFeedback.SUCCESSFUL))
        phones = async_tracker.get_phone_numbers(user.id)

        assert first.result(timeout=10).created_phone_number is True
        assert second.result(timeout=10).created_phone_number is False
        assert len(phones.result(timeout=10)) == 1
        async_tracker._tasks.shutdown()

    def test_errors_surface_through_future(self, tracker: SalesTracker):
        async_tracker = AsyncSalesTracker(tracker)
        future = async_tracker.signin("nobody", "s3cret")
        with pytest.raises(InvalidCredentialsError):
            future.result(timeout=10)
        async_tracker._tasks.shutdown()

    def test_unknown_operation(self, tracker: SalesTracker):
        async_tracker = AsyncSalesTracker(tracker)
        with pytest.raises(AttributeError):
            async_tracker.drop_everything
        with pytest.raises(AttributeError):
            async_tracker.submit("close")

    def test_lifecycle_methods_not_async(self):
        assert "record_call" in ASYNC_OPERATIONS
        assert {"open", "start", "close"}.isdisjoint(ASYNC_OPERATIONS)

    def test_close_finishes_work_then_closes(self, mock_config: Config):
        tracker = SalesTracker(Database(":memory:"), config=mock_config)
        tracker.start()
        async_tracker = AsyncSalesTracker(tracker)
        future = async_tracker.signup("amina", "s3cret", "Amina")
        async_tracker.close()
        assert future.result().username == "amina"
        assert tracker.db.is_initialized is False
