"""Tests for analytics aggregation."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from salestrack.core.exceptions import ValidationError
from salestrack.db.database import Database
from salestrack.db.models import (
    CallFeedback,
    CallLog,
    Client,
    ClientTarget,
    FollowUp,
    PhoneNumber,
    Prospect,
    ProspectStatus,
    Sale,
)
from salestrack.engine.analytics import (
    date_range_for,
    get_analytics_data,
    get_daily_call_stats,
)


@pytest.fixture
def client(clients, user) -> Client:
    return clients.add(Client(user_id=user.id, name="Kato"))


def _sell(sales, client, amount, product, when):
    return sales.add(
        Sale(client_id=client.id, amount=Decimal(amount), product_or_service=product, date=when)
    )


class TestZeroGuards:
    """Test empty accounts."""

    def test_empty_account_has_zero_figures(self, memory_db: Database, user):
        data = get_analytics_data(memory_db, user.id)
        assert data.total_revenue == Decimal("0")
        assert data.average_sale_amount == Decimal("0")
        assert data.conversion_rate == 0
        assert data.total_prospects == 0
        assert data.top_products == []
        assert data.sales_by_month == []
        assert data.prospects_by_status == {}
        assert data.calls_by_feedback == {}


class TestSalesFigures:
    """Test revenue, products and months."""

    def test_totals_and_average(self, memory_db, sales, client, user):
        _sell(sales, client, "100", "Panel", datetime(2026, 1, 5))
        _sell(sales, client, "50.50", "Bulb", datetime(2026, 1, 6))
        data = get_analytics_data(memory_db, user.id)
        assert data.total_revenue == Decimal("150.50")
        assert data.total_sales == 2
        assert data.average_sale_amount == Decimal("75.25")

    def test_top_products_limited_and_ranked(self, memory_db, sales, client, user):
        when = datetime(2026, 2, 1)
        for product, amount in [("A", "10"), ("B", "60"), ("C", "30"), ("D", "40"), ("E", "50"), ("F", "20")]:
            _sell(sales, client, amount, product, when)
        _sell(sales, client, "15", "A", when)

        top = get_analytics_data(memory_db, user.id).top_products
        assert [p.product_or_service for p in top] == ["B", "E", "D", "C", "A"]
        a = top[-1]
        assert (a.revenue, a.count) == (Decimal("25"), 2)

    def test_top_products_ties_keep_first_seen(self, memory_db, sales, client, user):
        """Equal revenue keeps the order the products were first met."""
        _sell(sales, client, "10", "Older", datetime(2026, 2, 1))
        _sell(sales, client, "10", "Newer", datetime(2026, 2, 2))
        top = get_analytics_data(memory_db, user.id).top_products
        # Sales are read newest first
        assert [p.product_or_service for p in top] == ["Newer", "Older"]

    def test_sales_by_month_ascending(self, memory_db, sales, client, user):
        _sell(sales, client, "10", "X", datetime(2026, 3, 15))
        _sell(sales, client, "20", "X", datetime(2025, 12, 31, 23, 0))
        _sell(sales, client, "5", "X", datetime(2026, 3, 1))
        months = get_analytics_data(memory_db, user.id).sales_by_month
        assert [(m.month, m.revenue, m.count) for m in months] == [
            ("2025-12", Decimal("20"), 1),
            ("2026-03", Decimal("15"), 2),
        ]

    def test_date_bounds_filter_sales_only(self, memory_db, sales, client, prospects, user):
        _sell(sales, client, "10", "X", datetime(2026, 1, 1))
        _sell(sales, client, "20", "X", datetime(2026, 2, 1))
        prospects.add(Prospect(user_id=user.id, name="P"))
        data = get_analytics_data(memory_db, user.id, start=datetime(2026, 1, 15))
        assert data.total_revenue == Decimal("20")
        assert data.total_clients == 1
        assert data.total_prospects == 1

    def test_date_only_end_includes_that_day(self, memory_db, sales, client, user):
        _sell(sales, client, "40", "X", datetime(2026, 3, 31, 14, 0))
        data = get_analytics_data(memory_db, user.id, start=date(2026, 3, 1), end=date(2026, 3, 31))
        assert data.total_sales == 1
        assert data.total_revenue == Decimal("40")

    def test_other_users_excluded(self, memory_db, sales, clients, other_user, user):
        theirs = clients.add(Client(user_id=other_user.id, name="Theirs"))
        _sell(sales, theirs, "999", "X", datetime(2026, 1, 1))
        assert get_analytics_data(memory_db, user.id).total_revenue == Decimal("0")


class TestPipelineFigures:
    """Test prospects, calls and follow-ups."""

    def test_conversion_rate_and_status_order(self, memory_db, prospects, user):
        a = prospects.add(Prospect(user_id=user.id, name="A", status=ProspectStatus.CONTACTED))
        prospects.add(Prospect(user_id=user.id, name="B"))
        prospects.add(Prospect(user_id=user.id, name="C", status=ProspectStatus.CONTACTED))
        prospects.add(Prospect(user_id=user.id, name="D"))
        prospects.mark_won(a.id)

        data = get_analytics_data(memory_db, user.id)
        assert data.won_prospects == 1
        assert data.conversion_rate == pytest.approx(25.0)
        # Undated prospects list by id, so first-seen order is insertion order
        assert list(data.prospects_by_status.items()) == [("Won", 1), ("New", 2), ("Contacted", 1)]

    def test_calls_and_follow_ups(self, memory_db, phone_numbers, call_logs, follow_ups, client, user):
        phone = phone_numbers.add(PhoneNumber(user_id=user.id, number="0700111222"))
        base = datetime(2026, 3, 1, 9, 0)
        for minutes, feedback in [(0, CallFeedback.BUSY), (5, CallFeedback.DNC), (10, CallFeedback.BUSY)]:
            call_logs.add(CallLog(phone_number_id=phone.id, feedback=feedback, date=base + timedelta(minutes=minutes)))
        done = follow_ups.add(FollowUp(target=ClientTarget(client.id), date=base))
        follow_ups.add(FollowUp(target=ClientTarget(client.id), date=base))
        follow_ups.complete(done.id)

        data = get_analytics_data(memory_db, user.id)
        assert data.total_calls == 3
        # Calls are read newest first
        assert list(data.calls_by_feedback.items()) == [("Busy", 2), ("DNC", 1)]
        assert (data.total_follow_ups, data.pending_follow_ups, data.completed_follow_ups) == (2, 1, 1)


class TestDailyCallStats:
    """Test per-day call counts."""

    def test_counts_per_feedback(self, memory_db, phone_numbers, call_logs, user):
        phone = phone_numbers.add(PhoneNumber(user_id=user.id, number="0700111222"))
        day = datetime(2026, 3, 1)
        outcomes = [
            CallFeedback.SUCCESSFUL,
            CallFeedback.CONNECTED_LEAD,
            CallFeedback.CONNECTED_LEAD,
            CallFeedback.BUSY,
            CallFeedback.NOT_ANSWERED,
            CallFeedback.DNC,
        ]
        for hour, feedback in enumerate(outcomes, start=8):
            call_logs.add(CallLog(phone_number_id=phone.id, feedback=feedback, date=day.replace(hour=hour)))
        # Next day, must not count
        call_logs.add(CallLog(phone_number_id=phone.id, date=datetime(2026, 3, 2, 0, 0)))

        stats = get_daily_call_stats(memory_db, user.id, date(2026, 3, 1))
        assert stats.day == date(2026, 3, 1)
        assert stats.total_calls == 6
        assert (stats.successful, stats.leads, stats.busy, stats.not_answered, stats.dnc) == (1, 2, 1, 1, 1)

    def test_accepts_datetime_and_string(self, memory_db, user):
        assert get_daily_call_stats(memory_db, user.id, datetime(2026, 3, 1, 18, 0)).day == date(2026, 3, 1)
        assert get_daily_call_stats(memory_db, user.id, "2026-03-01").total_calls == 0


class TestDateRangeFor:
    """Test dashboard period presets."""

    NOW = datetime(2026, 3, 31, 15, 45)

    def test_all_is_unbounded(self):
        assert date_range_for("all", self.NOW) == (None, None)

    def test_day_starts_at_midnight(self):
        assert date_range_for("day", self.NOW) == (datetime(2026, 3, 31), self.NOW)

    def test_week_is_seven_days(self):
        start, end = date_range_for("week", self.NOW)
        assert end - start == timedelta(days=7)

    def test_month_clamps_to_month_end(self):
        start, _ = date_range_for("month", self.NOW)
        assert start == datetime(2026, 2, 28, 15, 45)

    def test_year(self):
        start, _ = date_range_for("year", self.NOW)
        assert start == datetime(2025, 3, 31, 15, 45)

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            date_range_for("quarter", self.NOW)
