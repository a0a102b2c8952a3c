"""Sales analytics for the dashboard.

Reads a user's sales, clients, prospects, calls and follow-ups and
computes summary figures in memory:
    - Revenue totals and average sale
    - Prospect conversion rate
    - Top five products by revenue
    - Revenue by calendar month
    - Prospect and call breakdowns
    - Per-day call counts by feedback

Days are device-local calendar days, matching how datetimes are stored.

Usage:
    from salestrack.engine.analytics import date_range_for, get_analytics_data

    start, end = date_range_for("month")
    data = get_analytics_data(db, user_id, start, end)
"""

import calendar
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from salestrack.core.exceptions import ValidationError
from salestrack.core.logging import get_logger
from salestrack.db.database import Database
from salestrack.db.models import (
    AnalyticsData,
    CallFeedback,
    DailyCallStats,
    MonthlySales,
    ProductSummary,
    ProspectStatus,
    SaleWithClient,
    coerce_datetime,
)
from salestrack.db.repositories import (
    CallLogRepository,
    ClientRepository,
    FollowUpRepository,
    ProspectRepository,
    SaleRepository,
)

logger = get_logger(__name__)

TOP_PRODUCTS_LIMIT = 5

PERIODS = ("all", "day", "week", "month", "year")

DateLike = Union[datetime, date, str, None]


def _months_back(moment: datetime, months: int) -> datetime:
    """Same wall-clock time `months` earlier, clamped to the month's last day."""
    total = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def date_range_for(
    period: str, now: Optional[datetime] = None
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Translate a dashboard filter into inclusive (start, end) bounds.

    Args:
        period: "all", "day" (since midnight), "week" (last 7 days),
            "month" (last month), or "year" (last year)
        now: Reference time, defaults to the current local time

    Returns:
        (start, end); both None for "all"

    Raises:
        ValidationError: Unknown period
    """
    if period not in PERIODS:
        raise ValidationError(f"Unknown period {period!r}; expected one of: {', '.join(PERIODS)}")
    if period == "all":
        return None, None

    now = coerce_datetime(now) or datetime.now()
    if period == "day":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == "week":
        start = now - timedelta(days=7)
    elif period == "month":
        start = _months_back(now, 1)
    else:
        start = _months_back(now, 12)
    return start, now


def _top_products(sales: list[SaleWithClient]) -> list[ProductSummary]:
    groups: dict[str, ProductSummary] = {}
    for sale in sales:
        summary = groups.setdefault(
            sale.product_or_service, ProductSummary(product_or_service=sale.product_or_service)
        )
        summary.revenue += sale.amount
        summary.count += 1
    # sorted() is stable, so ties keep first-encountered order
    ranked = sorted(groups.values(), key=lambda s: s.revenue, reverse=True)
    return ranked[:TOP_PRODUCTS_LIMIT]


def _sales_by_month(sales: list[SaleWithClient]) -> list[MonthlySales]:
    months: dict[str, MonthlySales] = {}
    for sale in sales:
        if sale.date is None:
            continue
        key = sale.date.strftime("%Y-%m")
        bucket = months.setdefault(key, MonthlySales(month=key))
        bucket.revenue += sale.amount
        bucket.count += 1
    return [months[key] for key in sorted(months)]


def _count_in_order(values: list[str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return counts


def get_analytics_data(
    db: Database, user_id: int, start: DateLike = None, end: DateLike = None
) -> AnalyticsData:
    """Compute dashboard figures for one user.

    Date bounds (inclusive) apply to sales only; client, prospect, call
    and follow-up figures always cover everything the user owns.
    """
    sales = SaleRepository(db).list_for_user(user_id, start, end)
    clients = ClientRepository(db).list_for_user(user_id)
    prospects = ProspectRepository(db).list_for_user(user_id)
    calls = CallLogRepository(db).list_for_user(user_id)
    follow_ups = FollowUpRepository(db).list_with_details(user_id)

    total_revenue = sum((sale.amount for sale in sales), Decimal("0"))
    average = total_revenue / len(sales) if sales else Decimal("0")

    won = sum(1 for p in prospects if p.status == ProspectStatus.WON)
    conversion_rate = (won / len(prospects)) * 100 if prospects else 0.0

    completed = sum(1 for f in follow_ups if f.is_completed)

    data = AnalyticsData(
        total_revenue=total_revenue,
        total_sales=len(sales),
        average_sale_amount=average,
        total_clients=len(clients),
        total_prospects=len(prospects),
        won_prospects=won,
        conversion_rate=conversion_rate,
        total_calls=len(calls),
        total_follow_ups=len(follow_ups),
        pending_follow_ups=len(follow_ups) - completed,
        completed_follow_ups=completed,
        top_products=_top_products(sales),
        sales_by_month=_sales_by_month(sales),
        prospects_by_status=_count_in_order([p.status.value for p in prospects]),
        calls_by_feedback=_count_in_order([c.feedback.value for c in calls]),
    )

    logger.debug(
        "Analytics computed",
        extra={
            "context": {
                "user_id": user_id,
                "sales": data.total_sales,
                "prospects": data.total_prospects,
                "calls": data.total_calls,
            }
        },
    )
    return data


def get_daily_call_stats(
    db: Database, user_id: int, day: Union[date, datetime, str]
) -> DailyCallStats:
    """Count user_id's calls on one local calendar day, per feedback."""
    if isinstance(day, datetime) or isinstance(day, str):
        day = coerce_datetime(day).date()

    calls = CallLogRepository(db).list_for_day(user_id, day)
    counts = Counter(call.feedback for call in calls)

    return DailyCallStats(
        user_id=user_id,
        day=day,
        total_calls=len(calls),
        successful=counts[CallFeedback.SUCCESSFUL],
        leads=counts[CallFeedback.CONNECTED_LEAD],
        busy=counts[CallFeedback.BUSY],
        not_answered=counts[CallFeedback.NOT_ANSWERED],
        dnc=counts[CallFeedback.DNC],
    )
