"""Engine package - Business logic layer.

This package contains the multi-step workflows and read models:
    - Prospect and phone number conversions
    - Call recording
    - Follow-up lifecycle and reminder reconciliation
    - Analytics
    - The SalesTracker facade

Modules:
    - workflow: Transaction boundary shared by workflows
    - conversion: Prospect -> client + sale, phone number -> prospect
    - call_session: Record calls against dialed numbers
    - follow_ups: Follow-up lifecycle
    - notifications: Post-commit reminder reconciliation
    - analytics: Dashboard figures and daily call stats
    - tracker: Synchronous and asynchronous facades
"""

from salestrack.engine.analytics import (
    PERIODS,
    date_range_for,
    get_analytics_data,
    get_daily_call_stats,
)
from salestrack.engine.call_session import CallSession
from salestrack.engine.conversion import ConversionService
from salestrack.engine.follow_ups import FollowUpService
from salestrack.engine.notifications import (
    FollowUpNotifier,
    LoggingNotificationBridge,
    NotificationBridge,
    schedulable_reminders,
)
from salestrack.engine.tracker import AsyncSalesTracker, SalesTracker
from salestrack.engine.workflow import atomic_workflow

__all__ = [
    # Workflows
    "atomic_workflow",
    "ConversionService",
    "CallSession",
    "FollowUpService",
    # Notifications
    "NotificationBridge",
    "LoggingNotificationBridge",
    "FollowUpNotifier",
    "schedulable_reminders",
    # Analytics
    "PERIODS",
    "date_range_for",
    "get_analytics_data",
    "get_daily_call_stats",
    # Facade
    "SalesTracker",
    "AsyncSalesTracker",
]
