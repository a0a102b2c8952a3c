"""Database package - SQLite database, models, identity, repositories.

This package provides all storage functionality:
    - database: Connection, schema, transactions, commit events
    - models: Dataclasses and enumerations
    - identity: Sign-up / sign-in credential store
    - repositories: Per-entity CRUD with user scoping

Modules:
    - database: SQLite connection and schema
    - models: Data models and enumerations
    - identity: User accounts and password hashing
    - repositories: Client, prospect, sale, phone number, call log, follow-up
"""

from salestrack.db.models import (
    ProspectStatus,
    CallFeedback,
    EntityType,
    ClientTarget,
    ProspectTarget,
    PhoneNumberTarget,
    FollowUpTarget,
    target_for,
    User,
    Client,
    Prospect,
    Sale,
    SaleWithClient,
    PhoneNumber,
    CallLog,
    CallLogWithNumber,
    FollowUp,
    FollowUpWithDetails,
    SaleInput,
    ProspectInput,
    CallOutcome,
    ConversionResult,
    CallRecord,
    DailyCallStats,
    ProductSummary,
    MonthlySales,
    AnalyticsData,
)

__all__ = [
    # Enums
    "ProspectStatus",
    "CallFeedback",
    "EntityType",
    # Follow-up targets
    "ClientTarget",
    "ProspectTarget",
    "PhoneNumberTarget",
    "FollowUpTarget",
    "target_for",
    # Dataclasses
    "User",
    "Client",
    "Prospect",
    "Sale",
    "SaleWithClient",
    "PhoneNumber",
    "CallLog",
    "CallLogWithNumber",
    "FollowUp",
    "FollowUpWithDetails",
    # Workflow inputs and results
    "SaleInput",
    "ProspectInput",
    "CallOutcome",
    "ConversionResult",
    "CallRecord",
    # Derived views
    "DailyCallStats",
    "ProductSummary",
    "MonthlySales",
    "AnalyticsData",
]
