"""Data models and enumerations for SalesTrack.

All enums stored as TEXT in SQLite.
Dataclasses use frozen=False for mutability during processing,
except follow-up targets, which are immutable once created.

This module defines:
    - Enumerations for all categorical fields
    - Dataclasses for database records and derived views
    - The follow-up target variant (client / prospect / phone number)
    - Storage helpers for datetimes and amounts
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Union

from salestrack.core.exceptions import ValidationError

# =============================================================================
# ENUMERATIONS
# =============================================================================


class ProspectStatus(str, Enum):
    """Where a prospect sits in the pipeline.

    Values:
        NEW: Just captured
        CONTACTED: Reached at least once
        QUALIFIED: Confirmed interest and budget
        WON: Converted to a client; only set by conversion
    """

    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    WON = "Won"


class CallFeedback(str, Enum):
    """Outcome of a phone call."""

    SUCCESSFUL = "Successful"
    BUSY = "Busy"
    NOT_ANSWERED = "Not Answered"
    DNC = "DNC"
    CONNECTED_LEAD = "Connected-Lead"


class EntityType(str, Enum):
    """Discriminator for the table a follow-up's entity_id resolves against."""

    CLIENT = "client"
    PROSPECT = "prospect"
    PHONE_NUMBER = "phoneNumber"


def parse_enum(enum_cls: type, value: object, field_name: str) -> Enum:
    """Coerce a raw value to enum_cls, raising ValidationError if unknown."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r}; expected one of: {allowed}") from e


# =============================================================================
# STORAGE HELPERS
# =============================================================================
#
# Timezone policy: every datetime is stored as naive device-local time.
# Aware datetimes are converted to local time on the way in, so a calendar
# "day" is always the device-local day.


def coerce_datetime(value: Union[datetime, date, str, None]) -> Optional[datetime]:
    """Normalize a user-supplied moment to a naive local datetime.

    Args:
        value: datetime, date (midnight), ISO-8601 string, or None

    Returns:
        Naive local datetime, or None

    Raises:
        ValidationError: If a string cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"Invalid date/time: {value!r}") from e
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValidationError(f"Invalid date/time: {value!r}")


def datetime_to_db(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for a TEXT column."""
    if value is None:
        return None
    return value.isoformat(sep=" ")


def datetime_from_db(value: Optional[str]) -> Optional[datetime]:
    """Parse a TEXT column back into a datetime."""
    if value is None or value == "":
        return None
    return datetime.fromisoformat(value)


def parse_amount(value: Union[Decimal, int, float, str]) -> Decimal:
    """Parse a sale amount, which must be a positive decimal.

    Floats go through str() so 19.99 stays 19.99.
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Amount must be positive, got {value!r}")
    return amount


# =============================================================================
# FOLLOW-UP TARGETS
# =============================================================================


@dataclass(frozen=True)
class ClientTarget:
    """Follow-up addressed to a client."""

    client_id: int

    @property
    def entity_type(self) -> EntityType:
        return EntityType.CLIENT

    @property
    def entity_id(self) -> int:
        return self.client_id


@dataclass(frozen=True)
class ProspectTarget:
    """Follow-up addressed to a prospect."""

    prospect_id: int

    @property
    def entity_type(self) -> EntityType:
        return EntityType.PROSPECT

    @property
    def entity_id(self) -> int:
        return self.prospect_id


@dataclass(frozen=True)
class PhoneNumberTarget:
    """Follow-up addressed to a dialed phone number."""

    phone_number_id: int

    @property
    def entity_type(self) -> EntityType:
        return EntityType.PHONE_NUMBER

    @property
    def entity_id(self) -> int:
        return self.phone_number_id


FollowUpTarget = Union[ClientTarget, ProspectTarget, PhoneNumberTarget]

_TARGET_TYPES: dict[EntityType, type] = {
    EntityType.CLIENT: ClientTarget,
    EntityType.PROSPECT: ProspectTarget,
    EntityType.PHONE_NUMBER: PhoneNumberTarget,
}


def target_for(entity_type: Union[EntityType, str], entity_id: int) -> FollowUpTarget:
    """Build the target variant from its stored (entity_type, entity_id) pair.

    Examples:
        >>> target_for("client", 7)
        ClientTarget(client_id=7)
    """
    kind = parse_enum(EntityType, entity_type, "entity type")
    return _TARGET_TYPES[kind](entity_id)


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass
class User:
    """Account that owns every other record.

    Attributes:
        id: Primary key
        username: Unique login name
        password_hash: One-way salted hash, never the raw password
        name: Display name
    """

    id: Optional[int] = None
    username: str = ""
    password_hash: str = ""
    name: str = ""


@dataclass
class Client:
    """Paying customer.

    Attributes:
        id: Primary key
        user_id: Owning user
        name: Contact name
        phone: Phone number
        email: Email address
        company: Company name
        industry: Industry label
        created_at: Record creation time
        updated_at: Last update time
    """

    id: Optional[int] = None
    user_id: int = 0
    name: str = ""
    phone: str = ""
    email: str = ""
    company: str = ""
    industry: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Prospect:
    """Potential customer being worked toward a sale.

    Attributes:
        id: Primary key
        user_id: Owning user
        name: Contact name
        phone: Phone number
        email: Email address
        company: Company name
        status: Pipeline status
        follow_up_date: Next planned contact
        created_at: Record creation time
        updated_at: Last update time
    """

    id: Optional[int] = None
    user_id: int = 0
    name: str = ""
    phone: str = ""
    email: str = ""
    company: str = ""
    status: ProspectStatus = ProspectStatus.NEW
    follow_up_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Sale:
    """Sale recorded against a client."""

    id: Optional[int] = None
    client_id: int = 0
    date: Optional[datetime] = None
    amount: Decimal = Decimal("0")
    product_or_service: str = ""


@dataclass
class SaleWithClient(Sale):
    """Sale joined with its client's name for list views."""

    client_name: str = ""


@dataclass
class PhoneNumber:
    """A number the user has dialed.

    Attributes:
        id: Primary key
        user_id: Owning user
        number: Normalized number, unique per user
        last_called_date: When it was last dialed
        is_prospect: Promoted to a prospect (one-way)
        prospect_id: Prospect created on promotion
    """

    id: Optional[int] = None
    user_id: int = 0
    number: str = ""
    last_called_date: Optional[datetime] = None
    is_prospect: bool = False
    prospect_id: Optional[int] = None


@dataclass
class CallLog:
    """One call made to a phone number."""

    id: Optional[int] = None
    phone_number_id: int = 0
    date: Optional[datetime] = None
    feedback: CallFeedback = CallFeedback.NOT_ANSWERED
    duration: int = 0  # seconds
    short_notes: str = ""
    next_follow_up_date: Optional[datetime] = None


@dataclass
class CallLogWithNumber(CallLog):
    """Call log joined with the dialed number."""

    number: str = ""


@dataclass
class FollowUp:
    """Scheduled reminder to contact a client, prospect, or phone number.

    The target is fixed at creation; only date and notes change later.

    Attributes:
        id: Primary key
        target: Which entity the follow-up is about
        date: When to follow up
        notes: What to follow up about
        is_completed: Completed flag (one-way)
        created_at: Record creation time
    """

    id: Optional[int] = None
    target: Optional[FollowUpTarget] = None
    date: Optional[datetime] = None
    notes: str = ""
    is_completed: bool = False
    created_at: Optional[datetime] = None

    @property
    def entity_type(self) -> Optional[EntityType]:
        return self.target.entity_type if self.target else None

    @property
    def entity_id(self) -> Optional[int]:
        return self.target.entity_id if self.target else None


@dataclass
class FollowUpWithDetails(FollowUp):
    """Follow-up with its target resolved for display and reminders."""

    user_id: int = 0
    entity_name: str = ""
    entity_company: Optional[str] = None
    entity_phone: Optional[str] = None


# =============================================================================
# WORKFLOW INPUTS AND RESULTS
# =============================================================================


@dataclass
class SaleInput:
    """Caller-supplied part of a sale made during conversion."""

    date: Optional[datetime] = None
    amount: Decimal = Decimal("0")
    product_or_service: str = ""


@dataclass
class ProspectInput:
    """Caller-supplied fields for a prospect promoted from a phone number."""

    name: str = ""
    email: str = ""
    company: str = ""
    status: ProspectStatus = ProspectStatus.NEW
    follow_up_date: Optional[datetime] = None


@dataclass
class CallOutcome:
    """What happened on a call, as entered after hanging up.

    Attributes:
        feedback: Call outcome category
        duration: Call length in seconds
        short_notes: Free-text notes
        date: When the call happened (defaults to now)
        next_follow_up_date: Schedules a follow-up on the number if set
        follow_up_notes: Notes for that follow-up (defaults to short_notes)
    """

    feedback: CallFeedback = CallFeedback.NOT_ANSWERED
    duration: int = 0
    short_notes: str = ""
    date: Optional[datetime] = None
    next_follow_up_date: Optional[datetime] = None
    follow_up_notes: Optional[str] = None


@dataclass
class ConversionResult:
    """Consistent triple produced by prospect conversion."""

    client: Client
    sale: Sale
    prospect: Prospect


@dataclass
class CallRecord:
    """Everything written by one recorded call."""

    phone_number: PhoneNumber
    call_log: CallLog
    follow_up: Optional[FollowUp] = None
    created_phone_number: bool = False


# =============================================================================
# DERIVED VIEWS
# =============================================================================


@dataclass
class DailyCallStats:
    """Call counts per feedback category for one user on one day."""

    user_id: int
    day: date
    total_calls: int = 0
    successful: int = 0
    leads: int = 0
    busy: int = 0
    not_answered: int = 0
    dnc: int = 0


@dataclass
class ProductSummary:
    """Revenue and sale count for one product or service."""

    product_or_service: str
    revenue: Decimal = Decimal("0")
    count: int = 0


@dataclass
class MonthlySales:
    """Revenue and sale count for one YYYY-MM month."""

    month: str
    revenue: Decimal = Decimal("0")
    count: int = 0


@dataclass
class AnalyticsData:
    """Summary statistics for the analytics screen.

    Attributes:
        total_revenue: Sum of sale amounts in range
        total_sales: Number of sales in range
        average_sale_amount: total_revenue / total_sales, 0 when no sales
        total_clients: Clients owned by the user
        total_prospects: Prospects owned by the user
        won_prospects: Prospects with status Won
        conversion_rate: won / total x 100, 0 when no prospects
        total_calls: Calls logged by the user
        total_follow_ups: Follow-ups resolved to the user
        pending_follow_ups: Follow-ups not yet completed
        completed_follow_ups: Follow-ups completed
        top_products: Five best products by revenue
        sales_by_month: Revenue per month, oldest first
        prospects_by_status: Prospect count per status, first-seen order
        calls_by_feedback: Call count per feedback, first-seen order
    """

    total_revenue: Decimal = Decimal("0")
    total_sales: int = 0
    average_sale_amount: Decimal = Decimal("0")
    total_clients: int = 0
    total_prospects: int = 0
    won_prospects: int = 0
    conversion_rate: float = 0.0
    total_calls: int = 0
    total_follow_ups: int = 0
    pending_follow_ups: int = 0
    completed_follow_ups: int = 0
    top_products: list[ProductSummary] = field(default_factory=list)
    sales_by_month: list[MonthlySales] = field(default_factory=list)
    prospects_by_status: dict[str, int] = field(default_factory=dict)
    calls_by_feedback: dict[str, int] = field(default_factory=dict)
