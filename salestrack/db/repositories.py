"""Entity repositories for SalesTrack.

One repository per table, all sharing a Database:
    - ClientRepository
    - ProspectRepository
    - SaleRepository
    - PhoneNumberRepository
    - CallLogRepository
    - FollowUpRepository

Every repository offers add / get / list_for_user / update / delete.
Writes run inside Database.transaction(), so a repository call made from
a workflow joins the workflow's transaction. Every list query filters by
the owning user in SQL; there is no other row-level security.

Usage:
    from salestrack.db.repositories import ClientRepository

    clients = ClientRepository(db)
    client = clients.add(Client(user_id=user.id, name="Kato Traders"))
    clients.update(client.id, industry="Retail")
"""

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from salestrack.core.exceptions import (
    ConstraintViolationError,
    NotFoundError,
    ValidationError,
)
from salestrack.core.logging import get_logger
from salestrack.core.phone import normalize_phone
from salestrack.db.database import Database
from salestrack.db.models import (
    CallFeedback,
    CallLog,
    CallLogWithNumber,
    Client,
    ClientTarget,
    EntityType,
    FollowUp,
    FollowUpTarget,
    FollowUpWithDetails,
    PhoneNumber,
    PhoneNumberTarget,
    Prospect,
    ProspectStatus,
    ProspectTarget,
    Sale,
    SaleWithClient,
    coerce_datetime,
    datetime_from_db,
    datetime_to_db,
    parse_amount,
    parse_enum,
    target_for,
)

logger = get_logger(__name__)

# Commit-event topic; the key is the owning user's id
FOLLOW_UPS_TOPIC = "follow_ups"

DateLike = Union[datetime, date, str, None]


def _now() -> datetime:
    return datetime.now()


def _require_text(value: Optional[str], field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def _require_date(value: DateLike, field_name: str) -> datetime:
    when = coerce_datetime(value)
    if when is None:
        raise ValidationError(f"{field_name} is required")
    return when


def _upper_bound(value: DateLike) -> Optional[tuple[str, str]]:
    """SQL operator and stored value for an inclusive upper date bound.

    A date-only bound ("2026-03-31" or a date) covers that whole day.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            try:
                value = date.fromisoformat(text)
            except ValueError as e:
                raise ValidationError(f"Invalid date/time: {value!r}") from e
    if isinstance(value, date) and not isinstance(value, datetime):
        next_day = datetime.combine(value + timedelta(days=1), time.min)
        return "<", datetime_to_db(next_day)
    end = coerce_datetime(value)
    if end is None:
        return None
    return "<=", datetime_to_db(end)


def _duration(value: Any) -> int:
    try:
        seconds = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid duration: {value!r}") from e
    if seconds < 0:
        raise ValidationError(f"Duration cannot be negative, got {seconds}")
    return seconds


def _mark_follow_ups_changed(db: Database, user_id: Optional[int]) -> None:
    if user_id is not None:
        db.mark_changed(FOLLOW_UPS_TOPIC, user_id)


def _delete_follow_ups_for(db: Database, target: FollowUpTarget, user_id: int) -> int:
    """Delete every follow-up addressed to target. Caller owns the transaction."""
    cursor = db.execute(
        "DELETE FROM follow_ups WHERE entity_type = ? AND entity_id = ?",
        (target.entity_type.value, target.entity_id),
    )
    if cursor.rowcount > 0:
        _mark_follow_ups_changed(db, user_id)
    return cursor.rowcount


class _Repository:
    """Shared plumbing for partial updates."""

    table = ""
    touch_updated_at = False

    # field name -> converter to the stored value
    updatable: dict[str, Callable[[Any], Any]] = {}

    def __init__(self, db: Database) -> None:
        self._db = db

    def _apply_update(self, entity_id: int, fields: dict[str, Any]) -> bool:
        """Overwrite only the supplied fields.

        No fields is a no-op (False), not an error. An unknown id is a
        silent no-op (False): existence is not verified.
        """
        if not fields:
            return False

        unknown = sorted(set(fields) - set(self.updatable))
        if unknown:
            raise ValidationError(
                f"Cannot update {', '.join(unknown)} on {self.table}; "
                f"allowed: {', '.join(sorted(self.updatable))}"
            )

        columns = list(fields)
        values = [self.updatable[col](fields[col]) for col in columns]
        assignments = [f"{col} = ?" for col in columns]
        if self.touch_updated_at:
            assignments.append("updated_at = ?")
            values.append(datetime_to_db(_now()))

        with self._db.transaction():
            cursor = self._db.execute(
                f"UPDATE {self.table} SET {', '.join(assignments)} WHERE id = ?",
                (*values, entity_id),
            )
        return cursor.rowcount > 0


# =============================================================================
# CLIENTS
# =============================================================================


class ClientRepository(_Repository):
    """Clients, sorted by name."""

    table = "clients"
    touch_updated_at = True
    updatable = {
        "name": lambda v: _require_text(v, "Client name"),
        "phone": lambda v: v or "",
        "email": lambda v: v or "",
        "company": lambda v: v or "",
        "industry": lambda v: v or "",
    }

    @staticmethod
    def _row_to_client(row: sqlite3.Row) -> Client:
        return Client(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            phone=row["phone"],
            email=row["email"],
            company=row["company"],
            industry=row["industry"],
            created_at=datetime_from_db(row["created_at"]),
            updated_at=datetime_from_db(row["updated_at"]),
        )

    def add(self, client: Client) -> Client:
        """Create a client record.

        Args:
            client: Client to create (id is ignored)

        Returns:
            The stored client with its new id and timestamps
        """
        name = _require_text(client.name, "Client name")
        stamp = _now()
        with self._db.transaction():
            client_id = self._db.next_id()
            self._db.execute(
                """INSERT INTO clients
                   (id, user_id, name, phone, email, company, industry, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    client_id,
                    client.user_id,
                    name,
                    client.phone or "",
                    client.email or "",
                    client.company or "",
                    client.industry or "",
                    datetime_to_db(stamp),
                    datetime_to_db(stamp),
                ),
            )
        logger.info(
            "Client created",
            extra={"context": {"client_id": client_id, "user_id": client.user_id}},
        )
        return Client(
            id=client_id,
            user_id=client.user_id,
            name=name,
            phone=client.phone or "",
            email=client.email or "",
            company=client.company or "",
            industry=client.industry or "",
            created_at=stamp,
            updated_at=stamp,
        )

    def get(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        row = self._db.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
        return self._row_to_client(row) if row else None

    def list_for_user(self, user_id: int) -> list[Client]:
        """All clients owned by user_id, sorted by name."""
        rows = self._db.execute(
            "SELECT * FROM clients WHERE user_id = ? ORDER BY name ASC, id ASC",
            (user_id,),
        ).fetchall()
        return [self._row_to_client(row) for row in rows]

    def update(self, client_id: int, **fields: Any) -> bool:
        """Partially update a client. Returns True if a row changed."""
        return self._apply_update(client_id, fields)

    def delete(self, client_id: int) -> bool:
        """Delete a client with its sales and follow-ups, atomically."""
        with self._db.transaction():
            client = self.get(client_id)
            if client is None:
                return False
            _delete_follow_ups_for(self._db, ClientTarget(client_id), client.user_id)
            sales = self._db.execute("DELETE FROM sales WHERE client_id = ?", (client_id,))
            self._db.execute("DELETE FROM clients WHERE id = ?", (client_id,))
        logger.info(
            "Client deleted",
            extra={"context": {"client_id": client_id, "sales_removed": sales.rowcount}},
        )
        return True


# =============================================================================
# PROSPECTS
# =============================================================================


def _settable_status(value: Any) -> str:
    status = parse_enum(ProspectStatus, value, "prospect status")
    if status == ProspectStatus.WON:
        raise ValidationError("Prospects become Won only through conversion to a client")
    return status.value


class ProspectRepository(_Repository):
    """Prospects, sorted by follow-up date (undated last)."""

    table = "prospects"
    touch_updated_at = True
    updatable = {
        "name": lambda v: _require_text(v, "Prospect name"),
        "phone": lambda v: v or "",
        "email": lambda v: v or "",
        "company": lambda v: v or "",
        "status": _settable_status,
        "follow_up_date": lambda v: datetime_to_db(coerce_datetime(v)),
    }

    @staticmethod
    def _row_to_prospect(row: sqlite3.Row) -> Prospect:
        return Prospect(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            phone=row["phone"],
            email=row["email"],
            company=row["company"],
            status=ProspectStatus(row["status"]),
            follow_up_date=datetime_from_db(row["follow_up_date"]),
            created_at=datetime_from_db(row["created_at"]),
            updated_at=datetime_from_db(row["updated_at"]),
        )

    def add(self, prospect: Prospect) -> Prospect:
        """Create a prospect record.

        Raises:
            ValidationError: Missing name, unknown status, or status Won
        """
        name = _require_text(prospect.name, "Prospect name")
        status = ProspectStatus(_settable_status(prospect.status))
        follow_up = coerce_datetime(prospect.follow_up_date)
        stamp = _now()
        with self._db.transaction():
            prospect_id = self._db.next_id()
            self._db.execute(
                """INSERT INTO prospects
                   (id, user_id, name, phone, email, company, status, follow_up_date,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    prospect_id,
                    prospect.user_id,
                    name,
                    prospect.phone or "",
                    prospect.email or "",
                    prospect.company or "",
                    status.value,
                    datetime_to_db(follow_up),
                    datetime_to_db(stamp),
                    datetime_to_db(stamp),
                ),
            )
        logger.info(
            "Prospect created",
            extra={"context": {"prospect_id": prospect_id, "user_id": prospect.user_id}},
        )
        return Prospect(
            id=prospect_id,
            user_id=prospect.user_id,
            name=name,
            phone=prospect.phone or "",
            email=prospect.email or "",
            company=prospect.company or "",
            status=status,
            follow_up_date=follow_up,
            created_at=stamp,
            updated_at=stamp,
        )

    def get(self, prospect_id: int) -> Optional[Prospect]:
        """Get prospect by ID."""
        row = self._db.execute(
            "SELECT * FROM prospects WHERE id = ?", (prospect_id,)
        ).fetchone()
        return self._row_to_prospect(row) if row else None

    def list_for_user(self, user_id: int) -> list[Prospect]:
        """All prospects owned by user_id, soonest follow-up first."""
        rows = self._db.execute(
            """SELECT * FROM prospects WHERE user_id = ?
               ORDER BY follow_up_date IS NULL, follow_up_date ASC, id ASC""",
            (user_id,),
        ).fetchall()
        return [self._row_to_prospect(row) for row in rows]

    def update(self, prospect_id: int, **fields: Any) -> bool:
        """Partially update a prospect. Status Won is rejected."""
        return self._apply_update(prospect_id, fields)

    def update_status(self, prospect_id: int, status: Union[ProspectStatus, str]) -> bool:
        """Move a prospect to New, Contacted or Qualified."""
        return self._apply_update(prospect_id, {"status": status})

    def mark_won(self, prospect_id: int) -> bool:
        """Set status Won. Only the conversion workflow calls this."""
        with self._db.transaction():
            cursor = self._db.execute(
                "UPDATE prospects SET status = ?, updated_at = ? WHERE id = ?",
                (ProspectStatus.WON.value, datetime_to_db(_now()), prospect_id),
            )
        return cursor.rowcount > 0

    def delete(self, prospect_id: int) -> bool:
        """Delete a prospect and its follow-ups; unlink promoted phone numbers."""
        with self._db.transaction():
            prospect = self.get(prospect_id)
            if prospect is None:
                return False
            _delete_follow_ups_for(self._db, ProspectTarget(prospect_id), prospect.user_id)
            self._db.execute(
                "UPDATE phone_numbers SET prospect_id = NULL WHERE prospect_id = ?",
                (prospect_id,),
            )
            self._db.execute("DELETE FROM prospects WHERE id = ?", (prospect_id,))
        logger.info("Prospect deleted", extra={"context": {"prospect_id": prospect_id}})
        return True


# =============================================================================
# SALES
# =============================================================================


class SaleRepository(_Repository):
    """Sales; always attached to an existing client."""

    table = "sales"
    updatable = {
        "date": lambda v: datetime_to_db(_require_date(v, "Sale date")),
        "amount": lambda v: str(parse_amount(v)),
        "product_or_service": lambda v: _require_text(v, "Product or service"),
    }

    @staticmethod
    def _row_to_sale(row: sqlite3.Row) -> Sale:
        return Sale(
            id=row["id"],
            client_id=row["client_id"],
            date=datetime_from_db(row["date"]),
            amount=Decimal(row["amount"]),
            product_or_service=row["product_or_service"],
        )

    @staticmethod
    def _row_to_sale_with_client(row: sqlite3.Row) -> SaleWithClient:
        return SaleWithClient(
            id=row["id"],
            client_id=row["client_id"],
            date=datetime_from_db(row["date"]),
            amount=Decimal(row["amount"]),
            product_or_service=row["product_or_service"],
            client_name=row["client_name"],
        )

    def add(self, sale: Sale) -> Sale:
        """Record a sale against an existing client.

        Raises:
            NotFoundError: If the client does not exist
            ValidationError: Non-positive amount or blank product
        """
        amount = parse_amount(sale.amount)
        product = _require_text(sale.product_or_service, "Product or service")
        sale_date = coerce_datetime(sale.date) or _now()
        with self._db.transaction():
            exists = self._db.execute(
                "SELECT 1 FROM clients WHERE id = ?", (sale.client_id,)
            ).fetchone()
            if exists is None:
                raise NotFoundError(f"Client {sale.client_id} not found")
            sale_id = self._db.next_id()
            self._db.execute(
                """INSERT INTO sales (id, client_id, date, amount, product_or_service)
                   VALUES (?, ?, ?, ?, ?)""",
                (sale_id, sale.client_id, datetime_to_db(sale_date), str(amount), product),
            )
        logger.info(
            "Sale recorded",
            extra={"context": {"sale_id": sale_id, "client_id": sale.client_id}},
        )
        return Sale(
            id=sale_id,
            client_id=sale.client_id,
            date=sale_date,
            amount=amount,
            product_or_service=product,
        )

    def get(self, sale_id: int) -> Optional[Sale]:
        """Get sale by ID."""
        row = self._db.execute("SELECT * FROM sales WHERE id = ?", (sale_id,)).fetchone()
        return self._row_to_sale(row) if row else None

    def list_for_user(
        self,
        user_id: int,
        start: DateLike = None,
        end: DateLike = None,
    ) -> list[SaleWithClient]:
        """Sales of user_id's clients, newest first.

        Args:
            user_id: Owning user
            start: Inclusive lower bound on sale date
            end: Inclusive upper bound on sale date (a date covers the whole day)
        """
        conditions = ["c.user_id = ?"]
        params: list[Any] = [user_id]

        start_dt = coerce_datetime(start)
        if start_dt is not None:
            conditions.append("s.date >= ?")
            params.append(datetime_to_db(start_dt))

        bound = _upper_bound(end)
        if bound is not None:
            operator, value = bound
            conditions.append(f"s.date {operator} ?")
            params.append(value)

        rows = self._db.execute(
            f"""SELECT s.*, c.name AS client_name
                FROM sales s
                INNER JOIN clients c ON s.client_id = c.id
                WHERE {" AND ".join(conditions)}
                ORDER BY s.date DESC, s.id DESC""",
            params,
        ).fetchall()
        return [self._row_to_sale_with_client(row) for row in rows]

    def list_for_client(self, client_id: int) -> list[Sale]:
        """Sales of one client, newest first."""
        rows = self._db.execute(
            "SELECT * FROM sales WHERE client_id = ? ORDER BY date DESC, id DESC",
            (client_id,),
        ).fetchall()
        return [self._row_to_sale(row) for row in rows]

    def update(self, sale_id: int, **fields: Any) -> bool:
        """Partially update date, amount or product. The client is fixed."""
        return self._apply_update(sale_id, fields)

    def delete(self, sale_id: int) -> bool:
        """Delete a sale."""
        with self._db.transaction():
            cursor = self._db.execute("DELETE FROM sales WHERE id = ?", (sale_id,))
        return cursor.rowcount > 0


# =============================================================================
# PHONE NUMBERS
# =============================================================================


class PhoneNumberRepository(_Repository):
    """Dialed numbers, unique per (user_id, number)."""

    table = "phone_numbers"
    updatable = {
        "number": normalize_phone,
        "last_called_date": lambda v: datetime_to_db(coerce_datetime(v)),
    }

    @staticmethod
    def _row_to_phone_number(row: sqlite3.Row) -> PhoneNumber:
        return PhoneNumber(
            id=row["id"],
            user_id=row["user_id"],
            number=row["number"],
            last_called_date=datetime_from_db(row["last_called_date"]),
            is_prospect=bool(row["is_prospect"]),
            prospect_id=row["prospect_id"],
        )

    def add(self, phone_number: PhoneNumber) -> PhoneNumber:
        """Create a phone number record.

        Raises:
            ConstraintViolationError: If the user already has this number
        """
        number = normalize_phone(phone_number.number)
        called = coerce_datetime(phone_number.last_called_date)
        with self._db.transaction():
            phone_id = self._db.next_id()
            self._db.execute(
                """INSERT INTO phone_numbers
                   (id, user_id, number, last_called_date, is_prospect, prospect_id)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    phone_id,
                    phone_number.user_id,
                    number,
                    datetime_to_db(called),
                    int(phone_number.is_prospect),
                    phone_number.prospect_id,
                ),
            )
        return PhoneNumber(
            id=phone_id,
            user_id=phone_number.user_id,
            number=number,
            last_called_date=called,
            is_prospect=phone_number.is_prospect,
            prospect_id=phone_number.prospect_id,
        )

    def get(self, phone_number_id: int) -> Optional[PhoneNumber]:
        """Get phone number by ID."""
        row = self._db.execute(
            "SELECT * FROM phone_numbers WHERE id = ?", (phone_number_id,)
        ).fetchone()
        return self._row_to_phone_number(row) if row else None

    def get_by_number(self, user_id: int, number: str) -> Optional[PhoneNumber]:
        """Find user_id's record for a number in any format."""
        row = self._db.execute(
            "SELECT * FROM phone_numbers WHERE user_id = ? AND number = ?",
            (user_id, normalize_phone(number)),
        ).fetchone()
        return self._row_to_phone_number(row) if row else None

    def list_for_user(self, user_id: int) -> list[PhoneNumber]:
        """All numbers dialed by user_id, most recently called first."""
        rows = self._db.execute(
            """SELECT * FROM phone_numbers WHERE user_id = ?
               ORDER BY last_called_date IS NULL, last_called_date DESC, id DESC""",
            (user_id,),
        ).fetchall()
        return [self._row_to_phone_number(row) for row in rows]

    def update(self, phone_number_id: int, **fields: Any) -> bool:
        """Partially update number or last_called_date."""
        return self._apply_update(phone_number_id, fields)

    def record_dial(
        self, user_id: int, number: str, called_at: DateLike = None
    ) -> tuple[PhoneNumber, bool]:
        """Look up or create the number and stamp last_called_date.

        A unique clash on insert (the row appeared after the lookup) is
        taken as "exists" and handled on the update path.

        Returns:
            (phone number, True if it was created by this call)
        """
        normalized = normalize_phone(number)
        called = coerce_datetime(called_at) or _now()
        with self._db.transaction():
            existing = self.get_by_number(user_id, normalized)
            if existing is None:
                try:
                    created = self.add(
                        PhoneNumber(user_id=user_id, number=normalized, last_called_date=called)
                    )
                    return created, True
                except ConstraintViolationError:
                    logger.debug(
                        "Phone number appeared concurrently; updating instead",
                        extra={"context": {"user_id": user_id}},
                    )
                    existing = self.get_by_number(user_id, normalized)
                    if existing is None:
                        raise

            self._db.execute(
                "UPDATE phone_numbers SET last_called_date = ? WHERE id = ?",
                (datetime_to_db(called), existing.id),
            )
            existing.last_called_date = called
        return existing, False

    def mark_as_prospect(self, phone_number_id: int, prospect_id: int) -> bool:
        """Record one-way promotion of the number to a prospect."""
        with self._db.transaction():
            cursor = self._db.execute(
                "UPDATE phone_numbers SET is_prospect = 1, prospect_id = ? WHERE id = ?",
                (prospect_id, phone_number_id),
            )
        return cursor.rowcount > 0

    def delete(self, phone_number_id: int) -> bool:
        """Delete a number with its call logs and follow-ups, atomically."""
        with self._db.transaction():
            phone = self.get(phone_number_id)
            if phone is None:
                return False
            _delete_follow_ups_for(self._db, PhoneNumberTarget(phone_number_id), phone.user_id)
            self._db.execute(
                "DELETE FROM call_logs WHERE phone_number_id = ?", (phone_number_id,)
            )
            self._db.execute("DELETE FROM phone_numbers WHERE id = ?", (phone_number_id,))
        return True


# =============================================================================
# CALL LOGS
# =============================================================================


class CallLogRepository(_Repository):
    """Calls made to phone numbers, newest first."""

    table = "call_logs"
    updatable = {
        "date": lambda v: datetime_to_db(_require_date(v, "Call date")),
        "feedback": lambda v: parse_enum(CallFeedback, v, "call feedback").value,
        "duration": _duration,
        "short_notes": lambda v: v or "",
        "next_follow_up_date": lambda v: datetime_to_db(coerce_datetime(v)),
    }

    @staticmethod
    def _row_to_call_log(row: sqlite3.Row) -> CallLog:
        return CallLog(
            id=row["id"],
            phone_number_id=row["phone_number_id"],
            date=datetime_from_db(row["date"]),
            feedback=CallFeedback(row["feedback"]),
            duration=row["duration"],
            short_notes=row["short_notes"],
            next_follow_up_date=datetime_from_db(row["next_follow_up_date"]),
        )

    @staticmethod
    def _row_to_call_log_with_number(row: sqlite3.Row) -> CallLogWithNumber:
        return CallLogWithNumber(
            id=row["id"],
            phone_number_id=row["phone_number_id"],
            date=datetime_from_db(row["date"]),
            feedback=CallFeedback(row["feedback"]),
            duration=row["duration"],
            short_notes=row["short_notes"],
            next_follow_up_date=datetime_from_db(row["next_follow_up_date"]),
            number=row["number"],
        )

    def add(self, call_log: CallLog) -> CallLog:
        """Log a call against an existing phone number.

        Raises:
            NotFoundError: If the phone number does not exist
            ValidationError: Unknown feedback or negative duration
        """
        feedback = parse_enum(CallFeedback, call_log.feedback, "call feedback")
        duration = _duration(call_log.duration)
        call_date = coerce_datetime(call_log.date) or _now()
        next_follow_up = coerce_datetime(call_log.next_follow_up_date)
        with self._db.transaction():
            exists = self._db.execute(
                "SELECT 1 FROM phone_numbers WHERE id = ?", (call_log.phone_number_id,)
            ).fetchone()
            if exists is None:
                raise NotFoundError(f"Phone number {call_log.phone_number_id} not found")
            call_id = self._db.next_id()
            self._db.execute(
                """INSERT INTO call_logs
                   (id, phone_number_id, date, feedback, duration, short_notes,
                    next_follow_up_date)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    call_id,
                    call_log.phone_number_id,
                    datetime_to_db(call_date),
                    feedback.value,
                    duration,
                    call_log.short_notes or "",
                    datetime_to_db(next_follow_up),
                ),
            )
        return CallLog(
            id=call_id,
            phone_number_id=call_log.phone_number_id,
            date=call_date,
            feedback=feedback,
            duration=duration,
            short_notes=call_log.short_notes or "",
            next_follow_up_date=next_follow_up,
        )

    def get(self, call_log_id: int) -> Optional[CallLog]:
        """Get call log by ID."""
        row = self._db.execute(
            "SELECT * FROM call_logs WHERE id = ?", (call_log_id,)
        ).fetchone()
        return self._row_to_call_log(row) if row else None

    def list_for_user(self, user_id: int) -> list[CallLogWithNumber]:
        """Every call made by user_id, newest first."""
        rows = self._db.execute(
            """SELECT cl.*, pn.number AS number
               FROM call_logs cl
               INNER JOIN phone_numbers pn ON cl.phone_number_id = pn.id
               WHERE pn.user_id = ?
               ORDER BY cl.date DESC, cl.id DESC""",
            (user_id,),
        ).fetchall()
        return [self._row_to_call_log_with_number(row) for row in rows]

    def list_for_phone_number(self, phone_number_id: int) -> list[CallLog]:
        """Call history of one number, newest first."""
        rows = self._db.execute(
            "SELECT * FROM call_logs WHERE phone_number_id = ? ORDER BY date DESC, id DESC",
            (phone_number_id,),
        ).fetchall()
        return [self._row_to_call_log(row) for row in rows]

    def list_for_day(self, user_id: int, day: Union[date, datetime]) -> list[CallLog]:
        """Calls made by user_id on one device-local calendar day."""
        if isinstance(day, datetime):
            day = coerce_datetime(day).date()
        rows = self._db.execute(
            """SELECT cl.*
               FROM call_logs cl
               INNER JOIN phone_numbers pn ON cl.phone_number_id = pn.id
               WHERE pn.user_id = ? AND date(cl.date) = ?
               ORDER BY cl.date ASC, cl.id ASC""",
            (user_id, day.isoformat()),
        ).fetchall()
        return [self._row_to_call_log(row) for row in rows]

    def update(self, call_log_id: int, **fields: Any) -> bool:
        """Partially update a call log. The phone number is fixed."""
        return self._apply_update(call_log_id, fields)

    def delete(self, call_log_id: int) -> bool:
        """Delete a call log. Follow-ups it scheduled stay on the number."""
        with self._db.transaction():
            cursor = self._db.execute("DELETE FROM call_logs WHERE id = ?", (call_log_id,))
        return cursor.rowcount > 0


# =============================================================================
# FOLLOW-UPS
# =============================================================================


@dataclass(frozen=True)
class _TargetTable:
    """How to resolve one kind of follow-up target."""

    table: str
    name_sql: str
    company_sql: str
    phone_sql: str


# Dispatch table: entity type -> where its entity_id lives
_TARGET_TABLES: dict[EntityType, _TargetTable] = {
    EntityType.CLIENT: _TargetTable("clients", "t.name", "t.company", "t.phone"),
    EntityType.PROSPECT: _TargetTable("prospects", "t.name", "t.company", "t.phone"),
    EntityType.PHONE_NUMBER: _TargetTable("phone_numbers", "t.number", "NULL", "t.number"),
}


class FollowUpRepository(_Repository):
    """Follow-ups addressed to clients, prospects, or phone numbers.

    The (entity_type, entity_id) pair is not a foreign key; it is resolved
    through _TARGET_TABLES at read time, and anything that does not resolve
    to a row owned by the requesting user is left out.
    """

    table = "follow_ups"
    updatable = {
        "date": lambda v: datetime_to_db(_require_date(v, "Follow-up date")),
        "notes": lambda v: v or "",
    }

    @staticmethod
    def _row_to_follow_up(row: sqlite3.Row) -> FollowUp:
        return FollowUp(
            id=row["id"],
            target=target_for(row["entity_type"], row["entity_id"]),
            date=datetime_from_db(row["date"]),
            notes=row["notes"],
            is_completed=bool(row["is_completed"]),
            created_at=datetime_from_db(row["created_at"]),
        )

    @staticmethod
    def _row_to_details(row: sqlite3.Row) -> FollowUpWithDetails:
        return FollowUpWithDetails(
            id=row["id"],
            target=target_for(row["entity_type"], row["entity_id"]),
            date=datetime_from_db(row["date"]),
            notes=row["notes"],
            is_completed=bool(row["is_completed"]),
            created_at=datetime_from_db(row["created_at"]),
            user_id=row["owner_id"],
            entity_name=row["entity_name"],
            entity_company=row["entity_company"] or None,
            entity_phone=row["entity_phone"] or None,
        )

    def owner_of(self, target: FollowUpTarget) -> Optional[int]:
        """Return the user owning target, or None if it does not exist."""
        spec = _TARGET_TABLES[target.entity_type]
        row = self._db.execute(
            f"SELECT user_id FROM {spec.table} WHERE id = ?", (target.entity_id,)
        ).fetchone()
        return row["user_id"] if row else None

    def add(self, follow_up: FollowUp) -> FollowUp:
        """Create a follow-up addressed to an existing entity.

        Raises:
            ValidationError: Missing target or date
            NotFoundError: If the target does not exist
        """
        if follow_up.target is None:
            raise ValidationError("Follow-up target is required")
        target = follow_up.target
        when = _require_date(follow_up.date, "Follow-up date")
        stamp = _now()
        with self._db.transaction():
            owner = self.owner_of(target)
            if owner is None:
                raise NotFoundError(
                    f"{target.entity_type.value} {target.entity_id} not found"
                )
            follow_up_id = self._db.next_id()
            self._db.execute(
                """INSERT INTO follow_ups
                   (id, entity_id, entity_type, date, notes, is_completed, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    follow_up_id,
                    target.entity_id,
                    target.entity_type.value,
                    datetime_to_db(when),
                    follow_up.notes or "",
                    int(follow_up.is_completed),
                    datetime_to_db(stamp),
                ),
            )
            _mark_follow_ups_changed(self._db, owner)
        logger.info(
            "Follow-up created",
            extra={
                "context": {
                    "follow_up_id": follow_up_id,
                    "entity_type": target.entity_type.value,
                    "entity_id": target.entity_id,
                }
            },
        )
        return FollowUp(
            id=follow_up_id,
            target=target,
            date=when,
            notes=follow_up.notes or "",
            is_completed=follow_up.is_completed,
            created_at=stamp,
        )

    def get(self, follow_up_id: int) -> Optional[FollowUp]:
        """Get follow-up by ID."""
        row = self._db.execute(
            "SELECT * FROM follow_ups WHERE id = ?", (follow_up_id,)
        ).fetchone()
        return self._row_to_follow_up(row) if row else None

    def list_with_details(
        self, user_id: int, pending_only: bool = False
    ) -> list[FollowUpWithDetails]:
        """Follow-ups resolving to entities owned by user_id, soonest first."""
        results: list[FollowUpWithDetails] = []
        for entity_type, spec in _TARGET_TABLES.items():
            query = f"""
                SELECT f.*, t.user_id AS owner_id,
                       {spec.name_sql} AS entity_name,
                       {spec.company_sql} AS entity_company,
                       {spec.phone_sql} AS entity_phone
                FROM follow_ups f
                INNER JOIN {spec.table} t ON t.id = f.entity_id
                WHERE f.entity_type = ? AND t.user_id = ?
            """
            if pending_only:
                query += " AND f.is_completed = 0"
            rows = self._db.execute(query, (entity_type.value, user_id)).fetchall()
            results.extend(self._row_to_details(row) for row in rows)

        results.sort(key=lambda f: (f.date or datetime.min, f.id or 0))
        return results

    def list_for_user(self, user_id: int, pending_only: bool = False) -> list[FollowUp]:
        """Follow-ups owned by user_id (through their targets), soonest first."""
        return list(self.list_with_details(user_id, pending_only=pending_only))

    def list_for_target(self, target: FollowUpTarget) -> list[FollowUp]:
        """Follow-ups addressed to one entity, soonest first."""
        rows = self._db.execute(
            """SELECT * FROM follow_ups WHERE entity_type = ? AND entity_id = ?
               ORDER BY date ASC, id ASC""",
            (target.entity_type.value, target.entity_id),
        ).fetchall()
        return [self._row_to_follow_up(row) for row in rows]

    def update(self, follow_up_id: int, **fields: Any) -> bool:
        """Change date and/or notes. The target cannot be changed."""
        if not fields:
            return False
        with self._db.transaction():
            changed = self._apply_update(follow_up_id, fields)
            if changed:
                _mark_follow_ups_changed(self._db, self._owner_of_follow_up(follow_up_id))
        return changed

    def complete(self, follow_up_id: int) -> bool:
        """Mark completed. Idempotent; returns False only if it does not exist."""
        with self._db.transaction():
            follow_up = self.get(follow_up_id)
            if follow_up is None:
                return False
            if follow_up.is_completed:
                return True
            self._db.execute(
                "UPDATE follow_ups SET is_completed = 1 WHERE id = ?", (follow_up_id,)
            )
            _mark_follow_ups_changed(self._db, self.owner_of(follow_up.target))
        return True

    def delete(self, follow_up_id: int) -> bool:
        """Delete a follow-up."""
        with self._db.transaction():
            owner = self._owner_of_follow_up(follow_up_id)
            cursor = self._db.execute("DELETE FROM follow_ups WHERE id = ?", (follow_up_id,))
            if cursor.rowcount > 0:
                _mark_follow_ups_changed(self._db, owner)
        return cursor.rowcount > 0

    def complete_open_for(self, target: FollowUpTarget) -> int:
        """Complete every open follow-up addressed to target. Returns count."""
        with self._db.transaction():
            cursor = self._db.execute(
                """UPDATE follow_ups SET is_completed = 1
                   WHERE entity_type = ? AND entity_id = ? AND is_completed = 0""",
                (target.entity_type.value, target.entity_id),
            )
            if cursor.rowcount > 0:
                _mark_follow_ups_changed(self._db, self.owner_of(target))
        return cursor.rowcount

    def delete_for(self, target: FollowUpTarget) -> int:
        """Delete every follow-up addressed to target. Returns count."""
        with self._db.transaction():
            owner = self.owner_of(target)
            return _delete_follow_ups_for(self._db, target, owner)

    def _owner_of_follow_up(self, follow_up_id: int) -> Optional[int]:
        follow_up = self.get(follow_up_id)
        if follow_up is None or follow_up.target is None:
            return None
        return self.owner_of(follow_up.target)
