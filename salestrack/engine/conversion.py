"""Pipeline conversions.

Two promotions move a contact one step down the funnel:
    - Prospect -> Client + first Sale (prospect becomes Won)
    - Phone number -> Prospect (open follow-ups on the number are closed)

Each runs as a single transaction, so a caller observes either the full
set of changes or none of them.

Usage:
    from salestrack.engine.conversion import ConversionService

    service = ConversionService(db)
    result = service.convert_prospect_to_client_and_record_sale(
        prospect_id, SaleInput(amount=Decimal("1500"), product_or_service="Solar kit")
    )
"""

from typing import Optional

from salestrack.core.config import get_config
from salestrack.core.exceptions import NotFoundError, ValidationError
from salestrack.core.logging import get_logger
from salestrack.db.database import Database
from salestrack.db.models import (
    Client,
    ConversionResult,
    PhoneNumberTarget,
    Prospect,
    ProspectInput,
    ProspectStatus,
    Sale,
    SaleInput,
)
from salestrack.db.repositories import (
    ClientRepository,
    FollowUpRepository,
    PhoneNumberRepository,
    ProspectRepository,
    SaleRepository,
)
from salestrack.engine.workflow import atomic_workflow

logger = get_logger(__name__)


class ConversionService:
    """Promotes prospects to clients and phone numbers to prospects."""

    def __init__(self, db: Database, default_industry: Optional[str] = None) -> None:
        self._db = db
        self._clients = ClientRepository(db)
        self._prospects = ProspectRepository(db)
        self._sales = SaleRepository(db)
        self._phone_numbers = PhoneNumberRepository(db)
        self._follow_ups = FollowUpRepository(db)
        self._default_industry = default_industry or get_config().default_industry

    def convert_prospect_to_client_and_record_sale(
        self, prospect_id: int, sale_input: SaleInput
    ) -> ConversionResult:
        """Turn a prospect into a client with its first sale.

        Args:
            prospect_id: Prospect to convert
            sale_input: Date, amount and product of the closing sale

        Returns:
            The new client, the new sale, and the prospect now marked Won

        Raises:
            NotFoundError: If the prospect does not exist
            ValidationError: If it was already converted, or the sale is invalid
            WorkflowError: If a storage step failed (nothing persisted)
        """
        with atomic_workflow(self._db, "convert_prospect", prospect_id=prospect_id):
            prospect = self._prospects.get(prospect_id)
            if prospect is None:
                raise NotFoundError(f"Prospect {prospect_id} not found")
            if prospect.status == ProspectStatus.WON:
                raise ValidationError(f"Prospect {prospect_id} has already been converted")

            client = self._clients.add(
                Client(
                    user_id=prospect.user_id,
                    name=prospect.name,
                    phone=prospect.phone,
                    email=prospect.email,
                    company=prospect.company,
                    industry=self._default_industry,
                )
            )
            sale = self._sales.add(
                Sale(
                    client_id=client.id,
                    date=sale_input.date,
                    amount=sale_input.amount,
                    product_or_service=sale_input.product_or_service,
                )
            )
            self._prospects.mark_won(prospect_id)
            prospect = self._prospects.get(prospect_id)

        logger.info(
            "Prospect converted to client",
            extra={
                "context": {
                    "prospect_id": prospect_id,
                    "client_id": client.id,
                    "sale_id": sale.id,
                }
            },
        )
        return ConversionResult(client=client, sale=sale, prospect=prospect)

    def convert_phone_number_to_prospect(
        self, phone_number_id: int, prospect_input: ProspectInput
    ) -> Prospect:
        """Promote a dialed number to a prospect.

        The prospect's phone is the stored number. The number is flagged as
        promoted and every open follow-up addressed to it is completed,
        since the prospect now carries the relationship.

        Raises:
            NotFoundError: If the phone number does not exist
            ValidationError: If it was already promoted, or the input is invalid
            WorkflowError: If a storage step failed (nothing persisted)
        """
        with atomic_workflow(
            self._db, "convert_phone_number", phone_number_id=phone_number_id
        ):
            phone = self._phone_numbers.get(phone_number_id)
            if phone is None:
                raise NotFoundError(f"Phone number {phone_number_id} not found")
            if phone.is_prospect:
                raise ValidationError(
                    f"Phone number {phone_number_id} is already prospect {phone.prospect_id}"
                )

            prospect = self._prospects.add(
                Prospect(
                    user_id=phone.user_id,
                    name=prospect_input.name,
                    phone=phone.number,
                    email=prospect_input.email,
                    company=prospect_input.company,
                    status=prospect_input.status,
                    follow_up_date=prospect_input.follow_up_date,
                )
            )
            self._phone_numbers.mark_as_prospect(phone_number_id, prospect.id)
            closed = self._follow_ups.complete_open_for(PhoneNumberTarget(phone_number_id))

        logger.info(
            "Phone number promoted to prospect",
            extra={
                "context": {
                    "phone_number_id": phone_number_id,
                    "prospect_id": prospect.id,
                    "follow_ups_completed": closed,
                }
            },
        )
        return prospect
