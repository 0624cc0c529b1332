"""Ledger write path - records and deletes transactions, keeping the profile fresh"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings as default_settings
from cashflow_advisor.domain.exceptions import (
    InvalidAmountError,
    InvalidTransactionDataError,
    TransactionNotFoundError,
)
from cashflow_advisor.domain.installments import generate_installment_plan
from cashflow_advisor.domain.models import PaymentMethod, SeasonalEvent, TransactionKind
from cashflow_advisor.infrastructure.database.models import SeasonalEventRecord, TransactionRecord
from cashflow_advisor.infrastructure.database.repositories import (
    CategoryRepository,
    InstallmentRepository,
    SeasonalEventRepository,
    TransactionRepository,
)
from cashflow_advisor.services.profile_service import ProfileCalculator
from cashflow_advisor.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
        profile_calculator: Optional[ProfileCalculator] = None,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock
        self.profile_calculator = profile_calculator or ProfileCalculator(db, settings, clock)
        self.transactions = TransactionRepository(db)
        self.installments = InstallmentRepository(db)
        self.categories = CategoryRepository(db)
        self.seasonal_events = SeasonalEventRepository(db)

    def record_transaction(
        self,
        user_id: str,
        amount: Decimal,
        kind: TransactionKind,
        occurred_on: date,
        category: Optional[str] = None,
        payment_method: PaymentMethod = PaymentMethod.UNSPECIFIED,
        installment_count: int = 1,
        description: Optional[str] = None,
    ) -> TransactionRecord:
        """
        Store a transaction and invalidate the user's profile.

        Requirements:
        - amount > 0 and installment_count >= 1
        - Unknown or missing category goes to the fallback category (created on demand)
        - Credit purchases split in installments get their monthly schedule

        Raises:
            InvalidAmountError: Non-positive amount
            InvalidTransactionDataError: Bad installment count or installments on a non-credit entry
        """
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")
        if installment_count < 1:
            raise InvalidTransactionDataError(f"Installment count must be at least 1, got {installment_count}")
        if installment_count > 1 and (kind != TransactionKind.EXPENSE or payment_method != PaymentMethod.CREDIT):
            raise InvalidTransactionDataError("Only credit expenses can be split in installments")

        resolved = None
        if category and category.strip():
            resolved = self.categories.find_by_name(user_id, category)
        if resolved is None:
            resolved = self.categories.get_or_create(user_id, self.settings.fallback_category)

        record = self.transactions.create(
            user_id=user_id,
            amount=amount,
            kind=kind,
            category=resolved,
            payment_method=payment_method,
            occurred_on=occurred_on,
            installment_count=installment_count,
            description=description,
            created_at=self.clock(),
        )

        if installment_count > 1:
            plan = generate_installment_plan(amount, installment_count, occurred_on)
            self.installments.create_for_transaction(record, plan)

        self.profile_calculator.invalidate(user_id)
        logger.info(
            "Transaction recorded",
            extra={
                "user_id": user_id,
                "transaction_id": str(record.id),
                "kind": kind.value,
                "installments": installment_count,
            },
        )
        return record

    def delete_transaction(self, user_id: str, transaction_id: uuid.UUID) -> None:
        """Remove a transaction with its installments and invalidate the profile"""
        record = self.transactions.get(user_id, transaction_id)
        if record is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        self.transactions.delete(record)
        self.profile_calculator.invalidate(user_id)
        logger.info("Transaction deleted", extra={"user_id": user_id, "transaction_id": str(transaction_id)})

    def record_seasonal_event(self, user_id: str, event: SeasonalEvent) -> SeasonalEventRecord:
        """Store a yearly event that the forecast adds to its calendar month"""
        if event.average_amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {event.average_amount}")
        if not 1 <= event.month <= 12:
            raise InvalidTransactionDataError(f"Month must be between 1 and 12, got {event.month}")

        record = self.seasonal_events.create(user_id, event)
        logger.info(
            "Seasonal event recorded",
            extra={"user_id": user_id, "month": event.month, "is_income": event.is_income},
        )
        return record
