"""Ledger writes - transactions (with installment schedules) and seasonal events"""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cashflow_advisor.api.v1.schemas import (
    InstallmentSchema,
    SeasonalEventRequest,
    SeasonalEventResponse,
    TransactionRequest,
    TransactionResponse,
)
from cashflow_advisor.api.dependencies import get_ledger_service
from cashflow_advisor.domain.exceptions import (
    InvalidAmountError,
    InvalidTransactionDataError,
    TransactionNotFoundError,
)
from cashflow_advisor.domain.models import SeasonalEvent
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.ledger_service import LedgerService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    body: TransactionRequest,
    db: Session = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Record an income or expense; credit purchases get their installment schedule"""
    try:
        record = ledger.record_transaction(
            body.user_id,
            body.amount,
            body.kind,
            body.occurred_on,
            category=body.category,
            payment_method=body.payment_method,
            installment_count=body.installment_count,
            description=body.description,
        )
        response = TransactionResponse(
            transaction_id=str(record.id),
            user_id=record.user_id,
            amount=record.amount,
            kind=body.kind,
            category=record.category.name,
            occurred_on=record.occurred_on,
            installments=[
                InstallmentSchema(
                    sequence=inst.sequence,
                    due_date=inst.due_date,
                    amount=inst.amount,
                    paid=inst.paid,
                )
                for inst in record.installments
            ],
        )
        db.commit()

    except (InvalidAmountError, InvalidTransactionDataError) as e:
        db.rollback()
        logger.warning(f"Invalid transaction: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return response


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    db: Session = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service),
):
    try:
        transaction_uuid = uuid.UUID(transaction_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid transaction ID format")

    try:
        ledger.delete_transaction(user_id, transaction_uuid)
        db.commit()

    except TransactionNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Transaction not found")

    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/seasonal-events", response_model=SeasonalEventResponse, status_code=201)
def create_seasonal_event(
    body: SeasonalEventRequest,
    db: Session = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Register a yearly spike or windfall the forecast should expect"""
    try:
        record = ledger.record_seasonal_event(
            body.user_id,
            SeasonalEvent(
                description=body.description,
                month=body.month,
                average_amount=body.average_amount,
                is_income=body.is_income,
                recurring_yearly=body.recurring_yearly,
            ),
        )
        response = SeasonalEventResponse(
            event_id=str(record.id),
            user_id=record.user_id,
            description=record.description,
            month=record.month,
            average_amount=record.average_amount,
            is_income=record.is_income,
            recurring_yearly=record.recurring_yearly,
        )
        db.commit()

    except (InvalidAmountError, InvalidTransactionDataError) as e:
        db.rollback()
        logger.warning(f"Invalid seasonal event: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return response
