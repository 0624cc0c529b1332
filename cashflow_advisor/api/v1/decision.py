"""POST /v1/decision - spend decision endpoint"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cashflow_advisor.api.v1.schemas import (
    DecisionRequest,
    DecisionResponse,
    FullPurchaseSchema,
    QuickDecisionSchema,
)
from cashflow_advisor.api.dependencies import get_decision_engine, get_request_id
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.infrastructure.observability.logging import log_decision
from cashflow_advisor.services.decision_service import FULL_PURCHASE, QUICK_SPEND, DecisionEngine

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/decision", response_model=DecisionResponse)
def create_decision(
    request_body: DecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    engine: DecisionEngine = Depends(get_decision_engine),
):
    """
    Decide whether the user can afford a purchase right now.

    Flow:
    1. Small single-payment purchases get the quick four-layer verdict
    2. Everything else gets the at-once vs installments comparison
    3. The decision is audited and the transaction committed
    """
    start_time = time.time()
    request_id = get_request_id(request)
    user_id = request_body.user_id

    try:
        fast_path = engine.should_use_fast_path(
            user_id, request_body.amount, request_body.installments > 1
        )

        if fast_path:
            result = engine.evaluate_quick_spend(
                user_id,
                request_body.amount,
                description=request_body.description,
                category=request_body.category,
            )
            response = DecisionResponse(fast_path=True, quick=QuickDecisionSchema.model_validate(result))
            kind, outcome = QUICK_SPEND, result.verdict.value
        else:
            analysis = engine.evaluate_full_purchase(
                user_id,
                request_body.amount,
                request_body.description or "Purchase",
                payment_method=request_body.payment_method,
                installments=request_body.installments,
            )
            response = DecisionResponse(fast_path=False, full=FullPurchaseSchema.model_validate(analysis))
            kind = FULL_PURCHASE
            outcome = analysis.recommended_risk.value if analysis.recommended_risk else "postpone"

        db.commit()

    except InvalidAmountError as e:
        db.rollback()
        logger.warning(f"Invalid amount: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    log_decision(user_id, kind, request_body.amount, outcome, duration_ms, request_id=request_id)
    return response
