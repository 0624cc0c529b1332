"""POST /v1/goal-impact - delay a hypothetical expense causes on active goals"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cashflow_advisor.api.v1.schemas import GoalImpactRequest, GoalImpactResponse, GoalImpactSchema
from cashflow_advisor.api.dependencies import get_goal_impact_calculator
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.goal_impact_service import GoalImpactCalculator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/goal-impact", response_model=GoalImpactResponse)
def compute_goal_impact(
    body: GoalImpactRequest,
    db: Session = Depends(get_db),
    calculator: GoalImpactCalculator = Depends(get_goal_impact_calculator),
):
    try:
        impacts = calculator.compute(body.user_id, body.amount)
        db.commit()

    except InvalidAmountError as e:
        db.rollback()
        logger.warning(f"Invalid amount: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logger.error(f"Goal impact failed: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return GoalImpactResponse(
        user_id=body.user_id,
        impacts=[GoalImpactSchema.model_validate(i) for i in impacts],
    )
