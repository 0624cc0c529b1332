"""POST /v1/simulation and GET /v1/simulation/history - purchase forecasts"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from cashflow_advisor.api.v1.schemas import (
    SimulationHistoryResponse,
    SimulationRequestSchema,
    SimulationResponse,
)
from cashflow_advisor.api.dependencies import get_forecast_engine, get_request_id
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.domain.models import SimulationRequest
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.forecast_service import ForecastEngine

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/simulation", response_model=SimulationResponse)
def create_simulation(
    request_body: SimulationRequestSchema,
    request: Request,
    db: Session = Depends(get_db),
    engine: ForecastEngine = Depends(get_forecast_engine),
):
    """
    Simulate a purchase over the next 12 months and store the result.

    Returns:
        Monthly projection, risk, recommendation and, for credit purchases in
        installments, the alternative installment counts
    """
    request_id = get_request_id(request)

    try:
        simulation = engine.simulate(
            request_body.user_id,
            SimulationRequest(
                description=request_body.description,
                amount=request_body.amount,
                payment_method=request_body.payment_method,
                installment_count=request_body.installment_count,
                card_id=request_body.card_id,
                planned_date=request_body.planned_date,
            ),
            request_id=request_id,
        )
        db.commit()

    except InvalidAmountError as e:
        db.rollback()
        logger.warning(f"Invalid amount: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return SimulationResponse.model_validate(simulation)


@router.get("/simulation/history", response_model=SimulationHistoryResponse)
def get_simulation_history(
    user_id: str = Query(..., min_length=1, description="User identifier"),
    engine: ForecastEngine = Depends(get_forecast_engine),
):
    """Retrieve the user's stored simulations, newest first"""
    simulations = engine.history(user_id)
    return SimulationHistoryResponse(
        user_id=user_id,
        simulations=[SimulationResponse.model_validate(s) for s in simulations],
    )
