"""POST /v1/health-score and GET /v1/health-score/current"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cashflow_advisor.api.v1.schemas import CurrentScoreResponse, HealthScoreResponse, UserRequest
from cashflow_advisor.api.dependencies import get_health_engine
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.health_service import HealthScoreEngine

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/health-score", response_model=HealthScoreResponse)
def compute_health_score(
    body: UserRequest,
    db: Session = Depends(get_db),
    engine: HealthScoreEngine = Depends(get_health_engine),
):
    """Recompute the score with its six factors and a plain-language summary"""
    try:
        snapshot = engine.compute(body.user_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Health score computation failed: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return HealthScoreResponse.model_validate(snapshot)


@router.get("/health-score/current", response_model=CurrentScoreResponse)
def get_current_score(
    user_id: str = Query(..., min_length=1, description="User identifier"),
    db: Session = Depends(get_db),
    engine: HealthScoreEngine = Depends(get_health_engine),
):
    """Cached score when computed within the cache window, otherwise a fresh one"""
    try:
        score = engine.current_score(user_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Health score lookup failed: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return CurrentScoreResponse(user_id=user_id, score=score)
