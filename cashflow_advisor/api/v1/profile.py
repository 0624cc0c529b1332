"""GET /v1/profile and POST /v1/profile/invalidate - financial profile endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cashflow_advisor.api.v1.schemas import InvalidateResponse, ProfileResponse, UserRequest
from cashflow_advisor.api.dependencies import get_profile_calculator
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.profile_service import ProfileCalculator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    user_id: str = Query(..., min_length=1, description="User identifier"),
    db: Session = Depends(get_db),
    calculator: ProfileCalculator = Depends(get_profile_calculator),
):
    """
    Return the user's financial profile.

    A missing or invalidated profile is recomputed from the full ledger
    and stored before returning.
    """
    try:
        profile = calculator.get_or_compute(user_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Profile computation failed: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ProfileResponse.model_validate(profile)


@router.post("/profile/invalidate", response_model=InvalidateResponse)
def invalidate_profile(
    body: UserRequest,
    db: Session = Depends(get_db),
    calculator: ProfileCalculator = Depends(get_profile_calculator),
):
    """Flag the profile for recompute on next read (no-op when none exists)"""
    try:
        invalidated = calculator.invalidate(body.user_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Profile invalidation failed: {e}", extra={"user_id": body.user_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return InvalidateResponse(user_id=body.user_id, invalidated=invalidated)
