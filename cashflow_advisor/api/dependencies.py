"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.decision_service import DecisionEngine
from cashflow_advisor.services.forecast_service import ForecastEngine
from cashflow_advisor.services.goal_impact_service import GoalImpactCalculator
from cashflow_advisor.services.health_service import HealthScoreEngine
from cashflow_advisor.services.ledger_service import LedgerService
from cashflow_advisor.services.profile_service import ProfileCalculator
from cashflow_advisor.utils.date_utils import utc_now


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings() -> Settings:
    return settings


def get_clock() -> Callable[[], datetime]:
    """Time source for the engines; overridden in tests"""
    return utc_now


def get_profile_calculator(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ProfileCalculator:
    return ProfileCalculator(db, app_settings, clock)


def get_health_engine(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> HealthScoreEngine:
    return HealthScoreEngine(db, app_settings, clock)


def get_goal_impact_calculator(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> GoalImpactCalculator:
    return GoalImpactCalculator(db, app_settings, clock)


def get_decision_engine(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> DecisionEngine:
    return DecisionEngine(db, app_settings, clock)


def get_forecast_engine(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ForecastEngine:
    return ForecastEngine(db, app_settings, clock)


def get_ledger_service(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> LedgerService:
    return LedgerService(db, app_settings, clock)
