"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cashflow_advisor.domain.models import (
    Confidence,
    DecisionLayer,
    DetailedRisk,
    FactorImpact,
    HealthClassification,
    PaymentMethod,
    Recommendation,
    RiskLevel,
    TransactionKind,
    Verdict,
)


class FromDomain(BaseModel):
    """Base for responses built from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


# Profile


class ProfileResponse(FromDomain):
    """Response for GET /v1/profile"""

    user_id: str
    average_monthly_income: Decimal
    average_monthly_expense: Decimal
    average_monthly_balance: Decimal
    fixed_expense_estimate: Decimal
    variable_expense_estimate: Decimal
    open_installment_total: Decimal
    open_installment_count: int
    days_of_history: int
    months_with_data: int
    expense_volatility: Decimal
    confidence: Confidence
    updated_at: Optional[datetime] = None


class UserRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="User identifier")


class InvalidateResponse(BaseModel):
    user_id: str
    invalidated: bool


# Health score


class HealthFactorSchema(FromDomain):
    name: str
    weight: Decimal
    value: Decimal
    impact: FactorImpact
    description: str


class HealthScoreResponse(FromDomain):
    """Response for POST /v1/health-score"""

    score: Decimal
    classification: HealthClassification
    factors: List[HealthFactorSchema]
    updated_at: datetime
    negative_months: int
    income_commitment_pct: Decimal
    expense_trend_pct: Decimal
    summary: str


class CurrentScoreResponse(BaseModel):
    user_id: str
    score: Decimal


# Goal impact


class GoalImpactRequest(BaseModel):
    """Request body for POST /v1/goal-impact"""

    user_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Hypothetical expense amount")


class GoalImpactSchema(FromDomain):
    goal_name: str
    delay_months: int
    monthly_required_before: Decimal
    monthly_required_after: Decimal
    reserve_below_minimum: bool
    description: str


class GoalImpactResponse(BaseModel):
    user_id: str
    impacts: List[GoalImpactSchema]


# Decision


class DecisionRequest(BaseModel):
    """Request body for POST /v1/decision"""

    user_id: str = Field(..., min_length=1, description="User identifier")
    amount: Decimal = Field(..., gt=0, description="Purchase amount")
    description: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    payment_method: Optional[str] = None
    installments: int = Field(1, ge=1, le=48)


class LayerVoteSchema(FromDomain):
    layer: DecisionLayer
    verdict: Verdict
    rationale: str


class QuickDecisionSchema(FromDomain):
    verdict: Verdict
    can_spend: bool
    amount: Decimal
    free_balance: Decimal
    month_expense: Decimal
    projected_income: Decimal
    days_remaining: int
    free_balance_pct: Decimal
    goal_reserve: Decimal
    layers: List[LayerVoteSchema]
    health_score: Decimal
    variation_vs_history_pct: Decimal
    limit_alert: Optional[str] = None
    goal_impacts: Optional[List[GoalImpactSchema]] = None
    summary: str


class PurchaseScenarioSchema(FromDomain):
    installments: int
    installment_amount: Decimal
    risk: RiskLevel
    monthly_slack: Decimal


class FullPurchaseSchema(FromDomain):
    amount: Decimal
    description: str
    projected_income: Decimal
    month_expense: Decimal
    free_balance: Decimal
    goal_reserve: Decimal
    days_remaining: int
    scenarios: List[PurchaseScenarioSchema]
    recommended_installments: Optional[int] = None
    recommended_risk: Optional[RiskLevel] = None
    confidence: Confidence
    report: str


class DecisionResponse(BaseModel):
    """Response for POST /v1/decision; exactly one of quick/full is set"""

    fast_path: bool
    quick: Optional[QuickDecisionSchema] = None
    full: Optional[FullPurchaseSchema] = None


# Simulation


class SimulationRequestSchema(BaseModel):
    """Request body for POST /v1/simulation"""

    user_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = Field(None, description="cash | pix | debit | credit")
    installment_count: int = Field(1, le=48)
    card_id: Optional[int] = None
    planned_date: Optional[date] = None


class ProjectionMonthSchema(FromDomain):
    month: date
    income: Decimal
    expense: Decimal
    existing_commitments: Decimal
    base_balance: Decimal
    purchase_impact: Decimal
    balance_with_purchase: Decimal
    impact_pct: Decimal


class AlternativeScenarioSchema(FromDomain):
    installments: int
    installment_amount: Decimal
    risk: RiskLevel
    lowest_balance: Decimal
    worst_month: date


class SeasonalEventSchema(FromDomain):
    description: str
    month: int
    average_amount: Decimal
    is_income: bool
    recurring_yearly: bool


class SimulationResponse(FromDomain):
    """Response for POST /v1/simulation and items of the history"""

    id: Optional[UUID] = None
    description: str
    amount: Decimal
    payment_method: PaymentMethod
    installment_count: int
    card_id: Optional[int] = None
    planned_date: date
    risk: RiskLevel
    detailed_risk: Optional[DetailedRisk] = None
    confidence: Confidence
    recommendation: Recommendation
    lowest_balance: Decimal
    worst_month: date
    average_slack: Decimal
    negative_month_probability: Decimal
    minimum_reserve_gap: Decimal
    health_score: Decimal
    months: List[ProjectionMonthSchema]
    alternatives: Optional[List[AlternativeScenarioSchema]] = None
    best_alternative: Optional[AlternativeScenarioSchema] = None
    goal_impacts: Optional[List[GoalImpactSchema]] = None
    seasonal_events: Optional[List[SeasonalEventSchema]] = None
    summary: str
    created_at: Optional[datetime] = None


class SimulationHistoryResponse(BaseModel):
    """Response for GET /v1/simulation/history"""

    user_id: str
    simulations: List[SimulationResponse]


# Ledger


class TransactionRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    user_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    kind: TransactionKind
    occurred_on: date
    category: Optional[str] = Field(None, max_length=100)
    payment_method: PaymentMethod = PaymentMethod.UNSPECIFIED
    installment_count: int = Field(1, ge=1, le=48)
    description: Optional[str] = Field(None, max_length=200)


class InstallmentSchema(BaseModel):
    sequence: int
    due_date: date
    amount: Decimal
    paid: bool = False


class TransactionResponse(BaseModel):
    transaction_id: str
    user_id: str
    amount: Decimal
    kind: TransactionKind
    category: str
    occurred_on: date
    installments: List[InstallmentSchema]


class SeasonalEventRequest(BaseModel):
    """Request body for POST /v1/seasonal-events"""

    user_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=200)
    month: int = Field(..., ge=1, le=12)
    average_amount: Decimal = Field(..., gt=0)
    is_income: bool = False
    recurring_yearly: bool = True


class SeasonalEventResponse(SeasonalEventSchema):
    event_id: str
    user_id: str
