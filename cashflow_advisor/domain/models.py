"""Domain models - pure Python dataclasses and enums representing business entities"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from cashflow_advisor.utils.money import ZERO


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    CASH = "cash"
    DEBIT = "debit"
    CREDIT = "credit"
    UNSPECIFIED = "unspecified"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Verdict(str, Enum):
    """Spend verdict, ordered from most to least permissive"""

    PROCEED = "proceed"
    CAUTION = "caution"
    HOLD = "hold"


class DecisionLayer(str, Enum):
    MATHEMATICAL = "mathematical"
    HISTORICAL = "historical"
    TREND = "trend"
    BEHAVIORAL = "behavioral"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DetailedRisk(str, Enum):
    SAFE = "safe"
    MODERATE = "moderate"
    RISKY = "risky"
    CRITICAL = "critical"


class Recommendation(str, Enum):
    PROCEED = "proceed"
    ADJUST_INSTALLMENTS = "adjust_installments"
    POSTPONE = "postpone"
    REDUCE_AMOUNT = "reduce_amount"


class HealthClassification(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class FactorImpact(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class GoalKind(str, Enum):
    ACCUMULATE_AMOUNT = "accumulate_amount"
    REDUCE_SPENDING = "reduce_spending"
    MONTHLY_RESERVE = "monthly_reserve"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Transaction:
    """Ledger entry as read by the engine"""

    id: UUID
    user_id: str
    amount: Decimal
    kind: TransactionKind
    category: str
    payment_method: PaymentMethod
    occurred_on: date
    installment_count: int = 1
    created_at: Optional[datetime] = None

    @property
    def is_installment(self) -> bool:
        return self.installment_count > 1


@dataclass
class Installment:
    """Single payment of an installment series"""

    due_date: date
    amount: Decimal
    sequence: int = 1
    total_in_series: int = 1
    paid: bool = False
    transaction_id: Optional[UUID] = None


@dataclass
class Goal:
    name: str
    kind: GoalKind
    target_amount: Decimal
    current_amount: Decimal
    deadline: date
    status: GoalStatus = GoalStatus.ACTIVE

    @property
    def remaining(self) -> Decimal:
        return self.target_amount - self.current_amount


@dataclass
class SeasonalEvent:
    """Yearly spike or windfall (vehicle tax, insurance, 13th salary) in a fixed calendar month"""

    description: str
    month: int
    average_amount: Decimal
    is_income: bool = False
    recurring_yearly: bool = True

    @property
    def signed_amount(self) -> Decimal:
        """Extra expense for the month; windfalls count negative"""
        return -self.average_amount if self.is_income else self.average_amount


@dataclass
class MonthlyAnalysis:
    """Per-month aggregate persisted for downstream reporting"""

    month: date
    total_income: Decimal
    total_expense: Decimal
    fixed_expense: Decimal
    variable_expense: Decimal
    installment_total: Decimal

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


@dataclass
class FinancialProfile:
    """Smoothed per-user summary of income/expense behavior"""

    user_id: str
    average_monthly_income: Decimal = ZERO
    average_monthly_expense: Decimal = ZERO
    fixed_expense_estimate: Decimal = ZERO
    variable_expense_estimate: Decimal = ZERO
    open_installment_total: Decimal = ZERO
    open_installment_count: int = 0
    days_of_history: int = 0
    months_with_data: int = 0
    expense_volatility: Decimal = ZERO
    confidence: Confidence = Confidence.LOW
    dirty: bool = False
    updated_at: Optional[datetime] = None

    @property
    def average_monthly_balance(self) -> Decimal:
        return self.average_monthly_income - self.average_monthly_expense


@dataclass
class HealthFactor:
    name: str
    weight: Decimal
    value: Decimal
    impact: FactorImpact
    description: str


@dataclass
class HealthScoreSnapshot:
    score: Decimal
    classification: HealthClassification
    factors: List[HealthFactor]
    updated_at: datetime
    negative_months: int = 0
    income_commitment_pct: Decimal = ZERO
    expense_trend_pct: Decimal = ZERO
    summary: str = ""


@dataclass
class GoalImpact:
    goal_name: str
    delay_months: int
    monthly_required_before: Decimal
    monthly_required_after: Decimal
    reserve_below_minimum: bool
    description: str


@dataclass
class LayerVote:
    layer: DecisionLayer
    verdict: Verdict
    rationale: str


@dataclass
class DecisionResult:
    """Outcome of a quick spend evaluation (transient, never persisted as-is)"""

    verdict: Verdict
    amount: Decimal
    free_balance: Decimal
    month_expense: Decimal
    projected_income: Decimal
    days_remaining: int
    free_balance_pct: Decimal
    goal_reserve: Decimal
    layers: List[LayerVote]
    health_score: Decimal = ZERO
    variation_vs_history_pct: Decimal = ZERO
    limit_alert: Optional[str] = None
    goal_impacts: Optional[List[GoalImpact]] = None
    summary: str = ""

    @property
    def can_spend(self) -> bool:
        return self.verdict != Verdict.HOLD


@dataclass
class PurchaseScenario:
    """One row of the at-once vs installments comparison"""

    installments: int
    installment_amount: Decimal
    risk: RiskLevel
    monthly_slack: Decimal


@dataclass
class FullPurchaseAnalysis:
    amount: Decimal
    description: str
    projected_income: Decimal
    month_expense: Decimal
    free_balance: Decimal
    goal_reserve: Decimal
    days_remaining: int
    scenarios: List[PurchaseScenario]
    recommended_installments: Optional[int]
    recommended_risk: Optional[RiskLevel]
    confidence: Confidence
    report: str = ""

    @property
    def at_once(self) -> PurchaseScenario:
        return self.scenarios[0]


@dataclass
class SimulationRequest:
    description: str
    amount: Decimal
    payment_method: Optional[str] = None
    installment_count: int = 1
    card_id: Optional[int] = None
    planned_date: Optional[date] = None


@dataclass
class ProjectionMonth:
    month: date
    income: Decimal
    expense: Decimal
    existing_commitments: Decimal
    base_balance: Decimal
    purchase_impact: Decimal
    balance_with_purchase: Decimal
    impact_pct: Decimal


@dataclass
class AlternativeScenario:
    installments: int
    installment_amount: Decimal
    risk: RiskLevel
    lowest_balance: Decimal
    worst_month: date


@dataclass
class Simulation:
    """Persisted purchase simulation (immutable after creation)"""

    description: str
    amount: Decimal
    payment_method: PaymentMethod
    installment_count: int
    planned_date: date
    risk: RiskLevel
    confidence: Confidence
    recommendation: Recommendation
    lowest_balance: Decimal
    worst_month: date
    average_slack: Decimal
    months: List[ProjectionMonth]
    card_id: Optional[int] = None
    id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    detailed_risk: Optional[DetailedRisk] = None
    negative_month_probability: Decimal = ZERO
    minimum_reserve_gap: Decimal = ZERO
    health_score: Decimal = ZERO
    alternatives: Optional[List[AlternativeScenario]] = None
    best_alternative: Optional[AlternativeScenario] = None
    goal_impacts: Optional[List[GoalImpact]] = None
    seasonal_events: Optional[List[SeasonalEvent]] = None
    summary: str = ""
