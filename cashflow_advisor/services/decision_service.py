"""Decision engine - "can I spend this?" for small expenses and large purchases"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings as default_settings
from cashflow_advisor.domain.decision import (
    HISTORY_MONTHS,
    baseline_verdict,
    behavioral_vote,
    build_purchase_scenarios,
    category_limit_alert,
    consolidate,
    effective_income,
    endpoint_trend_pct,
    format_full_report,
    format_quick_summary,
    free_balance,
    free_balance_ratio,
    historical_variation,
    historical_vote,
    recommend_installments,
    should_use_fast_path as fast_path_applies,
    trend_vote,
)
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.domain.goals import monthly_goal_reserve
from cashflow_advisor.domain.models import (
    DecisionLayer,
    DecisionResult,
    FinancialProfile,
    FullPurchaseAnalysis,
    GoalStatus,
    LayerVote,
)
from cashflow_advisor.domain.profile import mean
from cashflow_advisor.infrastructure.database.repositories import (
    BehavioralProfileRepository,
    CategoryRepository,
    DecisionLogRepository,
    GoalRepository,
    InstallmentRepository,
    TransactionRepository,
    UserRepository,
)
from cashflow_advisor.infrastructure.observability.metrics import record_decision
from cashflow_advisor.services.enrichment import best_effort
from cashflow_advisor.services.goal_impact_service import GoalImpactCalculator
from cashflow_advisor.services.health_service import HealthScoreEngine
from cashflow_advisor.services.profile_service import ProfileCalculator
from cashflow_advisor.utils.date_utils import (
    add_months,
    days_in_month,
    days_left_in_month,
    month_start,
    utc_now,
)
from cashflow_advisor.utils.money import ZERO, round_money, round_to, total

logger = logging.getLogger(__name__)

QUICK_SPEND = "quick_spend"
FULL_PURCHASE = "full_purchase"

RECENT_QUERY_WINDOW = timedelta(days=30)


@dataclass
class MonthBudget:
    """Where the current month stands before the purchase"""

    today: date
    profile: FinancialProfile
    effective_income: Decimal
    projected_income: Decimal
    month_expense: Decimal
    commitments: Decimal
    goal_reserve: Decimal
    free_balance: Decimal
    days_remaining: int
    month_days: int


class DecisionEngine:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
        profile_calculator: Optional[ProfileCalculator] = None,
        health_engine: Optional[HealthScoreEngine] = None,
        goal_impact_calculator: Optional[GoalImpactCalculator] = None,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock
        self.profile_calculator = profile_calculator or ProfileCalculator(db, settings, clock)
        self.health_engine = health_engine or HealthScoreEngine(db, settings, clock, self.profile_calculator)
        self.goal_impact_calculator = goal_impact_calculator or GoalImpactCalculator(
            db, settings, clock, self.profile_calculator
        )
        self.users = UserRepository(db)
        self.transactions = TransactionRepository(db)
        self.installments = InstallmentRepository(db)
        self.categories = CategoryRepository(db)
        self.goals = GoalRepository(db)
        self.behavioral = BehavioralProfileRepository(db)
        self.audit = DecisionLogRepository(db)

    def month_budget(self, user_id: str) -> MonthBudget:
        """
        Free balance this month.

        free = projected income - month expense - commitments - goal reserve,
        where projected income is the income already booked this month, or the
        effective income when nothing has been booked yet.
        """
        profile = self.profile_calculator.get_or_compute(user_id)
        today = self.clock().date()
        start = month_start(today)
        next_month = add_months(start, 1)

        income = effective_income(self.users.get_declared_income(user_id), profile.average_monthly_income)
        booked_income, month_expense = self.transactions.totals_between(user_id, start, next_month)
        projected = booked_income if booked_income > 0 else income

        commitments = total(i.amount for i in self.installments.unpaid_due_between(user_id, today, next_month))
        reserve = monthly_goal_reserve(self.goals.list_by_status(user_id, GoalStatus.ACTIVE), today)

        return MonthBudget(
            today=today,
            profile=profile,
            effective_income=income,
            projected_income=projected,
            month_expense=month_expense,
            commitments=commitments,
            goal_reserve=reserve,
            free_balance=free_balance(projected, month_expense, commitments, reserve),
            days_remaining=days_left_in_month(today),
            month_days=days_in_month(today.year, today.month),
        )

    def should_use_fast_path(self, user_id: str, amount: Decimal, is_installment: bool) -> bool:
        """True for the quick layered verdict, False for the full comparison"""
        if is_installment:
            return False
        budget = self.month_budget(user_id)
        return fast_path_applies(amount, budget.effective_income, budget.free_balance, is_installment)

    def _previous_month_expenses(self, user_id: str, today: date) -> List[Decimal]:
        """Expense totals of the previous months, newest first: [m-1, m-2, m-3]"""
        current = month_start(today)
        by_month = self.transactions.monthly_totals(user_id, add_months(current, -HISTORY_MONTHS), current)
        return [
            by_month.get(add_months(current, -offset), (ZERO, ZERO))[1] for offset in range(1, HISTORY_MONTHS + 1)
        ]

    def _category_alert(self, user_id: str, category_name: str, amount: Decimal, today: date) -> Optional[str]:
        category = self.categories.find_by_name(user_id, category_name)
        if category is None:
            category = self.categories.find_by_name(user_id, self.settings.fallback_category)
        if category is None:
            return None

        limit = self.categories.active_limit(user_id, category.id)
        if limit is None:
            return None

        start = month_start(today)
        spent = self.transactions.category_expense_between(user_id, category.id, start, add_months(start, 1))
        return category_limit_alert(category.name, spent, amount, limit)

    def _record_query(self, user_id: str) -> None:
        now = self.clock()
        recent = self.audit.count_since(user_id, now - RECENT_QUERY_WINDOW)
        self.behavioral.record_decision_query(user_id, recent, now)

    def evaluate_quick_spend(
        self,
        user_id: str,
        amount: Decimal,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> DecisionResult:
        """
        Four-layer verdict for a small single-payment expense.

        Layers:
        1. Mathematical - free balance this month (hard ceiling)
        2. Historical - month spending vs the mean of the previous 3 months
        3. Trend - growth of spending over the last 3 months
        4. Behavioral - current health score

        Goal impact, the usage counter and the audit record are best-effort.
        """
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")

        budget = self.month_budget(user_id)
        balance = budget.free_balance
        ratio = free_balance_ratio(amount, balance)

        alert = None
        if category and category.strip():
            alert = self._category_alert(user_id, category, amount, budget.today)

        math_verdict = baseline_verdict(
            amount, balance, budget.projected_income, budget.days_remaining, budget.month_days
        )
        votes = [
            LayerVote(
                DecisionLayer.MATHEMATICAL,
                math_verdict,
                f"Free balance {balance:,.2f}, purchase takes {round_to(ratio * 100, 1)}%",
            )
        ]

        previous = self._previous_month_expenses(user_id, budget.today)
        historical_mean = mean(e for e in previous if e > 0)
        variation = historical_variation(budget.month_expense, amount, historical_mean)
        votes.append(
            LayerVote(
                DecisionLayer.HISTORICAL,
                historical_vote(variation),
                (
                    f"Month spending with this purchase would be {variation:.1f}% vs the average of {historical_mean:,.2f}"
                    if historical_mean > 0
                    else "Not enough history to compare"
                ),
            )
        )

        trend = endpoint_trend_pct(previous)
        votes.append(
            LayerVote(DecisionLayer.TREND, trend_vote(trend), f"Spending trend over the last 3 months: {trend}%")
        )

        score = self.health_engine.current_score(user_id)
        votes.append(
            LayerVote(DecisionLayer.BEHAVIORAL, behavioral_vote(score), f"Financial health score: {score:.0f}/100")
        )

        verdict = consolidate(votes)

        impacts = best_effort(
            self.db, "goal_impact", user_id, lambda: self.goal_impact_calculator.compute(user_id, amount)
        )
        best_effort(self.db, "decision_query_counter", user_id, lambda: self._record_query(user_id))

        result = DecisionResult(
            verdict=verdict,
            amount=amount,
            free_balance=balance,
            month_expense=budget.month_expense,
            projected_income=budget.projected_income,
            days_remaining=budget.days_remaining,
            free_balance_pct=round_to(ratio * 100, 1),
            goal_reserve=budget.goal_reserve,
            layers=votes,
            health_score=score,
            variation_vs_history_pct=round_to(variation, 1),
            limit_alert=alert,
            goal_impacts=impacts,
        )
        result.summary = format_quick_summary(result, description)

        best_effort(
            self.db,
            "decision_audit",
            user_id,
            lambda: self.audit.append(
                user_id=user_id,
                kind=QUICK_SPEND,
                amount=amount,
                outcome=verdict.value,
                created_at=self.clock(),
                description=description,
                rationale="Layers: " + ", ".join(f"{v.layer.value}={v.verdict.value}" for v in votes),
                inputs={
                    "amount": str(amount),
                    "description": description,
                    "category": category,
                    "free_balance": str(balance),
                    "score": str(score),
                },
            ),
        )

        record_decision(QUICK_SPEND, verdict.value)
        logger.info(
            "Quick spend evaluated",
            extra={"user_id": user_id, "amount": str(amount), "verdict": verdict.value, "free_balance": str(balance)},
        )
        return result

    def evaluate_full_purchase(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        payment_method: Optional[str] = None,
        installments: int = 1,
    ) -> FullPurchaseAnalysis:
        """At-once vs installment comparison for a large purchase"""
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")

        budget = self.month_budget(user_id)
        scenarios = build_purchase_scenarios(
            amount,
            budget.free_balance,
            budget.effective_income,
            budget.profile.average_monthly_expense,
            budget.commitments,
        )
        recommended, risk = recommend_installments(scenarios)

        analysis = FullPurchaseAnalysis(
            amount=amount,
            description=description,
            projected_income=budget.projected_income,
            month_expense=budget.month_expense,
            free_balance=round_money(budget.free_balance),
            goal_reserve=budget.goal_reserve,
            days_remaining=budget.days_remaining,
            scenarios=scenarios,
            recommended_installments=recommended,
            recommended_risk=risk,
            confidence=budget.profile.confidence,
        )
        analysis.report = format_full_report(analysis)

        outcome = risk.value if risk is not None else "postpone"
        best_effort(
            self.db,
            "decision_audit",
            user_id,
            lambda: self.audit.append(
                user_id=user_id,
                kind=FULL_PURCHASE,
                amount=amount,
                outcome=outcome,
                created_at=self.clock(),
                description=description,
                rationale=(
                    f"Recommended {recommended}x" if recommended is not None else "No installment option is safe"
                ),
                inputs={
                    "amount": str(amount),
                    "description": description,
                    "payment_method": payment_method,
                    "installments": installments,
                    "free_balance": str(budget.free_balance),
                },
            ),
        )

        record_decision(FULL_PURCHASE, outcome)
        logger.info(
            "Full purchase evaluated",
            extra={"user_id": user_id, "amount": str(amount), "recommended_installments": recommended},
        )
        return analysis
