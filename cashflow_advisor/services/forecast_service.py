"""Forecast engine - 12-month purchase simulation, persisted for history"""

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings as default_settings
from cashflow_advisor.domain.decision import effective_income
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.domain.forecast import (
    HORIZON_MONTHS,
    alternative_scenarios,
    average_slack,
    best_alternative,
    classify_detailed_risk,
    classify_risk,
    commitments_by_month,
    events_in_horizon,
    format_simulation_summary,
    minimum_reserve_gap,
    negative_month_probability,
    parse_payment_method,
    project_months,
    recommend,
    seasonal_adjustment_by_month,
    worst_month,
)
from cashflow_advisor.domain.installments import purchase_impact_by_month
from cashflow_advisor.domain.models import PaymentMethod, Simulation, SimulationRequest
from cashflow_advisor.infrastructure.database.repositories import (
    DecisionLogRepository,
    InstallmentRepository,
    SeasonalEventRepository,
    SimulationRepository,
    UserRepository,
)
from cashflow_advisor.infrastructure.observability.logging import log_simulation
from cashflow_advisor.infrastructure.observability.metrics import record_simulation
from cashflow_advisor.services.enrichment import best_effort
from cashflow_advisor.services.goal_impact_service import GoalImpactCalculator
from cashflow_advisor.services.health_service import HealthScoreEngine
from cashflow_advisor.services.profile_service import ProfileCalculator
from cashflow_advisor.utils.date_utils import add_months, month_start, utc_now
from cashflow_advisor.utils.money import ZERO

logger = logging.getLogger(__name__)

PURCHASE_SIMULATION = "purchase_simulation"


class ForecastEngine:
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
        self.installments = InstallmentRepository(db)
        self.seasonal_events = SeasonalEventRepository(db)
        self.simulations = SimulationRepository(db)
        self.audit = DecisionLogRepository(db)

    def simulate(self, user_id: str, request: SimulationRequest, request_id: Optional[str] = None) -> Simulation:
        """
        Project the next 12 months with and without the purchase.

        Flow:
        1. Normalize inputs (installments >= 1, payment method, planned date)
        2. Project monthly balances from the profile, open installments and
           seasonal events (best-effort)
        3. Classify risk and pick a recommendation
        4. For credit in installments, compare the standard installment counts
        5. Enrich with health score and goal impacts (best-effort)
        6. Persist the simulation and append the audit record
        """
        start_time = time.time()
        if request.amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {request.amount}")

        now = self.clock()
        today = now.date()
        profile = self.profile_calculator.get_or_compute(user_id)

        method = parse_payment_method(request.payment_method)
        installments = max(1, request.installment_count)
        planned_date = request.planned_date or today
        is_credit = method == PaymentMethod.CREDIT

        income = effective_income(self.users.get_declared_income(user_id), profile.average_monthly_income)
        expense = profile.average_monthly_expense
        horizon_start = month_start(today)
        commitments = commitments_by_month(
            self.installments.unpaid_due_between(user_id, today, add_months(horizon_start, HORIZON_MONTHS))
        )
        impact = purchase_impact_by_month(request.amount, is_credit, installments, planned_date)

        events = best_effort(self.db, "seasonal_events", user_id, lambda: self.seasonal_events.list_by_user(user_id))
        seasonal = seasonal_adjustment_by_month(events or [], horizon_start)

        rows = project_months(horizon_start, income, expense, commitments, impact, seasonal_by_month=seasonal)
        worst = worst_month(rows)
        lowest = worst.balance_with_purchase
        volatility = profile.expense_volatility

        risk = classify_risk(lowest, income, volatility, profile.confidence)

        alternatives = None
        best = None
        if is_credit and installments > 1:
            alternatives = alternative_scenarios(
                horizon_start,
                request.amount,
                planned_date,
                income,
                expense,
                commitments,
                volatility,
                profile.confidence,
                seasonal_by_month=seasonal,
            )
            best = best_alternative(alternatives, installments)

        health_score = best_effort(
            self.db, "health_score", user_id, lambda: self.health_engine.current_score(user_id)
        )
        goal_impacts = best_effort(
            self.db, "goal_impact", user_id, lambda: self.goal_impact_calculator.compute(user_id, request.amount)
        )

        simulation = Simulation(
            description=request.description,
            amount=request.amount,
            payment_method=method,
            installment_count=installments,
            card_id=request.card_id,
            planned_date=planned_date,
            risk=risk,
            confidence=profile.confidence,
            recommendation=recommend(risk, installments, request.amount, income),
            lowest_balance=lowest,
            worst_month=worst.month,
            average_slack=average_slack(rows),
            months=rows,
            created_at=now,
            detailed_risk=classify_detailed_risk(lowest, income, volatility, profile.confidence),
            negative_month_probability=negative_month_probability(rows),
            minimum_reserve_gap=minimum_reserve_gap(lowest, income),
            health_score=health_score if health_score is not None else ZERO,
            alternatives=alternatives,
            best_alternative=best,
            goal_impacts=goal_impacts,
            seasonal_events=events_in_horizon(events, horizon_start) if events else None,
        )
        simulation.summary = format_simulation_summary(simulation, profile.days_of_history)

        record = self.simulations.create(user_id, simulation)
        simulation.id = record.id

        best_effort(
            self.db,
            "decision_audit",
            user_id,
            lambda: self.audit.append(
                user_id=user_id,
                kind=PURCHASE_SIMULATION,
                amount=request.amount,
                outcome=risk.value,
                created_at=now,
                description=request.description,
                rationale=f"Lowest balance {lowest:,.2f} in {worst.month:%m/%Y}",
                inputs={
                    "amount": str(request.amount),
                    "payment_method": method.value,
                    "installments": installments,
                    "planned_date": planned_date.isoformat(),
                    "simulation_id": str(record.id),
                },
            ),
        )

        record_simulation(risk.value)
        log_simulation(
            user_id,
            str(record.id),
            request.amount,
            installments,
            risk.value,
            (time.time() - start_time) * 1000,
            request_id=request_id,
        )
        return simulation

    def history(self, user_id: str) -> List[Simulation]:
        """Persisted simulations, newest first"""
        return self.simulations.list_by_user(user_id)
