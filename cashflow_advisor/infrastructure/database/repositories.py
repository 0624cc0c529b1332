"""Data access layer for ledger and engine entities"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from cashflow_advisor.domain.models import (
    AlternativeScenario,
    Confidence,
    DetailedRisk,
    FinancialProfile,
    Goal,
    GoalImpact,
    GoalKind,
    GoalStatus,
    HealthScoreSnapshot,
    Installment,
    MonthlyAnalysis,
    PaymentMethod,
    ProjectionMonth,
    Recommendation,
    RiskLevel,
    SeasonalEvent,
    Simulation,
    Transaction,
    TransactionKind,
)
from cashflow_advisor.infrastructure.database.models import (
    BehavioralProfileRecord,
    CategoryLimitRecord,
    CategoryRecord,
    DecisionLogRecord,
    FinancialProfileRecord,
    GoalRecord,
    InstallmentRecord,
    MonthlyAnalysisRecord,
    SeasonalEventRecord,
    SimulationMonthRecord,
    SimulationRecord,
    TransactionRecord,
    UserRecord,
)
from cashflow_advisor.utils.date_utils import ensure_utc, month_start
from cashflow_advisor.utils.money import ZERO, round_money


def _to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        user_id=record.user_id,
        amount=record.amount,
        kind=TransactionKind(record.kind),
        category=record.category.name if record.category is not None else "",
        payment_method=PaymentMethod(record.payment_method),
        occurred_on=record.occurred_on,
        installment_count=record.installment_count,
        created_at=record.created_at,
    )


def _to_installment(record: InstallmentRecord) -> Installment:
    return Installment(
        due_date=record.due_date,
        amount=record.amount,
        sequence=record.sequence,
        total_in_series=record.total_in_series,
        paid=record.paid,
        transaction_id=record.transaction_id,
    )


class UserRepository:
    """Repository for account holders"""

    def __init__(self, db: Session):
        self.db = db

    def get_declared_income(self, user_id: str) -> Optional[Decimal]:
        user = self.db.get(UserRecord, user_id)
        return user.declared_monthly_income if user is not None else None

    def upsert(self, user_id: str, declared_monthly_income: Optional[Decimal] = None) -> UserRecord:
        user = self.db.get(UserRecord, user_id)
        if user is None:
            user = UserRecord(id=user_id)
            self.db.add(user)
        user.declared_monthly_income = declared_monthly_income
        self.db.flush()
        return user


class TransactionRepository:
    """Repository for ledger transactions"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_user(self, user_id: str) -> List[Transaction]:
        """Full history, oldest first"""
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.user_id == user_id)
            .order_by(TransactionRecord.occurred_on, TransactionRecord.created_at)
            .all()
        )
        return [_to_transaction(r) for r in records]

    def totals_between(self, user_id: str, start: date, end: date) -> Tuple[Decimal, Decimal]:
        """(income, expense) booked with start <= occurred_on < end"""
        rows = (
            self.db.query(TransactionRecord.kind, func.sum(TransactionRecord.amount))
            .filter(
                TransactionRecord.user_id == user_id,
                TransactionRecord.occurred_on >= start,
                TransactionRecord.occurred_on < end,
            )
            .group_by(TransactionRecord.kind)
            .all()
        )
        totals: Dict[str, Decimal] = {kind: round_money(amount or 0) for kind, amount in rows}
        return (
            totals.get(TransactionKind.INCOME.value, ZERO),
            totals.get(TransactionKind.EXPENSE.value, ZERO),
        )

    def monthly_totals(self, user_id: str, start: date, end: date) -> Dict[date, Tuple[Decimal, Decimal]]:
        """(income, expense) keyed by month start, for start <= occurred_on < end, in one query"""
        rows = (
            self.db.query(TransactionRecord.occurred_on, TransactionRecord.kind, TransactionRecord.amount)
            .filter(
                TransactionRecord.user_id == user_id,
                TransactionRecord.occurred_on >= start,
                TransactionRecord.occurred_on < end,
            )
            .all()
        )
        income: Dict[date, Decimal] = {}
        expense: Dict[date, Decimal] = {}
        for occurred_on, kind, amount in rows:
            bucket = income if kind == TransactionKind.INCOME.value else expense
            key = month_start(occurred_on)
            bucket[key] = bucket.get(key, ZERO) + amount
        return {
            month: (round_money(income.get(month, ZERO)), round_money(expense.get(month, ZERO)))
            for month in set(income) | set(expense)
        }

    def category_expense_between(
        self, user_id: str, category_id: uuid.UUID, start: date, end: date
    ) -> Decimal:
        amount = (
            self.db.query(func.sum(TransactionRecord.amount))
            .filter(
                TransactionRecord.user_id == user_id,
                TransactionRecord.category_id == category_id,
                TransactionRecord.kind == TransactionKind.EXPENSE.value,
                TransactionRecord.occurred_on >= start,
                TransactionRecord.occurred_on < end,
            )
            .scalar()
        )
        return round_money(amount or 0)

    def get(self, user_id: str, transaction_id: uuid.UUID) -> Optional[TransactionRecord]:
        return (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.id == transaction_id, TransactionRecord.user_id == user_id)
            .first()
        )

    def create(
        self,
        user_id: str,
        amount: Decimal,
        kind: TransactionKind,
        category: CategoryRecord,
        payment_method: PaymentMethod,
        occurred_on: date,
        installment_count: int,
        description: Optional[str],
        created_at: datetime,
    ) -> TransactionRecord:
        record = TransactionRecord(
            user_id=user_id,
            amount=amount,
            kind=kind.value,
            category=category,
            payment_method=payment_method.value,
            occurred_on=occurred_on,
            installment_count=installment_count,
            description=description,
            created_at=created_at,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record

    def delete(self, record: TransactionRecord) -> None:
        """Remove a transaction; its installments go with it"""
        self.db.delete(record)
        self.db.flush()


class InstallmentRepository:
    """Repository for installment schedules"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_user(self, user_id: str) -> List[Installment]:
        records = (
            self.db.query(InstallmentRecord)
            .filter(InstallmentRecord.user_id == user_id)
            .order_by(InstallmentRecord.due_date)
            .all()
        )
        return [_to_installment(r) for r in records]

    def list_by_transaction(self, transaction_id: uuid.UUID) -> List[Installment]:
        records = (
            self.db.query(InstallmentRecord)
            .filter(InstallmentRecord.transaction_id == transaction_id)
            .order_by(InstallmentRecord.sequence)
            .all()
        )
        return [_to_installment(r) for r in records]

    def unpaid_due_between(self, user_id: str, after: date, before: date) -> List[Installment]:
        """Unpaid installments with after < due_date < before (both bounds exclusive)"""
        records = (
            self.db.query(InstallmentRecord)
            .filter(
                InstallmentRecord.user_id == user_id,
                InstallmentRecord.paid.is_(False),
                InstallmentRecord.due_date > after,
                InstallmentRecord.due_date < before,
            )
            .order_by(InstallmentRecord.due_date)
            .all()
        )
        return [_to_installment(r) for r in records]

    def create_for_transaction(
        self,
        transaction: TransactionRecord,
        installments: List[Installment],
    ) -> List[InstallmentRecord]:
        records = []
        for inst in installments:
            record = InstallmentRecord(
                user_id=transaction.user_id,
                sequence=inst.sequence,
                total_in_series=inst.total_in_series,
                amount=inst.amount,
                due_date=inst.due_date,
                paid=inst.paid,
            )
            transaction.installments.append(record)
            records.append(record)
        self.db.flush()
        return records


class CategoryRepository:
    """Repository for user categories and their limits"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_name(self, user_id: str, name: str) -> Optional[CategoryRecord]:
        """Case-insensitive lookup"""
        return (
            self.db.query(CategoryRecord)
            .filter(
                CategoryRecord.user_id == user_id,
                func.lower(CategoryRecord.name) == name.strip().lower(),
            )
            .first()
        )

    def get_or_create(self, user_id: str, name: str) -> CategoryRecord:
        category = self.find_by_name(user_id, name)
        if category is None:
            category = CategoryRecord(user_id=user_id, name=name.strip())
            self.db.add(category)
            self.db.flush()
        return category

    def active_limit(self, user_id: str, category_id: uuid.UUID) -> Optional[Decimal]:
        limit = (
            self.db.query(CategoryLimitRecord)
            .filter(
                CategoryLimitRecord.user_id == user_id,
                CategoryLimitRecord.category_id == category_id,
                CategoryLimitRecord.active.is_(True),
            )
            .first()
        )
        return limit.limit_amount if limit is not None else None


class GoalRepository:
    """Repository for savings goals (read-only for the engine)"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_status(self, user_id: str, status: GoalStatus = GoalStatus.ACTIVE) -> List[Goal]:
        records = (
            self.db.query(GoalRecord)
            .filter(GoalRecord.user_id == user_id, GoalRecord.status == status.value)
            .order_by(GoalRecord.deadline)
            .all()
        )
        return [
            Goal(
                name=r.name,
                kind=GoalKind(r.kind),
                target_amount=r.target_amount,
                current_amount=r.current_amount,
                deadline=r.deadline,
                status=GoalStatus(r.status),
            )
            for r in records
        ]


class SeasonalEventRepository:
    """Repository for known yearly events"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_user(self, user_id: str) -> List[SeasonalEvent]:
        records = (
            self.db.query(SeasonalEventRecord)
            .filter(SeasonalEventRecord.user_id == user_id)
            .order_by(SeasonalEventRecord.month, SeasonalEventRecord.created_at)
            .all()
        )
        return [
            SeasonalEvent(
                description=r.description,
                month=r.month,
                average_amount=r.average_amount,
                is_income=r.is_income,
                recurring_yearly=r.recurring_yearly,
            )
            for r in records
        ]

    def create(self, user_id: str, event: SeasonalEvent) -> SeasonalEventRecord:
        record = SeasonalEventRecord(
            user_id=user_id,
            description=event.description,
            month=event.month,
            average_amount=event.average_amount,
            is_income=event.is_income,
            recurring_yearly=event.recurring_yearly,
        )
        self.db.add(record)
        self.db.flush()
        return record


class ProfileRepository:
    """Repository for cached financial profiles and monthly analyses"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[FinancialProfile]:
        record = self.db.get(FinancialProfileRecord, user_id)
        if record is None:
            return None
        return FinancialProfile(
            user_id=record.user_id,
            average_monthly_income=record.average_monthly_income,
            average_monthly_expense=record.average_monthly_expense,
            fixed_expense_estimate=record.fixed_expense_estimate,
            variable_expense_estimate=record.variable_expense_estimate,
            open_installment_total=record.open_installment_total,
            open_installment_count=record.open_installment_count,
            days_of_history=record.days_of_history,
            months_with_data=record.months_with_data,
            expense_volatility=record.expense_volatility,
            confidence=Confidence(record.confidence),
            dirty=record.dirty,
            updated_at=ensure_utc(record.updated_at) if record.updated_at else None,
        )

    def save(self, profile: FinancialProfile) -> FinancialProfileRecord:
        """Insert or overwrite the user's profile snapshot"""
        record = self.db.get(FinancialProfileRecord, profile.user_id)
        if record is None:
            record = FinancialProfileRecord(user_id=profile.user_id)
            self.db.add(record)

        record.average_monthly_income = profile.average_monthly_income
        record.average_monthly_expense = profile.average_monthly_expense
        record.fixed_expense_estimate = profile.fixed_expense_estimate
        record.variable_expense_estimate = profile.variable_expense_estimate
        record.open_installment_total = profile.open_installment_total
        record.open_installment_count = profile.open_installment_count
        record.days_of_history = profile.days_of_history
        record.months_with_data = profile.months_with_data
        record.expense_volatility = profile.expense_volatility
        record.confidence = profile.confidence.value
        record.dirty = profile.dirty
        record.updated_at = profile.updated_at
        self.db.flush()
        return record

    def mark_dirty(self, user_id: str) -> bool:
        """Flag the profile for recompute; False when the user has no profile yet"""
        record = self.db.get(FinancialProfileRecord, user_id)
        if record is None:
            return False
        record.dirty = True
        self.db.flush()
        return True

    def upsert_monthly_analyses(self, user_id: str, analyses: List[MonthlyAnalysis]) -> None:
        existing = {
            r.month: r
            for r in self.db.query(MonthlyAnalysisRecord).filter(MonthlyAnalysisRecord.user_id == user_id).all()
        }
        for analysis in analyses:
            record = existing.get(analysis.month)
            if record is None:
                record = MonthlyAnalysisRecord(user_id=user_id, month=analysis.month)
                self.db.add(record)
            record.total_income = analysis.total_income
            record.total_expense = analysis.total_expense
            record.fixed_expense = analysis.fixed_expense
            record.variable_expense = analysis.variable_expense
            record.installment_total = analysis.installment_total
            record.balance = analysis.balance
        self.db.flush()

    def list_monthly_analyses(self, user_id: str) -> List[MonthlyAnalysis]:
        records = (
            self.db.query(MonthlyAnalysisRecord)
            .filter(MonthlyAnalysisRecord.user_id == user_id)
            .order_by(MonthlyAnalysisRecord.month)
            .all()
        )
        return [
            MonthlyAnalysis(
                month=r.month,
                total_income=r.total_income,
                total_expense=r.total_expense,
                fixed_expense=r.fixed_expense,
                variable_expense=r.variable_expense,
                installment_total=r.installment_total,
            )
            for r in records
        ]


class BehavioralProfileRepository:
    """Repository for the health score cache and decision counters"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[BehavioralProfileRecord]:
        return self.db.get(BehavioralProfileRecord, user_id)

    def _get_or_create(self, user_id: str) -> BehavioralProfileRecord:
        record = self.get(user_id)
        if record is None:
            record = BehavioralProfileRecord(
                user_id=user_id,
                decision_queries_total=0,
                decision_queries_recent=0,
            )
            self.db.add(record)
        return record

    def save_health_score(self, user_id: str, snapshot: HealthScoreSnapshot) -> BehavioralProfileRecord:
        record = self._get_or_create(user_id)
        record.health_score = snapshot.score
        record.health_details = {
            "classification": snapshot.classification.value,
            "summary": snapshot.summary,
            "factors": [
                {
                    "name": f.name,
                    "weight": str(f.weight),
                    "value": str(f.value),
                    "impact": f.impact.value,
                    "description": f.description,
                }
                for f in snapshot.factors
            ],
        }
        record.health_updated_at = snapshot.updated_at
        record.negative_months = snapshot.negative_months
        record.income_commitment_pct = snapshot.income_commitment_pct
        record.expense_trend_pct = snapshot.expense_trend_pct
        record.updated_at = snapshot.updated_at
        self.db.flush()
        return record

    def record_decision_query(self, user_id: str, recent_count: int, now: datetime) -> BehavioralProfileRecord:
        record = self._get_or_create(user_id)
        record.decision_queries_total = (record.decision_queries_total or 0) + 1
        record.decision_queries_recent = recent_count
        record.updated_at = now
        self.db.flush()
        return record


class DecisionLogRepository:
    """Append-only audit log"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        user_id: str,
        kind: str,
        amount: Decimal,
        outcome: str,
        created_at: datetime,
        description: Optional[str] = None,
        rationale: Optional[str] = None,
        inputs: Optional[dict] = None,
    ) -> DecisionLogRecord:
        record = DecisionLogRecord(
            user_id=user_id,
            kind=kind,
            amount=amount,
            description=description,
            outcome=outcome,
            rationale=rationale,
            inputs=inputs,
            created_at=created_at,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def count_since(self, user_id: str, since: datetime) -> int:
        return (
            self.db.query(func.count(DecisionLogRecord.id))
            .filter(DecisionLogRecord.user_id == user_id, DecisionLogRecord.created_at >= since)
            .scalar()
        )

    def list_by_user(self, user_id: str, limit: int = 50) -> List[DecisionLogRecord]:
        """Fetch recent audit entries for a user"""
        return (
            self.db.query(DecisionLogRecord)
            .filter(DecisionLogRecord.user_id == user_id)
            .order_by(DecisionLogRecord.created_at.desc())
            .limit(limit)
            .all()
        )


def _goal_impact_to_json(impact: GoalImpact) -> dict:
    return {
        "goal_name": impact.goal_name,
        "delay_months": impact.delay_months,
        "monthly_required_before": str(impact.monthly_required_before),
        "monthly_required_after": str(impact.monthly_required_after),
        "reserve_below_minimum": impact.reserve_below_minimum,
        "description": impact.description,
    }


def _goal_impact_from_json(data: dict) -> GoalImpact:
    return GoalImpact(
        goal_name=data["goal_name"],
        delay_months=data["delay_months"],
        monthly_required_before=Decimal(data["monthly_required_before"]),
        monthly_required_after=Decimal(data["monthly_required_after"]),
        reserve_below_minimum=data["reserve_below_minimum"],
        description=data["description"],
    )


def _scenario_to_json(scenario: AlternativeScenario) -> dict:
    return {
        "installments": scenario.installments,
        "installment_amount": str(scenario.installment_amount),
        "risk": scenario.risk.value,
        "lowest_balance": str(scenario.lowest_balance),
        "worst_month": scenario.worst_month.isoformat(),
    }


def _scenario_from_json(data: dict) -> AlternativeScenario:
    return AlternativeScenario(
        installments=data["installments"],
        installment_amount=Decimal(data["installment_amount"]),
        risk=RiskLevel(data["risk"]),
        lowest_balance=Decimal(data["lowest_balance"]),
        worst_month=date.fromisoformat(data["worst_month"]),
    )


class SimulationRepository:
    """Repository for persisted purchase simulations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, simulation: Simulation) -> SimulationRecord:
        """Persist simulation with its monthly rows"""
        details = {
            "alternatives": [_scenario_to_json(s) for s in simulation.alternatives or []],
            "best_alternative": (
                _scenario_to_json(simulation.best_alternative) if simulation.best_alternative else None
            ),
            "goal_impacts": [_goal_impact_to_json(g) for g in simulation.goal_impacts or []],
        }
        record = SimulationRecord(
            user_id=user_id,
            description=simulation.description,
            amount=simulation.amount,
            payment_method=simulation.payment_method.value,
            installment_count=simulation.installment_count,
            card_id=simulation.card_id,
            planned_date=simulation.planned_date,
            risk=simulation.risk.value,
            detailed_risk=simulation.detailed_risk.value if simulation.detailed_risk else None,
            confidence=simulation.confidence.value,
            recommendation=simulation.recommendation.value,
            lowest_balance=simulation.lowest_balance,
            worst_month=simulation.worst_month,
            average_slack=simulation.average_slack,
            negative_month_probability=simulation.negative_month_probability,
            minimum_reserve_gap=simulation.minimum_reserve_gap,
            health_score=simulation.health_score,
            details=details,
            summary=simulation.summary,
            created_at=simulation.created_at,
        )
        for row in simulation.months:
            record.months.append(
                SimulationMonthRecord(
                    month=row.month,
                    income=row.income,
                    expense=row.expense,
                    existing_commitments=row.existing_commitments,
                    base_balance=row.base_balance,
                    purchase_impact=row.purchase_impact,
                    balance_with_purchase=row.balance_with_purchase,
                    impact_pct=row.impact_pct,
                )
            )
        self.db.add(record)
        self.db.flush()
        return record

    def list_by_user(self, user_id: str, limit: int = 20) -> List[Simulation]:
        """Fetch simulations for a user, newest first"""
        records = (
            self.db.query(SimulationRecord)
            .filter(SimulationRecord.user_id == user_id)
            .order_by(SimulationRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in records]

    @staticmethod
    def _to_domain(record: SimulationRecord) -> Simulation:
        details = record.details or {}
        best = details.get("best_alternative")
        return Simulation(
            id=record.id,
            description=record.description,
            amount=record.amount,
            payment_method=PaymentMethod(record.payment_method),
            installment_count=record.installment_count,
            card_id=record.card_id,
            planned_date=record.planned_date,
            risk=RiskLevel(record.risk),
            detailed_risk=DetailedRisk(record.detailed_risk) if record.detailed_risk else None,
            confidence=Confidence(record.confidence),
            recommendation=Recommendation(record.recommendation),
            lowest_balance=record.lowest_balance,
            worst_month=record.worst_month,
            average_slack=record.average_slack,
            negative_month_probability=record.negative_month_probability,
            minimum_reserve_gap=record.minimum_reserve_gap,
            health_score=record.health_score,
            months=[
                ProjectionMonth(
                    month=m.month,
                    income=m.income,
                    expense=m.expense,
                    existing_commitments=m.existing_commitments,
                    base_balance=m.base_balance,
                    purchase_impact=m.purchase_impact,
                    balance_with_purchase=m.balance_with_purchase,
                    impact_pct=m.impact_pct,
                )
                for m in record.months
            ],
            alternatives=[_scenario_from_json(s) for s in details.get("alternatives", [])],
            best_alternative=_scenario_from_json(best) if best else None,
            goal_impacts=[_goal_impact_from_json(g) for g in details.get("goal_impacts", [])],
            summary=record.summary or "",
            created_at=ensure_utc(record.created_at) if record.created_at else None,
        )
