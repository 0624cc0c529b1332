"""Tests for the decision engine and goal impact service"""

import pytest
from datetime import date
from decimal import Decimal
from prometheus_client import REGISTRY
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.domain.models import DecisionLayer, GoalKind, RiskLevel, Verdict
from cashflow_advisor.infrastructure.database.models import BehavioralProfileRecord
from cashflow_advisor.infrastructure.database.repositories import (
    BehavioralProfileRepository,
    DecisionLogRepository,
)
from cashflow_advisor.services.decision_service import FULL_PURCHASE, QUICK_SPEND, DecisionEngine
from cashflow_advisor.services.goal_impact_service import GoalImpactCalculator

EXPENSES = ["1000", "1100", "1050", "1200"]


@pytest.fixture
def engine(db, settings, clock):
    return DecisionEngine(db, settings, clock)


@pytest.fixture
def steady_user(seed):
    seed.steady_history("user_1", "3000", EXPENSES)
    return "user_1"


def layer(result, name):
    return next(v for v in result.layers if v.layer == name)


def test_month_budget(engine, steady_user):
    budget = engine.month_budget(steady_user)

    assert budget.projected_income == Decimal("3000.00")
    assert budget.month_expense == 0
    assert budget.free_balance == Decimal("3000.00")
    assert budget.days_remaining == 16
    assert budget.month_days == 30


def test_month_budget_prefers_booked_income(engine, seed, steady_user):
    seed.income(steady_user, "2800", date(2025, 6, 1))
    seed.expense(steady_user, "400", date(2025, 6, 3))

    budget = engine.month_budget(steady_user)

    assert budget.projected_income == Decimal("2800.00")
    assert budget.month_expense == Decimal("400.00")
    assert budget.free_balance == Decimal("2400.00")


def test_small_expense_is_approved(engine, steady_user, db):
    assert engine.should_use_fast_path(steady_user, Decimal("50"), False) is True

    result = engine.evaluate_quick_spend(steady_user, Decimal("50"), "Coffee")

    assert result.verdict == Verdict.PROCEED
    assert result.can_spend is True
    assert [v.verdict for v in result.layers] == [Verdict.PROCEED] * 4
    assert result.health_score == Decimal("89.50")
    assert result.days_remaining == 16
    assert result.summary.startswith("Approved: Coffee of 50.00")

    entries = DecisionLogRepository(db).list_by_user(steady_user)
    assert len(entries) == 1
    assert entries[0].kind == QUICK_SPEND
    assert entries[0].outcome == "proceed"


def test_goal_reserve_exhausting_budget_holds(engine, seed, steady_user):
    seed.goal(steady_user, "Emergency", GoalKind.MONTHLY_RESERVE, "5000", date(2025, 12, 31))

    assert engine.should_use_fast_path(steady_user, Decimal("50"), False) is False

    result = engine.evaluate_quick_spend(steady_user, Decimal("50"))

    assert result.verdict == Verdict.HOLD
    assert result.can_spend is False
    assert result.free_balance == Decimal("-2000.00")
    assert layer(result, DecisionLayer.MATHEMATICAL).verdict == Verdict.HOLD


def test_installments_never_take_fast_path(engine, steady_user):
    assert engine.should_use_fast_path(steady_user, Decimal("10"), True) is False


def test_category_limit_alert(engine, seed, steady_user):
    seed.category(steady_user, "Lazer", limit="100")
    seed.expense(steady_user, "80", date(2025, 6, 5), category="lazer")

    result = engine.evaluate_quick_spend(steady_user, Decimal("15"), category="LAZER")

    assert result.limit_alert.startswith("WARNING")


def test_unknown_category_falls_back_without_creating(engine, seed, steady_user, db):
    result = engine.evaluate_quick_spend(steady_user, Decimal("15"), category="Brand new")

    assert result.limit_alert is None
    assert engine.categories.find_by_name(steady_user, "Brand new") is None


def test_decision_queries_are_counted(engine, steady_user, db):
    engine.evaluate_quick_spend(steady_user, Decimal("20"))
    engine.evaluate_quick_spend(steady_user, Decimal("30"))

    record = BehavioralProfileRepository(db).get(steady_user)
    assert record.decision_queries_total == 2
    # Counted before the second audit entry lands
    assert record.decision_queries_recent == 1


def test_goal_impact_failure_does_not_block_verdict(engine, steady_user, monkeypatch):
    def broken(user_id, amount):
        raise RuntimeError("goal store unavailable")

    monkeypatch.setattr(engine.goal_impact_calculator, "compute", broken)
    before = REGISTRY.get_sample_value("enrichment_failures_total", {"step": "goal_impact"}) or 0

    result = engine.evaluate_quick_spend(steady_user, Decimal("50"))

    assert result.verdict == Verdict.PROCEED
    assert result.goal_impacts is None
    after = REGISTRY.get_sample_value("enrichment_failures_total", {"step": "goal_impact"})
    assert after == before + 1


def test_audit_failure_does_not_block_verdict(engine, steady_user, monkeypatch):
    def broken(**kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(engine.audit, "append", broken)

    result = engine.evaluate_quick_spend(steady_user, Decimal("50"))

    assert result.verdict == Verdict.PROCEED


def test_lost_behavioral_insert_does_not_block_verdict(engine, steady_user, db, monkeypatch):
    # Another request already created this user's behavioral row
    db.add(BehavioralProfileRecord(user_id=steady_user, decision_queries_total=0, decision_queries_recent=0))
    db.commit()
    db.expunge_all()
    monkeypatch.setattr(BehavioralProfileRepository, "get", lambda self, user_id: None)
    before = REGISTRY.get_sample_value("enrichment_failures_total", {"step": "health_score_store"}) or 0

    result = engine.evaluate_quick_spend(steady_user, Decimal("50"))

    assert result.verdict == Verdict.PROCEED
    assert result.health_score == Decimal("89.5")
    after = REGISTRY.get_sample_value("enrichment_failures_total", {"step": "health_score_store"})
    assert after == before + 1
    # The session is still usable after the failed insert
    entries = DecisionLogRepository(db).list_by_user(steady_user)
    assert [e.kind for e in entries] == [QUICK_SPEND]


def test_rejects_non_positive_amount(engine, steady_user):
    with pytest.raises(InvalidAmountError):
        engine.evaluate_quick_spend(steady_user, Decimal("0"))
    with pytest.raises(InvalidAmountError):
        engine.evaluate_full_purchase(steady_user, Decimal("-5"), "TV")


def test_full_purchase_analysis(engine, steady_user, db):
    analysis = engine.evaluate_full_purchase(steady_user, Decimal("2400"), "TV", "credit", 6)

    # Leaves exactly 20% of income, not above it
    assert analysis.at_once.risk == RiskLevel.MEDIUM
    assert analysis.at_once.monthly_slack == Decimal("600.00")
    # 3000 - 1112.12 - 1200 = 687.88 per month, above 20% of income
    assert analysis.recommended_installments == 2
    assert analysis.recommended_risk == RiskLevel.LOW
    assert "Recommendation: from 2x the risk is low." in analysis.report

    entries = DecisionLogRepository(db).list_by_user(steady_user)
    assert entries[0].kind == FULL_PURCHASE
    assert entries[0].outcome == "low"


def test_goal_impact_service(db, settings, clock, seed):
    seed.steady_history("user_1", "1050", ["1000", "1000", "1000", "1000"])
    seed.goal("user_1", "Trip", GoalKind.ACCUMULATE_AMOUNT, "1200", date(2026, 6, 15))

    impacts = GoalImpactCalculator(db, settings, clock).compute("user_1", Decimal("100"))

    assert len(impacts) == 1
    assert impacts[0].goal_name == "Trip"
    assert impacts[0].delay_months == 2


def test_goal_impact_service_without_goals(db, settings, clock, seed):
    seed.steady_history("user_1", "3000", EXPENSES)

    assert GoalImpactCalculator(db, settings, clock).compute("user_1", Decimal("100")) == []
