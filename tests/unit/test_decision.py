"""Unit tests for the spend decision rules"""

import pytest
from decimal import Decimal
from cashflow_advisor.domain.decision import (
    baseline_verdict,
    behavioral_vote,
    build_purchase_scenarios,
    category_limit_alert,
    consolidate,
    effective_income,
    endpoint_trend_pct,
    historical_variation,
    historical_vote,
    recommend_installments,
    should_use_fast_path,
    trend_vote,
)
from cashflow_advisor.domain.models import DecisionLayer, LayerVote, RiskLevel, Verdict

P, C, H = Verdict.PROCEED, Verdict.CAUTION, Verdict.HOLD


def votes(mathematical, historical, trend, behavioral):
    return [
        LayerVote(DecisionLayer.MATHEMATICAL, mathematical, ""),
        LayerVote(DecisionLayer.HISTORICAL, historical, ""),
        LayerVote(DecisionLayer.TREND, trend, ""),
        LayerVote(DecisionLayer.BEHAVIORAL, behavioral, ""),
    ]


@pytest.mark.parametrize(
    "layers,expected",
    [
        ((P, P, P, P), P),
        ((H, P, P, P), H),
        ((P, H, H, P), H),
        ((P, H, P, P), C),
        ((P, C, C, P), C),
        ((P, C, P, P), P),
        ((C, P, P, P), C),
    ],
)
def test_consolidate(layers, expected):
    assert consolidate(votes(*layers)) == expected


def test_consolidate_never_more_permissive_than_mathematical():
    assert consolidate(votes(C, P, P, P)) == C
    assert consolidate(votes(H, P, P, P)) == H


def test_effective_income_uses_declared_as_floor():
    assert effective_income(Decimal("4000"), Decimal("3000")) == Decimal("4000")
    assert effective_income(Decimal("2000"), Decimal("3000")) == Decimal("3000")
    assert effective_income(None, Decimal("3000")) == Decimal("3000")
    assert effective_income(Decimal("0"), Decimal("3000")) == Decimal("3000")


def test_fast_path():
    income, balance = Decimal("3000"), Decimal("1500")

    assert should_use_fast_path(Decimal("50"), income, balance, False) is True
    # 5% of income
    assert should_use_fast_path(Decimal("150"), income, balance, False) is False
    # 15% of free balance
    assert should_use_fast_path(Decimal("140"), income, Decimal("900"), False) is False
    assert should_use_fast_path(Decimal("50"), income, balance, True) is False


def test_fast_path_without_income_or_free_balance():
    assert should_use_fast_path(Decimal("500"), Decimal("0"), Decimal("0"), False) is True
    assert should_use_fast_path(Decimal("10"), Decimal("3000"), Decimal("-200"), False) is False


def test_baseline_verdict():
    income = Decimal("3000")

    assert baseline_verdict(Decimal("50"), Decimal("1500"), income, 16, 30) == P
    assert baseline_verdict(Decimal("600"), Decimal("1500"), income, 16, 30) == C
    assert baseline_verdict(Decimal("1600"), Decimal("1500"), income, 16, 30) == H
    assert baseline_verdict(Decimal("10"), Decimal("-1"), income, 16, 30) == H


def test_baseline_caution_when_daily_budget_runs_thin():
    """Leaving 10/day when the income allows 100/day is a caution"""
    assert baseline_verdict(Decimal("100"), Decimal("800"), Decimal("3000"), 30, 30) == P
    assert baseline_verdict(Decimal("100"), Decimal("400"), Decimal("3000"), 30, 30) == C


def test_historical_layer():
    variation = historical_variation(Decimal("1200"), Decimal("100"), Decimal("1000"))

    assert variation == Decimal("30")
    assert historical_vote(variation) == C
    assert historical_vote(Decimal("31")) == H
    assert historical_vote(Decimal("15")) == P
    assert historical_variation(Decimal("100"), Decimal("10"), Decimal("0")) == 0


def test_endpoint_trend_ignores_middle_month():
    """Trend compares last month with three months ago"""
    assert endpoint_trend_pct([Decimal("1200"), Decimal("9999"), Decimal("1000")]) == Decimal("20.0")
    assert endpoint_trend_pct([Decimal("1200"), Decimal("0"), Decimal("1000")]) == Decimal("20.0")
    assert endpoint_trend_pct([Decimal("1200"), Decimal("1000")]) == 0
    assert endpoint_trend_pct([Decimal("1200"), Decimal("1000"), Decimal("0")]) == 0


def test_trend_and_behavioral_votes():
    assert trend_vote(Decimal("20.0")) == C
    assert trend_vote(Decimal("20.1")) == H
    assert trend_vote(Decimal("10")) == P

    assert behavioral_vote(Decimal("70")) == P
    assert behavioral_vote(Decimal("40")) == C
    assert behavioral_vote(Decimal("39.9")) == H


def test_category_limit_alert():
    limit = Decimal("500")

    assert category_limit_alert("Lazer", Decimal("100"), Decimal("50"), limit) is None
    assert category_limit_alert("Lazer", Decimal("300"), Decimal("50"), limit).startswith("Notice")
    assert category_limit_alert("Lazer", Decimal("400"), Decimal("60"), limit).startswith("WARNING")
    assert category_limit_alert("Lazer", Decimal("480"), Decimal("50"), limit).startswith("LIMIT EXCEEDED")
    assert category_limit_alert("Lazer", Decimal("480"), Decimal("50"), Decimal("0")) is None


def test_purchase_scenarios():
    scenarios = build_purchase_scenarios(
        amount=Decimal("1200"),
        balance=Decimal("1000"),
        income=Decimal("3000"),
        average_expense=Decimal("2000"),
        commitments=Decimal("300"),
    )

    assert [s.installments for s in scenarios] == [1, 2, 3, 4, 6, 8, 10, 12]
    at_once = scenarios[0]
    assert at_once.risk == RiskLevel.HIGH
    assert at_once.monthly_slack == Decimal("-200.00")

    by_count = {s.installments: s for s in scenarios}
    # slack = 3000 - 2000 - 300 - installment
    assert by_count[2].risk == RiskLevel.HIGH
    assert by_count[3].risk == RiskLevel.MEDIUM
    assert by_count[12].monthly_slack == Decimal("600.00")
    assert by_count[12].risk == RiskLevel.LOW

    assert recommend_installments(scenarios) == (12, RiskLevel.LOW)


def test_recommend_installments_falls_back_to_medium_then_none():
    scenarios = build_purchase_scenarios(
        Decimal("1200"), Decimal("0"), Decimal("3000"), Decimal("2600"), Decimal("0")
    )
    assert recommend_installments(scenarios) == (6, RiskLevel.MEDIUM)

    scenarios = build_purchase_scenarios(
        Decimal("1200"), Decimal("0"), Decimal("3000"), Decimal("3000"), Decimal("0")
    )
    assert recommend_installments(scenarios) == (None, None)
