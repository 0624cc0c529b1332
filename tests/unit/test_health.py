"""Unit tests for the health score engine"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from cashflow_advisor.domain.health import (
    FACTOR_WEIGHTS,
    calculate_health_score,
    classify_score,
    count_negative_months,
    expense_growth_trend,
    free_margin_fraction,
    inverse_ramp,
    negative_months_fraction,
)
from cashflow_advisor.domain.models import FactorImpact, FinancialProfile, HealthClassification

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_factor_weights_sum_to_100():
    assert sum(FACTOR_WEIGHTS) == Decimal("100")


def test_inverse_ramp():
    good, bad = Decimal("0.5"), Decimal("0.9")

    assert inverse_ramp(Decimal("0.3"), good, bad) == 1
    assert inverse_ramp(Decimal("0.7"), good, bad) == Decimal("0.5")
    assert inverse_ramp(Decimal("1.2"), good, bad) == 0


@pytest.mark.parametrize(
    "negative,expected",
    [(0, "1"), (1, "0.7"), (2, "0.4"), (3, "0.25"), (4, "0.10"), (6, "0")],
)
def test_negative_months_fraction(negative, expected):
    assert negative_months_fraction(negative) == Decimal(expected)


def test_free_margin_bands():
    assert free_margin_fraction(Decimal("0.35")) == 1
    assert free_margin_fraction(Decimal("0.20")) == Decimal("0.7")
    assert free_margin_fraction(Decimal("0.10")) == Decimal("0.4")
    assert free_margin_fraction(Decimal("0.01")) == Decimal("0.2")
    assert free_margin_fraction(Decimal("-0.10")) == 0


@pytest.mark.parametrize(
    "score,expected",
    [
        ("80", HealthClassification.EXCELLENT),
        ("79.99", HealthClassification.GOOD),
        ("60", HealthClassification.GOOD),
        ("40", HealthClassification.FAIR),
        ("20", HealthClassification.POOR),
        ("19.99", HealthClassification.CRITICAL),
    ],
)
def test_classify_score(score, expected):
    assert classify_score(Decimal(score)) == expected


def test_count_negative_months_ignores_months_without_income():
    totals = [
        (Decimal("3000"), Decimal("3100")),
        (Decimal("3000"), Decimal("2000")),
        (Decimal("0"), Decimal("500")),
    ]
    assert count_negative_months(totals) == 1


def test_expense_growth_trend():
    """Mean month-over-month growth, newest first"""
    expenses = [Decimal("1200"), Decimal("1050"), Decimal("1100"), Decimal("1000")]
    trend = expense_growth_trend(expenses)

    assert trend.quantize(Decimal("0.0001")) == Decimal("0.0658")


def test_expense_growth_trend_needs_two_months():
    assert expense_growth_trend([Decimal("1000"), Decimal("0")]) == 0


def test_healthy_profile_score():
    profile = FinancialProfile(
        user_id="user_1",
        average_monthly_income=Decimal("3000.00"),
        average_monthly_expense=Decimal("1112.12"),
        expense_volatility=Decimal("73.95"),
    )
    trend = expense_growth_trend([Decimal("1200"), Decimal("1050"), Decimal("1100"), Decimal("1000")])

    snapshot = calculate_health_score(profile, 0, trend, NOW)

    assert snapshot.score == Decimal("89.50")
    assert snapshot.classification == HealthClassification.EXCELLENT
    assert len(snapshot.factors) == 6
    trend_factor = snapshot.factors[-1]
    assert trend_factor.value == Decimal("4.50")
    assert trend_factor.impact == FactorImpact.NEGATIVE
    assert snapshot.summary.startswith("Financial health: excellent (90/100)")


def test_no_income_profile_scores_low():
    profile = FinancialProfile(user_id="user_1", average_monthly_expense=Decimal("500"))

    snapshot = calculate_health_score(profile, 0, Decimal("0"), NOW)

    # Only credit usage, negative months and the stable trend contribute
    assert snapshot.score == Decimal("42.00")
    assert snapshot.classification == HealthClassification.FAIR
    assert "You are not saving any money." in snapshot.summary


def test_score_is_bounded():
    profile = FinancialProfile(
        user_id="user_1",
        average_monthly_income=Decimal("1000"),
        average_monthly_expense=Decimal("2000"),
        expense_volatility=Decimal("900"),
        open_installment_total=Decimal("5000"),
        open_installment_count=10,
    )

    snapshot = calculate_health_score(profile, 6, Decimal("0.5"), NOW)

    assert Decimal("0") <= snapshot.score <= Decimal("100")
    assert snapshot.classification == HealthClassification.CRITICAL
