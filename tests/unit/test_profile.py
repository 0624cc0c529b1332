"""Unit tests for profile calculation"""

import uuid
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from cashflow_advisor.domain.models import (
    Confidence,
    Installment,
    PaymentMethod,
    Transaction,
    TransactionKind,
)
from cashflow_advisor.domain.profile import (
    build_history_series,
    build_monthly_analyses,
    compute_profile,
    confidence_for_days,
    exponential_weighted_average,
    population_stddev,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def txn(amount, kind, occurred_on, category="Mercado", installments=1):
    return Transaction(
        id=uuid.uuid4(),
        user_id="user_1",
        amount=Decimal(amount),
        kind=kind,
        category=category,
        payment_method=PaymentMethod.CREDIT if installments > 1 else PaymentMethod.DEBIT,
        occurred_on=occurred_on,
        installment_count=installments,
    )


def income(amount, occurred_on):
    return txn(amount, TransactionKind.INCOME, occurred_on, category="Salário")


def expense(amount, occurred_on, **kwargs):
    return txn(amount, TransactionKind.EXPENSE, occurred_on, **kwargs)


@pytest.mark.parametrize(
    "days,expected",
    [
        (0, Confidence.LOW),
        (29, Confidence.LOW),
        (30, Confidence.MEDIUM),
        (89, Confidence.MEDIUM),
        (90, Confidence.HIGH),
        (400, Confidence.HIGH),
    ],
)
def test_confidence_thresholds(days, expected):
    assert confidence_for_days(days) == expected


def test_ewma_weights_recent_months_more():
    """Test EWMA of [100, 100, 200] sits above the plain mean"""
    values = [Decimal("100"), Decimal("100"), Decimal("200")]
    result = exponential_weighted_average(values, Decimal("0.3"))

    assert result > Decimal("133.34")
    assert result.quantize(Decimal("0.01")) == Decimal("145.66")


def test_ewma_edge_cases():
    assert exponential_weighted_average([]) == 0
    assert exponential_weighted_average([Decimal("42.50")]) == Decimal("42.50")


def test_population_stddev():
    values = [Decimal("1000"), Decimal("1100"), Decimal("1050"), Decimal("1200")]
    assert population_stddev(values).quantize(Decimal("0.01")) == Decimal("73.95")
    assert population_stddev([Decimal("10")]) == 0


def test_monthly_analyses_split_fixed_and_variable():
    """Test fixed categories are matched case-insensitively and installments stay out of the split"""
    transactions = [
        income("3000", date(2025, 5, 1)),
        expense("1200", date(2025, 5, 5), category="ALUGUEL"),
        expense("300", date(2025, 5, 8), category="Mercado"),
        expense("600", date(2025, 5, 9), category="Eletrônicos", installments=3),
    ]
    analyses = build_monthly_analyses(transactions, [], ["Aluguel"])

    assert len(analyses) == 1
    may = analyses[0]
    assert may.month == date(2025, 5, 1)
    assert may.total_income == Decimal("3000")
    assert may.total_expense == Decimal("2100")
    assert may.fixed_expense == Decimal("1200")
    assert may.variable_expense == Decimal("300")
    assert may.balance == Decimal("900")


def test_history_series_drops_inactive_months():
    transactions = [
        income("3000", date(2025, 2, 1)),
        expense("1000", date(2025, 2, 10)),
        income("3000", date(2025, 4, 1)),
        expense("1000", date(2025, 4, 10)),
    ]
    analyses = build_monthly_analyses(transactions, [], [])
    incomes, expenses = build_history_series(analyses, transactions, date(2025, 6, 15))

    assert incomes == [Decimal("3000"), Decimal("3000")]
    assert expenses == [Decimal("1000"), Decimal("1000")]


def test_history_series_extrapolates_current_month_with_floor():
    """Test a single large expense on day 2 is spread over at least 7 days"""
    transactions = [
        income("3000", date(2025, 6, 1)),
        expense("700", date(2025, 6, 2)),
    ]
    analyses = build_monthly_analyses(transactions, [], [])
    incomes, expenses = build_history_series(analyses, transactions, date(2025, 6, 2))

    assert incomes == [Decimal("3000")]
    assert expenses == [Decimal("3000")]  # 700 / 7 * 30


def test_compute_profile_empty_history():
    computation = compute_profile("user_1", [], [], NOW)

    assert computation.analyses == []
    assert computation.profile.confidence == Confidence.LOW
    assert computation.profile.average_monthly_income == 0
    assert computation.profile.dirty is False


def test_compute_profile_steady_history():
    transactions = []
    for month, spent in zip((2, 3, 4, 5), ("1000", "1100", "1050", "1200")):
        transactions.append(income("3000", date(2025, month, 1)))
        transactions.append(expense(spent, date(2025, month, 10)))

    profile = compute_profile("user_1", transactions, [], NOW).profile

    assert profile.average_monthly_income == Decimal("3000.00")
    assert profile.average_monthly_expense == Decimal("1112.12")
    assert profile.expense_volatility == Decimal("73.95")
    assert profile.days_of_history == 134
    assert profile.months_with_data == 4
    assert profile.confidence == Confidence.HIGH


def test_compute_profile_counts_only_future_unpaid_installments():
    transactions = [
        income("3000", date(2025, 5, 1)),
        expense("300", date(2025, 5, 20), installments=3),
    ]
    installments = [
        Installment(due_date=date(2025, 6, 10), amount=Decimal("100"), sequence=1, total_in_series=3),
        Installment(due_date=date(2025, 7, 20), amount=Decimal("100"), sequence=2, total_in_series=3),
        Installment(due_date=date(2025, 8, 20), amount=Decimal("100"), sequence=3, total_in_series=3, paid=True),
    ]
    profile = compute_profile("user_1", transactions, installments, NOW).profile

    assert profile.open_installment_count == 1
    assert profile.open_installment_total == Decimal("100.00")


def test_compute_profile_is_deterministic():
    transactions = [income("2500", date(2025, 4, 1)), expense("900", date(2025, 4, 3))]

    first = compute_profile("user_1", transactions, [], NOW).profile
    second = compute_profile("user_1", transactions, [], NOW).profile

    assert first == second
