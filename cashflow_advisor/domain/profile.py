"""Financial profile calculation - smoothed income/expense behavior from raw history"""

import statistics
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from cashflow_advisor.domain.models import (
    Confidence,
    FinancialProfile,
    Installment,
    MonthlyAnalysis,
    Transaction,
    TransactionKind,
)
from cashflow_advisor.utils.date_utils import days_in_month, month_start
from cashflow_advisor.utils.money import ZERO, round_money, to_decimal, total

DEFAULT_ALPHA = Decimal("0.3")

# Categories treated as fixed (housing, subscriptions, insurance, ...)
DEFAULT_FIXED_CATEGORIES = frozenset(
    {
        "moradia",
        "aluguel",
        "assinaturas",
        "seguros",
        "condomínio",
        "internet",
        "telefone",
        "educação",
        "plano de saúde",
    }
)

# Floor for partial-month extrapolation: one large expense on day 1 must not
# be multiplied by 30
MIN_EXTRAPOLATION_DAYS = 7


@dataclass
class ProfileComputation:
    """Profile plus the monthly analysis rows produced along the way"""

    profile: FinancialProfile
    analyses: List[MonthlyAnalysis]


def confidence_for_days(days_of_history: int) -> Confidence:
    """
    Map history length to a confidence tier.

    - < 30 days:  Low
    - < 90 days:  Medium
    - otherwise:  High
    """
    if days_of_history < 30:
        return Confidence.LOW
    elif days_of_history < 90:
        return Confidence.MEDIUM
    return Confidence.HIGH


def exponential_weighted_average(values: List[Decimal], alpha: Decimal = DEFAULT_ALPHA) -> Decimal:
    """
    Exponentially weighted average, values ordered oldest → newest.

    Weight of each sample is alpha * (1 - alpha) ** distance_from_newest, so
    the newest month weighs the most. A single sample is returned unchanged.
    """
    if not values:
        return ZERO
    if len(values) == 1:
        return values[0]

    weighted_sum = ZERO
    weight_sum = ZERO
    for i, value in enumerate(values):
        distance = len(values) - 1 - i
        weight = alpha * (1 - alpha) ** distance
        weighted_sum += value * weight
        weight_sum += weight

    return weighted_sum / weight_sum if weight_sum > 0 else ZERO


def population_stddev(values: List[Decimal]) -> Decimal:
    """Population standard deviation, 0 for fewer than two samples"""
    if len(values) < 2:
        return ZERO
    return to_decimal(statistics.pstdev(values))


def mean(values: Iterable[Decimal]) -> Decimal:
    values = list(values)
    return total(values) / len(values) if values else ZERO


def build_monthly_analyses(
    transactions: List[Transaction],
    installments: List[Installment],
    fixed_categories: Iterable[str] = DEFAULT_FIXED_CATEGORIES,
) -> List[MonthlyAnalysis]:
    """
    Aggregate transactions per calendar month (oldest first).

    Installment purchases are excluded from the fixed/variable split so they
    are not counted twice against the open installment commitments.
    """
    fixed = {name.lower() for name in fixed_categories}

    by_month: Dict[date, List[Transaction]] = {}
    for txn in transactions:
        by_month.setdefault(month_start(txn.occurred_on), []).append(txn)

    installments_by_month: Dict[date, Decimal] = {}
    for inst in installments:
        key = month_start(inst.due_date)
        installments_by_month[key] = installments_by_month.get(key, ZERO) + inst.amount

    analyses = []
    for month in sorted(by_month):
        txns = by_month[month]
        income = total(t.amount for t in txns if t.kind == TransactionKind.INCOME)
        expense = total(t.amount for t in txns if t.kind == TransactionKind.EXPENSE)
        single_payment = [t for t in txns if t.kind == TransactionKind.EXPENSE and not t.is_installment]
        non_installment = total(t.amount for t in single_payment)
        fixed_expense = total(t.amount for t in single_payment if (t.category or "").lower() in fixed)

        analyses.append(
            MonthlyAnalysis(
                month=month,
                total_income=income,
                total_expense=expense,
                fixed_expense=fixed_expense,
                variable_expense=non_installment - fixed_expense,
                installment_total=installments_by_month.get(month, ZERO),
            )
        )

    return analyses


def _non_installment_expense(transactions: List[Transaction], month: date) -> Decimal:
    return total(
        t.amount
        for t in transactions
        if t.kind == TransactionKind.EXPENSE and not t.is_installment and month_start(t.occurred_on) == month
    )


def build_history_series(
    analyses: List[MonthlyAnalysis],
    transactions: List[Transaction],
    today: date,
) -> Tuple[List[Decimal], List[Decimal]]:
    """
    Monthly income and non-installment expense series used for averaging.

    Only fully elapsed months count. Months without any activity are dropped
    as long as at least one month remains. Without any elapsed month, the
    current month is used with its expense extrapolated to a full month.
    """
    current = month_start(today)
    elapsed = [a for a in analyses if a.month < current]

    incomes = [a.total_income for a in elapsed]
    expenses = [a.fixed_expense + a.variable_expense for a in elapsed]

    if len(incomes) >= 2:
        active = [i for i in range(len(incomes)) if incomes[i] > 0 or expenses[i] > 0]
        if active:
            incomes = [incomes[i] for i in active]
            expenses = [expenses[i] for i in active]

    if not incomes:
        current_rows = [a for a in analyses if a.month == current]
        if current_rows:
            observed = _non_installment_expense(transactions, current)
            days_elapsed = max(MIN_EXTRAPOLATION_DAYS, today.day)
            projected = observed / days_elapsed * days_in_month(today.year, today.month)
            incomes = [current_rows[0].total_income]
            expenses = [projected]

    return incomes, expenses


def compute_profile(
    user_id: str,
    transactions: List[Transaction],
    installments: List[Installment],
    now: datetime,
    alpha: Decimal = DEFAULT_ALPHA,
    fixed_categories: Iterable[str] = DEFAULT_FIXED_CATEGORIES,
) -> ProfileComputation:
    """
    Compute the smoothed financial profile from the full transaction history.

    Pure function of (transactions, installments, now): recomputing from an
    unchanged ledger yields an identical profile.
    """
    if not transactions:
        return ProfileComputation(
            profile=FinancialProfile(user_id=user_id, confidence=Confidence.LOW, updated_at=now),
            analyses=[],
        )

    today = now.date()
    earliest = min(t.occurred_on for t in transactions)
    days_of_history = max(0, (today - earliest).days)

    analyses = build_monthly_analyses(transactions, installments, fixed_categories)
    incomes, expenses = build_history_series(analyses, transactions, today)

    average_income = exponential_weighted_average(incomes, alpha)
    average_expense = exponential_weighted_average(expenses, alpha)
    volatility = population_stddev(expenses)

    historical = [a for a in analyses if a.month < month_start(today)]
    fixed_estimate = mean(a.fixed_expense for a in historical)
    variable_estimate = mean(a.variable_expense for a in historical)

    open_installments = [i for i in installments if not i.paid and i.due_date > today]

    profile = FinancialProfile(
        user_id=user_id,
        average_monthly_income=round_money(average_income),
        average_monthly_expense=round_money(average_expense),
        fixed_expense_estimate=round_money(fixed_estimate),
        variable_expense_estimate=round_money(variable_estimate),
        open_installment_total=round_money(total(i.amount for i in open_installments)),
        open_installment_count=len(open_installments),
        days_of_history=days_of_history,
        months_with_data=len(analyses),
        expense_volatility=round_money(volatility),
        confidence=confidence_for_days(days_of_history),
        dirty=False,
        updated_at=now,
    )

    return ProfileComputation(profile=profile, analyses=analyses)
