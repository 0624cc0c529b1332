"""Financial health score engine - weighted 0-100 score with explainable factors"""

from datetime import datetime
from decimal import Decimal
from typing import List, Sequence, Tuple

from cashflow_advisor.domain.models import (
    FactorImpact,
    FinancialProfile,
    HealthClassification,
    HealthFactor,
    HealthScoreSnapshot,
)
from cashflow_advisor.utils.money import ZERO, round_money, round_to

# Factor weights (sum to 100)
WEIGHT_INCOME_COMMITMENT = Decimal("25")
WEIGHT_EXPENSE_VOLATILITY = Decimal("15")
WEIGHT_CREDIT_USAGE = Decimal("15")
WEIGHT_NEGATIVE_MONTHS = Decimal("15")
WEIGHT_FREE_MARGIN = Decimal("15")
WEIGHT_EXPENSE_TREND = Decimal("15")

FACTOR_WEIGHTS = (
    WEIGHT_INCOME_COMMITMENT,
    WEIGHT_EXPENSE_VOLATILITY,
    WEIGHT_CREDIT_USAGE,
    WEIGHT_NEGATIVE_MONTHS,
    WEIGHT_FREE_MARGIN,
    WEIGHT_EXPENSE_TREND,
)

NEGATIVE_MONTHS_WINDOW = 6
TREND_WINDOW = 4

ONE = Decimal("1")


def inverse_ramp(ratio: Decimal, good: Decimal, bad: Decimal) -> Decimal:
    """1 at or below `good`, 0 at or above `bad`, linear in between"""
    if ratio <= good:
        return ONE
    if ratio >= bad:
        return ZERO
    return ONE - (ratio - good) / (bad - good)


def factor_impact(fraction: Decimal) -> FactorImpact:
    if fraction > Decimal("0.6"):
        return FactorImpact.POSITIVE
    elif fraction > Decimal("0.3"):
        return FactorImpact.NEUTRAL
    return FactorImpact.NEGATIVE


def negative_months_fraction(negative_months: int) -> Decimal:
    """0 → 1.0, 1 → 0.7, 2 → 0.4, then -0.15 per extra month down to 0"""
    if negative_months <= 0:
        return ONE
    if negative_months == 1:
        return Decimal("0.7")
    if negative_months == 2:
        return Decimal("0.4")
    return max(ZERO, Decimal("0.4") - (negative_months - 2) * Decimal("0.15"))


def free_margin_fraction(margin_ratio: Decimal) -> Decimal:
    if margin_ratio >= Decimal("0.30"):
        return ONE
    elif margin_ratio >= Decimal("0.15"):
        return Decimal("0.7")
    elif margin_ratio >= Decimal("0.05"):
        return Decimal("0.4")
    elif margin_ratio > 0:
        return Decimal("0.2")
    return ZERO


def expense_trend_fraction(trend: Decimal) -> Decimal:
    if trend <= Decimal("-0.05"):
        return ONE
    elif trend <= 0:
        return Decimal("0.8")
    elif trend <= Decimal("0.05"):
        return Decimal("0.6")
    elif trend <= Decimal("0.15"):
        return Decimal("0.3")
    return Decimal("0.1")


def classify_score(score: Decimal) -> HealthClassification:
    """
    Score bands:
    - 80+:  Excellent
    - 60+:  Good
    - 40+:  Fair
    - 20+:  Poor
    - else: Critical
    """
    if score >= 80:
        return HealthClassification.EXCELLENT
    elif score >= 60:
        return HealthClassification.GOOD
    elif score >= 40:
        return HealthClassification.FAIR
    elif score >= 20:
        return HealthClassification.POOR
    return HealthClassification.CRITICAL


def count_negative_months(monthly_totals: Sequence[Tuple[Decimal, Decimal]]) -> int:
    """Months where expense exceeded a positive income; input is (income, expense) pairs"""
    return sum(1 for income, expense in monthly_totals if income > 0 and expense > income)


def expense_growth_trend(monthly_expenses: Sequence[Decimal]) -> Decimal:
    """
    Mean month-over-month growth of expenses, as a fraction.

    Input is ordered newest → oldest; months without expense are skipped.
    Fewer than two usable months yields 0.
    """
    months = [e for e in monthly_expenses if e > 0]
    if len(months) < 2:
        return ZERO

    variations = [(months[i] - months[i + 1]) / months[i + 1] for i in range(len(months) - 1)]
    return sum(variations, ZERO) / len(variations)


def _factor(name: str, weight: Decimal, fraction: Decimal, description: str) -> HealthFactor:
    return HealthFactor(
        name=name,
        weight=weight,
        value=round_money(fraction * weight),
        impact=factor_impact(fraction),
        description=description,
    )


def _pct(ratio: Decimal, places: int = 0) -> Decimal:
    return round_to(ratio * 100, places)


def calculate_health_score(
    profile: FinancialProfile,
    negative_months: int,
    trend: Decimal,
    now: datetime,
) -> HealthScoreSnapshot:
    """
    Combine six independently scaled factors into a 0-100 score.

    Weights:
    - 25: income commitment (expense / income), ramp 0.5 → 0.9
    - 15: expense volatility (stddev / income), ramp 0.1 → 0.5
    - 15: credit usage (open installments / income x multiplier), ramp 0.2 → 0.6
    - 15: negative months in the last 6
    - 15: free margin ((income - expense) / income), discrete bands
    - 15: expense trend (month-over-month growth), discrete bands
    """
    income = profile.average_monthly_income
    has_income = income > 0

    commitment = profile.average_monthly_expense / income if has_income else ONE
    volatility = profile.expense_volatility / income if has_income else Decimal("0.5")
    multiplier = 3 if profile.open_installment_count > 0 else 1
    credit_usage = min(profile.open_installment_total / (income * multiplier), ONE) if has_income else ZERO
    margin = (income - profile.average_monthly_expense) / income if has_income else ZERO

    commitment_fraction = inverse_ramp(commitment, Decimal("0.5"), Decimal("0.9"))
    volatility_fraction = inverse_ramp(volatility, Decimal("0.1"), Decimal("0.5"))
    credit_fraction = inverse_ramp(credit_usage, Decimal("0.2"), Decimal("0.6"))

    factors: List[HealthFactor] = [
        _factor(
            "Income commitment",
            WEIGHT_INCOME_COMMITMENT,
            commitment_fraction,
            f"Expenses take {_pct(commitment)}% of income",
        ),
        _factor(
            "Expense volatility",
            WEIGHT_EXPENSE_VOLATILITY,
            volatility_fraction,
            f"Monthly variation of {_pct(volatility)}%",
        ),
        _factor(
            "Credit usage",
            WEIGHT_CREDIT_USAGE,
            credit_fraction,
            f"{profile.open_installment_count} open installments ({profile.open_installment_total:,.2f})",
        ),
        _factor(
            "Negative months",
            WEIGHT_NEGATIVE_MONTHS,
            negative_months_fraction(negative_months),
            f"{negative_months} negative months in the last {NEGATIVE_MONTHS_WINDOW}",
        ),
        _factor(
            "Free margin",
            WEIGHT_FREE_MARGIN,
            free_margin_fraction(margin),
            f"Free margin of {_pct(margin)}% of income",
        ),
        _factor(
            "Expense trend",
            WEIGHT_EXPENSE_TREND,
            expense_trend_fraction(trend),
            f"Expenses growing {_pct(trend, 1)}%/month" if trend > 0 else "Expenses falling or stable",
        ),
    ]

    score = min(max(sum((f.value for f in factors), ZERO), ZERO), Decimal("100"))
    classification = classify_score(score)

    snapshot = HealthScoreSnapshot(
        score=score,
        classification=classification,
        factors=factors,
        updated_at=now,
        negative_months=negative_months,
        income_commitment_pct=round_money(commitment * 100),
        expense_trend_pct=round_money(trend * 100),
    )
    snapshot.summary = build_summary(
        snapshot, profile, commitment, volatility, credit_fraction, margin, trend
    )
    return snapshot


def build_summary(
    snapshot: HealthScoreSnapshot,
    profile: FinancialProfile,
    commitment: Decimal,
    volatility: Decimal,
    credit_fraction: Decimal,
    margin: Decimal,
    trend: Decimal,
) -> str:
    """Plain-language explanation of the score, split into strengths and warnings"""
    strengths: List[str] = []
    warnings: List[str] = []

    if commitment <= Decimal("0.5"):
        strengths.append(f"You spend {_pct(commitment)}% of what you earn.")
    elif commitment <= 1:
        warnings.append(f"You spend {_pct(commitment)}% of what you earn; aim for under 50%.")
    else:
        warnings.append(f"You are spending more than you earn ({_pct(commitment)}%).")

    if volatility <= Decimal("0.1"):
        strengths.append("Your spending is stable month to month.")
    else:
        warnings.append("Your spending swings a lot between months.")

    if profile.open_installment_count == 0:
        strengths.append("No open installments.")
    elif credit_fraction > Decimal("0.6"):
        strengths.append(f"{profile.open_installment_count} open installment(s), within a healthy range.")
    else:
        warnings.append(
            f"{profile.open_installment_count} open installment(s) totalling "
            f"{profile.open_installment_total:,.2f}; avoid new ones."
        )

    if snapshot.negative_months == 0:
        strengths.append(f"No negative month in the last {NEGATIVE_MONTHS_WINDOW}.")
    else:
        warnings.append(f"{snapshot.negative_months} negative month(s) in the last {NEGATIVE_MONTHS_WINDOW}.")

    if margin >= Decimal("0.3"):
        strengths.append(f"You keep {_pct(margin)}% of your income.")
    elif margin > 0:
        warnings.append(f"Your free margin is only {_pct(margin)}% of income.")
    else:
        warnings.append("You are not saving any money.")

    if trend <= 0:
        strengths.append("Expenses are falling or stable.")
    else:
        warnings.append(f"Expenses are growing {_pct(trend, 1)}% per month.")

    lines = [f"Financial health: {snapshot.classification.value} ({snapshot.score:.0f}/100)"]
    if strengths:
        lines.append("Going well:")
        lines.extend(f"  - {s}" for s in strengths)
    if warnings:
        lines.append("Needs attention:")
        lines.extend(f"  - {w}" for w in warnings)
    return "\n".join(lines)
