"""12-month cash-flow projection and purchase risk classification"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from cashflow_advisor.domain.installments import purchase_impact_by_month
from cashflow_advisor.domain.decision import INSTALLMENT_OPTIONS
from cashflow_advisor.domain.models import (
    AlternativeScenario,
    Confidence,
    DetailedRisk,
    Installment,
    PaymentMethod,
    ProjectionMonth,
    Recommendation,
    RiskLevel,
    SeasonalEvent,
    Simulation,
)
from cashflow_advisor.utils.date_utils import generate_month_range, month_label, month_start
from cashflow_advisor.utils.money import ZERO, round_money, round_to, total

HORIZON_MONTHS = 12
MAX_LISTED_EVENTS = 5

# (low-risk threshold, medium-risk threshold) as share of income, by data confidence
RISK_THRESHOLDS: Dict[Confidence, Tuple[Decimal, Decimal]] = {
    Confidence.HIGH: (Decimal("0.15"), Decimal("0.03")),
    Confidence.MEDIUM: (Decimal("0.20"), Decimal("0.05")),
    Confidence.LOW: (Decimal("0.30"), Decimal("0.10")),
}

MAX_VOLATILITY_RATIO = Decimal("2.0")
MINIMUM_RESERVE_RATIO = Decimal("0.20")
LOW_CONFIDENCE_PENALTY = Decimal("1.3")

_PAYMENT_ALIASES = {
    "cash": PaymentMethod.CASH,
    "pix": PaymentMethod.CASH,
    "dinheiro": PaymentMethod.CASH,
    "debit": PaymentMethod.DEBIT,
    "debito": PaymentMethod.DEBIT,
    "débito": PaymentMethod.DEBIT,
    "credit": PaymentMethod.CREDIT,
    "credito": PaymentMethod.CREDIT,
    "crédito": PaymentMethod.CREDIT,
}


def parse_payment_method(raw: Optional[str]) -> PaymentMethod:
    """Case-insensitive parse; anything unknown is treated as an immediate payment"""
    if not raw:
        return PaymentMethod.UNSPECIFIED
    return _PAYMENT_ALIASES.get(raw.strip().lower(), PaymentMethod.UNSPECIFIED)


def volatility_factor(volatility: Decimal, income: Decimal) -> Decimal:
    """1 + half the volatility/income ratio, ratio capped at 2 (factor at most 2x)"""
    if income <= 0 or volatility <= 0:
        return Decimal("1")
    ratio = min(volatility / income, MAX_VOLATILITY_RATIO)
    return 1 + ratio * Decimal("0.5")


def classify_risk(
    lowest_balance: Decimal,
    income: Decimal,
    volatility: Decimal = ZERO,
    confidence: Confidence = Confidence.MEDIUM,
) -> RiskLevel:
    """
    Risk from the lowest projected balance relative to income.

    Thresholds get stricter with scarce data (Low confidence) and with
    erratic spending (volatility).
    """
    if income <= 0:
        return RiskLevel.HIGH

    ratio = lowest_balance / income
    low_threshold, medium_threshold = RISK_THRESHOLDS[confidence]
    factor = volatility_factor(volatility, income)

    if ratio >= low_threshold * factor:
        return RiskLevel.LOW
    if ratio >= medium_threshold * factor:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def classify_detailed_risk(
    lowest_balance: Decimal,
    income: Decimal,
    volatility: Decimal,
    confidence: Confidence,
) -> DetailedRisk:
    """Four-level variant: Safe, Moderate, Risky (still non-negative), Critical"""
    if income <= 0:
        return DetailedRisk.CRITICAL

    ratio = lowest_balance / income
    factor = volatility_factor(volatility, income)
    safe = Decimal("0.25") * factor
    moderate = Decimal("0.10") * factor
    if confidence == Confidence.LOW:
        safe *= LOW_CONFIDENCE_PENALTY
        moderate *= LOW_CONFIDENCE_PENALTY

    if ratio >= safe:
        return DetailedRisk.SAFE
    if ratio >= moderate:
        return DetailedRisk.MODERATE
    if ratio >= 0:
        return DetailedRisk.RISKY
    return DetailedRisk.CRITICAL


def recommend(risk: RiskLevel, installments: int, amount: Decimal, income: Decimal) -> Recommendation:
    if risk == RiskLevel.LOW:
        return Recommendation.PROCEED
    if risk == RiskLevel.MEDIUM:
        return Recommendation.ADJUST_INSTALLMENTS if installments > 1 else Recommendation.POSTPONE
    if amount > income:
        return Recommendation.REDUCE_AMOUNT
    return Recommendation.POSTPONE


def project_months(
    start: date,
    income: Decimal,
    expense: Decimal,
    commitments_by_month: Dict[date, Decimal],
    impact_by_month: Dict[date, Decimal],
    horizon: int = HORIZON_MONTHS,
    seasonal_by_month: Optional[Dict[date, Decimal]] = None,
) -> List[ProjectionMonth]:
    """
    Monthly rows from the month of `start`, with and without the purchase.

    Each month's expense is the average expense plus that month's seasonal
    adjustment (extra seasonal expenses minus seasonal income).
    """
    seasonal_by_month = seasonal_by_month or {}
    rows = []
    for month in generate_month_range(start, horizon):
        commitments = commitments_by_month.get(month, ZERO)
        impact = impact_by_month.get(month, ZERO)
        month_expense = expense + seasonal_by_month.get(month, ZERO)
        base = income - month_expense - commitments
        with_purchase = base - impact
        impact_pct = round_money(impact / income * 100) if income > 0 else ZERO

        rows.append(
            ProjectionMonth(
                month=month,
                income=round_money(income),
                expense=round_money(month_expense),
                existing_commitments=round_money(commitments),
                base_balance=round_money(base),
                purchase_impact=round_money(impact),
                balance_with_purchase=round_money(with_purchase),
                impact_pct=impact_pct,
            )
        )
    return rows


def seasonal_adjustment_by_month(
    events: List[SeasonalEvent],
    start: date,
    horizon: int = HORIZON_MONTHS,
) -> Dict[date, Decimal]:
    """Net seasonal expense per projected month, matched on calendar month"""
    by_month: Dict[date, Decimal] = {}
    for month in generate_month_range(start, horizon):
        adjustment = total(e.signed_amount for e in events if e.month == month.month)
        if adjustment != 0:
            by_month[month] = adjustment
    return by_month


def events_in_horizon(
    events: List[SeasonalEvent],
    start: date,
    horizon: int = HORIZON_MONTHS,
) -> List[SeasonalEvent]:
    months = {m.month for m in generate_month_range(start, horizon)}
    return [e for e in events if e.month in months]


def worst_month(rows: List[ProjectionMonth]) -> ProjectionMonth:
    """Row with the lowest balance; earliest month wins ties"""
    return min(rows, key=lambda r: r.balance_with_purchase)


def average_slack(rows: List[ProjectionMonth]) -> Decimal:
    if not rows:
        return ZERO
    return round_money(total(r.balance_with_purchase for r in rows) / len(rows))


def commitments_by_month(installments: List[Installment]) -> Dict[date, Decimal]:
    """Sum installment amounts per due month"""
    by_month: Dict[date, Decimal] = {}
    for inst in installments:
        key = month_start(inst.due_date)
        by_month[key] = by_month.get(key, ZERO) + inst.amount
    return by_month


def negative_month_probability(rows: List[ProjectionMonth]) -> Decimal:
    if not rows:
        return ZERO
    negatives = sum(1 for r in rows if r.balance_with_purchase < 0)
    return round_to(Decimal(negatives) / len(rows) * 100, 1)


def minimum_reserve_gap(lowest_balance: Decimal, income: Decimal) -> Decimal:
    """Distance of the lowest balance from a reserve of 20% of income"""
    return round_money(lowest_balance - income * MINIMUM_RESERVE_RATIO)


def alternative_scenarios(
    start: date,
    amount: Decimal,
    planned_date: date,
    income: Decimal,
    expense: Decimal,
    commitments_by_month: Dict[date, Decimal],
    volatility: Decimal,
    confidence: Confidence,
    horizon: int = HORIZON_MONTHS,
    seasonal_by_month: Optional[Dict[date, Decimal]] = None,
) -> List[AlternativeScenario]:
    """Re-run the projection for each standard credit installment count"""
    scenarios = []
    for count in INSTALLMENT_OPTIONS:
        impact = purchase_impact_by_month(amount, True, count, planned_date)
        rows = project_months(start, income, expense, commitments_by_month, impact, horizon, seasonal_by_month)
        worst = worst_month(rows)
        scenarios.append(
            AlternativeScenario(
                installments=count,
                installment_amount=round_money(amount / count),
                risk=classify_risk(worst.balance_with_purchase, income, volatility, confidence),
                lowest_balance=worst.balance_with_purchase,
                worst_month=worst.month,
            )
        )
    return scenarios


def best_alternative(
    scenarios: List[AlternativeScenario],
    requested_installments: int,
) -> Optional[AlternativeScenario]:
    """Scenario with the highest lowest-balance, if it differs from what was asked"""
    if not scenarios:
        return None
    best = max(scenarios, key=lambda s: s.lowest_balance)
    return best if best.installments != requested_installments else None


RECOMMENDATION_TEXT = {
    Recommendation.PROCEED: "You can go ahead with the purchase.",
    Recommendation.ADJUST_INSTALLMENTS: "Consider adjusting the number of installments.",
    Recommendation.POSTPONE: "Postpone if you can.",
    Recommendation.REDUCE_AMOUNT: "High amount - consider a more affordable option.",
}


def format_simulation_summary(simulation: Simulation, days_of_history: int) -> str:
    """Human-readable digest of a simulation"""
    if simulation.installment_count > 1:
        per_installment = simulation.amount / simulation.installment_count
        payment = f" in {simulation.installment_count}x of {per_installment:,.2f}"
    else:
        payment = " at once"

    lines = [
        "Purchase analysis",
        f"Item: {simulation.description}",
        f"Amount: {simulation.amount:,.2f}{payment}",
        "",
        f"Worst projected month: {month_label(simulation.worst_month)} ({simulation.lowest_balance:,.2f})",
        f"Average monthly slack: {simulation.average_slack:,.2f}",
        f"Risk: {simulation.risk.value}"
        + (f" ({simulation.detailed_risk.value})" if simulation.detailed_risk else ""),
        f"Confidence: {simulation.confidence.value} ({days_of_history} days of history)",
    ]
    if simulation.health_score > 0:
        lines.append(f"Health score: {simulation.health_score:.0f}/100")
    if simulation.negative_month_probability > 0:
        lines.append(f"Chance of a negative month: {simulation.negative_month_probability:.1f}%")

    lines += ["", RECOMMENDATION_TEXT[simulation.recommendation]]

    if simulation.seasonal_events:
        lines += ["", "Seasonal events in the period:"]
        for event in simulation.seasonal_events[:MAX_LISTED_EVENTS]:
            sign = "+" if event.is_income else "-"
            month = calendar.month_name[event.month]
            lines.append(f"  {sign} {event.description}: {month} ({event.average_amount:,.2f})")

    delayed = [g for g in simulation.goal_impacts or [] if g.delay_months > 0]
    if delayed:
        lines += ["", "Goal impact:"]
        lines.extend(f"  - {g.description}" for g in delayed)

    if simulation.confidence == Confidence.LOW:
        lines += ["", "Preliminary forecast - accuracy improves with more data."]

    best = simulation.best_alternative
    if best is not None:
        lines += [
            "",
            f"Better option: {best.installments}x of {best.installment_amount:,.2f} "
            f"({best.risk.value} risk, lowest balance {best.lowest_balance:,.2f})",
        ]

    return "\n".join(lines)
