"""Spend decision engine - layered verdict for small expenses, scenario table for large ones"""

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from cashflow_advisor.domain.models import (
    Confidence,
    DecisionLayer,
    DecisionResult,
    FullPurchaseAnalysis,
    LayerVote,
    PurchaseScenario,
    RiskLevel,
    Verdict,
)
from cashflow_advisor.utils.money import ZERO, round_money, round_to

# Fast path applies below 5% of income AND below 15% of the free balance
FAST_PATH_INCOME_RATIO = Decimal("0.05")
FAST_PATH_FREE_BALANCE_RATIO = Decimal("0.15")

# Baseline caution: purchase takes >30% of free balance, or leaves less per
# remaining day than 20% of the daily income budget
CAUTION_FREE_BALANCE_RATIO = Decimal("0.30")
CAUTION_DAILY_BUDGET_RATIO = Decimal("0.20")

INSTALLMENT_OPTIONS = (2, 3, 4, 6, 8, 10, 12)

LOW_RISK_SLACK_RATIO = Decimal("0.20")
MEDIUM_RISK_SLACK_RATIO = Decimal("0.05")

HISTORY_MONTHS = 3


def effective_income(declared_income: Optional[Decimal], average_income: Decimal) -> Decimal:
    """Declared monthly income acts as a floor over the computed average"""
    if declared_income is not None and declared_income > 0:
        return max(declared_income, average_income)
    return average_income


def free_balance(
    projected_income: Decimal,
    month_expense: Decimal,
    commitments: Decimal,
    goal_reserve: Decimal,
) -> Decimal:
    return projected_income - month_expense - commitments - goal_reserve


def free_balance_ratio(amount: Decimal, balance: Decimal) -> Decimal:
    """Share of the free balance the purchase takes (1 when nothing is free)"""
    return amount / balance if balance > 0 else Decimal("1")


def should_use_fast_path(
    amount: Decimal,
    income: Decimal,
    balance: Decimal,
    is_installment: bool,
) -> bool:
    """
    Small, single-payment purchases get the quick layered verdict.

    Installment purchases always take the full evaluation. Users without any
    known income cannot be scaled against and get the quick verdict.
    """
    if is_installment:
        return False
    if income <= 0:
        return True

    return (
        amount / income < FAST_PATH_INCOME_RATIO
        and free_balance_ratio(amount, balance) < FAST_PATH_FREE_BALANCE_RATIO
    )


def baseline_verdict(
    amount: Decimal,
    balance: Decimal,
    projected_income: Decimal,
    days_remaining: int,
    month_days: int,
) -> Verdict:
    """Mathematical layer: can this month's free balance absorb the purchase?"""
    if balance <= 0 or amount > balance:
        return Verdict.HOLD

    daily_left = (balance - amount) / max(1, days_remaining)
    daily_budget = projected_income / month_days
    if (
        free_balance_ratio(amount, balance) > CAUTION_FREE_BALANCE_RATIO
        or daily_left < daily_budget * CAUTION_DAILY_BUDGET_RATIO
    ):
        return Verdict.CAUTION
    return Verdict.PROCEED


def historical_variation(month_expense: Decimal, amount: Decimal, historical_mean: Decimal) -> Decimal:
    """% by which this month's spending (with the purchase) exceeds the recent mean"""
    if historical_mean <= 0:
        return ZERO
    return (month_expense + amount - historical_mean) / historical_mean * 100


def historical_vote(variation_pct: Decimal) -> Verdict:
    if variation_pct > 30:
        return Verdict.HOLD
    elif variation_pct > 15:
        return Verdict.CAUTION
    return Verdict.PROCEED


def endpoint_trend_pct(previous_months: Sequence[Decimal]) -> Decimal:
    """
    Growth between three months ago and last month, in percent.

    `previous_months` is ordered newest first: [m-1, m-2, m-3]. The middle
    month does not affect the result.
    """
    if len(previous_months) < HISTORY_MONTHS or previous_months[2] <= 0:
        return ZERO
    newest, oldest = previous_months[0], previous_months[2]
    return round_to((newest - oldest) / oldest * 100, 1)


def trend_vote(trend_pct: Decimal) -> Verdict:
    if trend_pct > 20:
        return Verdict.HOLD
    elif trend_pct > 10:
        return Verdict.CAUTION
    return Verdict.PROCEED


def behavioral_vote(score: Decimal) -> Verdict:
    if score >= 70:
        return Verdict.PROCEED
    elif score >= 40:
        return Verdict.CAUTION
    return Verdict.HOLD


def consolidate(votes: List[LayerVote]) -> Verdict:
    """
    Combine layer votes into the final verdict.

    The mathematical layer is a hard ceiling: if it holds, the result holds.
    Otherwise two holds hold, one hold or two cautions caution, and anything
    else keeps the mathematical verdict.
    """
    mathematical = next(v.verdict for v in votes if v.layer == DecisionLayer.MATHEMATICAL)
    if mathematical == Verdict.HOLD:
        return Verdict.HOLD

    holds = sum(1 for v in votes if v.verdict == Verdict.HOLD)
    cautions = sum(1 for v in votes if v.verdict == Verdict.CAUTION)
    if holds >= 2:
        return Verdict.HOLD
    if holds >= 1 or cautions >= 2:
        return Verdict.CAUTION
    return mathematical


def category_limit_alert(
    category_name: str,
    spent: Decimal,
    amount: Decimal,
    limit: Decimal,
) -> Optional[str]:
    """Informational alert when a purchase pushes a category near or past its limit"""
    if limit <= 0:
        return None

    after = spent + amount
    pct = after / limit * 100

    if after > limit:
        return (
            f"LIMIT EXCEEDED: {category_name} would reach {after:,.2f} of {limit:,.2f} "
            f"({spent:,.2f} + {amount:,.2f})."
        )
    if pct >= 90:
        return f"WARNING: this takes {category_name} to {pct:.0f}% of its limit ({after:,.2f} of {limit:,.2f})."
    if pct >= 70:
        return f"Notice: {category_name} would be at {pct:.0f}% of its limit ({after:,.2f} of {limit:,.2f})."
    return None


def at_once_risk(balance_after: Decimal, income: Decimal) -> RiskLevel:
    if balance_after < 0:
        return RiskLevel.HIGH
    if balance_after > income * LOW_RISK_SLACK_RATIO:
        return RiskLevel.LOW
    return RiskLevel.MEDIUM


def slack_risk(slack: Decimal, income: Decimal) -> RiskLevel:
    if slack >= income * LOW_RISK_SLACK_RATIO:
        return RiskLevel.LOW
    elif slack >= income * MEDIUM_RISK_SLACK_RATIO:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def build_purchase_scenarios(
    amount: Decimal,
    balance: Decimal,
    income: Decimal,
    average_expense: Decimal,
    commitments: Decimal,
) -> List[PurchaseScenario]:
    """At-once scenario first, then one per installment option"""
    remaining = balance - amount
    scenarios = [
        PurchaseScenario(
            installments=1,
            installment_amount=amount,
            risk=at_once_risk(remaining, income),
            monthly_slack=round_money(remaining),
        )
    ]

    for count in INSTALLMENT_OPTIONS:
        installment = round_money(amount / count)
        slack = income - average_expense - commitments - installment
        scenarios.append(
            PurchaseScenario(
                installments=count,
                installment_amount=installment,
                risk=slack_risk(slack, income),
                monthly_slack=round_money(slack),
            )
        )

    return scenarios


def recommend_installments(scenarios: List[PurchaseScenario]) -> Tuple[Optional[int], Optional[RiskLevel]]:
    """Smallest installment count reaching Low risk, else Medium, else none"""
    split = [s for s in scenarios if s.installments > 1]
    for risk in (RiskLevel.LOW, RiskLevel.MEDIUM):
        for scenario in split:
            if scenario.risk == risk:
                return scenario.installments, risk
    return None, None


def format_full_report(analysis: FullPurchaseAnalysis) -> str:
    lines = [
        f"Analysis: {analysis.description} - {analysis.amount:,.2f}",
        "",
        f"Income: {analysis.projected_income:,.2f} | Spent this month: {analysis.month_expense:,.2f}",
        f"Available: {analysis.free_balance:,.2f} for {analysis.days_remaining} days",
    ]
    if analysis.goal_reserve > 0:
        lines.append(f"Goal reserve: {analysis.goal_reserve:,.2f}")

    at_once = analysis.at_once
    lines += ["", f"At once: {at_once.risk.value} risk"]
    if at_once.monthly_slack < 0:
        lines.append(f"Not feasible - {abs(at_once.monthly_slack):,.2f} short")
    else:
        lines.append(f"{at_once.monthly_slack:,.2f} would be left this month")

    lines += ["", "Installments:"]
    for s in analysis.scenarios[1:]:
        lines.append(
            f"  {s.installments}x {s.installment_amount:,.2f} - {s.risk.value} risk "
            f"(slack ~{s.monthly_slack:,.2f}/month)"
        )

    lines.append("")
    if analysis.recommended_risk == RiskLevel.LOW:
        lines.append(f"Recommendation: from {analysis.recommended_installments}x the risk is low.")
    elif analysis.recommended_risk == RiskLevel.MEDIUM:
        lines.append(f"Recommendation: {analysis.recommended_installments}x is feasible but needs caution.")
    else:
        lines.append("Recommendation: this purchase is risky right now. Consider postponing.")

    if analysis.confidence == Confidence.LOW:
        lines += ["", "Preliminary analysis - accuracy improves with more data."]

    return "\n".join(lines)


def format_quick_summary(result: DecisionResult, description: Optional[str]) -> str:
    label = description.strip() if description and description.strip() else "this expense"
    header = {
        Verdict.PROCEED: "Approved",
        Verdict.CAUTION: "Approved with caution",
        Verdict.HOLD: "Not recommended",
    }[result.verdict]

    lines = [f"{header}: {label} of {result.amount:,.2f}", ""]

    if result.verdict == Verdict.HOLD:
        if result.free_balance <= 0:
            lines.append(f"Your free balance this month is already negative ({result.free_balance:,.2f}).")
        else:
            lines.append(
                f"Only {result.free_balance:,.2f} left for {result.days_remaining} days - "
                f"this would take {result.free_balance_pct:.0f}%."
            )
    elif result.verdict == Verdict.CAUTION:
        lines.append(f"Takes {result.free_balance_pct:.0f}% of the available balance.")
    else:
        lines.append("Low impact on the budget.")

    lines.append(f"Spent this month: {result.month_expense:,.2f} of {result.projected_income:,.2f}")
    if result.verdict != Verdict.HOLD:
        lines.append(f"Available: {result.free_balance:,.2f} for {result.days_remaining} days")
    if result.verdict == Verdict.CAUTION:
        daily = (result.free_balance - result.amount) / max(1, result.days_remaining)
        lines.append(f"Daily estimate: ~{daily:,.2f}/day")
        if result.goal_reserve > 0:
            lines.append(f"Goal reserve: {result.goal_reserve:,.2f}")

    if result.health_score > 0:
        lines.append(f"Health score: {result.health_score:.0f}/100")
    if result.variation_vs_history_pct != 0:
        sign = "+" if result.variation_vs_history_pct > 0 else ""
        lines.append(f"Versus average: {sign}{result.variation_vs_history_pct:.1f}%")
    delayed = [g.description for g in result.goal_impacts or [] if g.delay_months > 0]
    if delayed:
        lines.append("Goal impact: " + "; ".join(delayed))
    if result.limit_alert:
        lines += ["", result.limit_alert]

    return "\n".join(lines)
