"""Goal impact: how much a hypothetical purchase delays active goals"""

import math
from datetime import date
from decimal import Decimal
from typing import List

from cashflow_advisor.domain.models import (
    FinancialProfile,
    Goal,
    GoalImpact,
    GoalKind,
    GoalStatus,
)
from cashflow_advisor.utils.date_utils import months_between
from cashflow_advisor.utils.money import ZERO, round_money

# A purchase above this share of the saved amount eats into the goal reserve
RESERVE_EROSION_RATIO = Decimal("0.1")


def months_to_deadline(deadline: date, today: date) -> int:
    """Calendar months until the deadline, never below 1"""
    return max(1, months_between(today, deadline))


def monthly_goal_reserve(goals: List[Goal], today: date) -> Decimal:
    """
    Amount that active goals claim from this month's budget.

    - MonthlyReserve: the full target amount every month
    - AccumulateAmount: straight-line remaining / months to deadline (0 once met)
    """
    reserve = ZERO
    for goal in goals:
        if goal.status != GoalStatus.ACTIVE:
            continue
        if goal.kind == GoalKind.MONTHLY_RESERVE:
            reserve += goal.target_amount
        elif goal.kind == GoalKind.ACCUMULATE_AMOUNT:
            if goal.remaining <= 0:
                continue
            reserve += round_money(goal.remaining / months_to_deadline(goal.deadline, today))
    return reserve


def calculate_goal_impacts(
    goals: List[Goal],
    profile: FinancialProfile,
    amount: Decimal,
    today: date,
) -> List[GoalImpact]:
    """
    Estimate the delay a purchase of `amount` causes on each active goal.

    Delay is ceil(amount / min(required monthly contribution, free margin)).
    Goals already met are skipped; monthly reserves are flagged but never
    delayed; no capacity to contribute means no measurable delay.
    """
    free_margin = max(profile.average_monthly_income - profile.average_monthly_expense, ZERO)
    impacts: List[GoalImpact] = []

    for goal in goals:
        if goal.status != GoalStatus.ACTIVE:
            continue
        remaining = goal.remaining
        if remaining <= 0:
            continue

        months = months_to_deadline(goal.deadline, today)
        required_before = round_money(remaining / months)

        if goal.kind == GoalKind.MONTHLY_RESERVE:
            below = amount > free_margin
            impacts.append(
                GoalImpact(
                    goal_name=goal.name,
                    delay_months=0,
                    monthly_required_before=required_before,
                    monthly_required_after=required_before,
                    reserve_below_minimum=below,
                    description=(
                        f'A purchase of {amount:,.2f} exceeds your monthly free margin and would cut into "{goal.name}".'
                        if below
                        else f'Goal "{goal.name}" is not directly affected.'
                    ),
                )
            )
            continue

        contribution = min(required_before, free_margin)
        if contribution <= 0:
            delay = 0
            required_after = required_before
        else:
            delay = math.ceil(amount / contribution)
            required_after = round_money(remaining / max(1, months - 1))

        below = (
            goal.kind == GoalKind.ACCUMULATE_AMOUNT
            and goal.current_amount > 0
            and amount > goal.current_amount * RESERVE_EROSION_RATIO
        )

        if delay == 0:
            description = f'Goal "{goal.name}": no significant impact.'
        elif delay == 1:
            description = (
                f'Goal "{goal.name}": about 1 month late '
                f"({required_before:,.2f}/month becomes {required_after:,.2f}/month)."
            )
        else:
            description = (
                f'Goal "{goal.name}": about {delay} months late. Monthly requirement rises '
                f"from {required_before:,.2f} to {required_after:,.2f}."
            )

        impacts.append(
            GoalImpact(
                goal_name=goal.name,
                delay_months=delay,
                monthly_required_before=required_before,
                monthly_required_after=required_after,
                reserve_below_minimum=below,
                description=description,
            )
        )

    return impacts
