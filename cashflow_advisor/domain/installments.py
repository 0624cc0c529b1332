"""Installment schedule generation for credit purchases"""

from datetime import date
from decimal import Decimal
from typing import Dict, List

from cashflow_advisor.domain.models import Installment
from cashflow_advisor.utils.date_utils import add_months, month_start
from cashflow_advisor.utils.money import ZERO, round_money


def split_evenly(amount: Decimal, num_installments: int) -> List[Decimal]:
    """
    Split an amount into equal cent-rounded parts.

    The last part absorbs the rounding remainder so the parts always sum to
    the original amount.

    Example:
        1000.00 / 3 → [333.33, 333.33, 333.34]
    """
    if num_installments < 1:
        return []

    base_amount = round_money(amount / num_installments)
    remainder = amount - base_amount * num_installments
    return [
        base_amount + (remainder if i == num_installments - 1 else ZERO)
        for i in range(num_installments)
    ]


def generate_installment_plan(
    amount: Decimal,
    num_installments: int,
    purchase_date: date,
) -> List[Installment]:
    """
    Generate monthly installments for a credit purchase.

    Requirements:
    - Equal installments, last one absorbs the rounding remainder
    - First installment is due one month after the purchase date
    - One installment per month after that

    Args:
        amount: Total purchase amount
        num_installments: Number of payments
        purchase_date: Date the purchase was made

    Returns:
        List of unpaid Installment objects with due dates and amounts
    """
    if amount <= 0 or num_installments < 1:
        return []

    return [
        Installment(
            due_date=add_months(purchase_date, i + 1),
            amount=part,
            sequence=i + 1,
            total_in_series=num_installments,
        )
        for i, part in enumerate(split_evenly(amount, num_installments))
    ]


def purchase_impact_by_month(
    amount: Decimal,
    is_credit: bool,
    num_installments: int,
    planned_date: date,
) -> Dict[date, Decimal]:
    """
    Cash outflow of a prospective purchase keyed by month start.

    - Cash/debit/unspecified: full amount in the month of purchase
    - Credit, single installment: full amount on next month's statement
    - Credit, n installments: one share in each of the n following months
    """
    impact: Dict[date, Decimal] = {}

    if is_credit and num_installments > 1:
        for inst in generate_installment_plan(amount, num_installments, planned_date):
            key = month_start(inst.due_date)
            impact[key] = impact.get(key, ZERO) + inst.amount
    elif is_credit:
        impact[month_start(add_months(planned_date, 1))] = amount
    else:
        impact[month_start(planned_date)] = amount

    return impact
