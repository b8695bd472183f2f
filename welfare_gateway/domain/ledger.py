"""Recharge and spend checks against fiscal ceiling and company balance"""

import logging
from decimal import Decimal

from welfare_gateway.domain.exceptions import InsufficientBalanceError
from welfare_gateway.domain.fiscal import EXCESS_TAX_RATE
from welfare_gateway.domain.models import (
    Company,
    Employee,
    FiscalLimit,
    RechargeVerdict,
    SpendVerdict,
)
from welfare_gateway.utils.money import Number, round_money, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _non_negative(amount: Number) -> Decimal:
    value = to_decimal(amount)
    if value < 0:
        logger.debug("Negative amount normalized to zero", extra={"amount": str(value)})
        return ZERO
    return value


def validate_recharge(
    company: Company,
    proposed_amount: Number,
    fiscal_limit: FiscalLimit,
    excess_tax_rate: Number = EXCESS_TAX_RATE,
) -> RechargeVerdict:
    """
    Project a recharge against the company's tax-free ceiling.

    Advisory only: exceeding the ceiling is legal (the excess is taxed as salary),
    so callers use the verdict to ask for explicit confirmation, never to block.

    Example:
        total 3000, recharge 500, limit 3098.76
        projected 3500 -> exceeds by 401.24 -> tax 401.24 * 0.22 = 88.27
    """
    amount = _non_negative(proposed_amount)
    projected = company.total_credits + amount
    total_limit = fiscal_limit.total_limit

    exceeds = projected > total_limit
    excess = projected - total_limit if exceeds else ZERO

    return RechargeVerdict(
        current_total=company.total_credits,
        amount=amount,
        projected_total=projected,
        total_limit=total_limit,
        exceeds=exceeds,
        excess_amount=excess,
        estimated_excess_tax=round_money(excess * to_decimal(excess_tax_rate)),
    )


def _check_balance(available: Decimal, proposed_amount: Number) -> SpendVerdict:
    amount = _non_negative(proposed_amount)
    sufficient = amount <= available
    return SpendVerdict(
        available_balance=available,
        amount=amount,
        sufficient=sufficient,
        shortfall=ZERO if sufficient else amount - available,
    )


def validate_spend(company: Company, proposed_amount: Number) -> SpendVerdict:
    """Check a spend or distribution against total_credits - used_credits"""
    return _check_balance(company.available_balance, proposed_amount)


def validate_employee_spend(employee: Employee, points: Number) -> SpendVerdict:
    """Check a redemption against the employee's unspent points"""
    return _check_balance(Decimal(employee.current_points), points)


def ensure_sufficient_balance(company: Company, proposed_amount: Number) -> SpendVerdict:
    """
    Hard gate for spending company money.

    Must be called with a balance re-read inside the same database transaction
    that performs the write.

    Raises:
        InsufficientBalanceError: amount exceeds the available balance
    """
    verdict = validate_spend(company, proposed_amount)
    if not verdict.sufficient:
        raise InsufficientBalanceError(requested=verdict.amount, available=verdict.available_balance)
    return verdict
