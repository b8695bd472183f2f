"""Statutory tax-free ceiling calculations for welfare credits"""

import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, Optional

from welfare_gateway.domain.clock import Clock, SystemClock
from welfare_gateway.domain.models import (
    Company,
    Employee,
    EmployeeFiscalLimit,
    FiscalLimit,
    FiscalSummary,
)
from welfare_gateway.utils.date_utils import months_remaining_in_year
from welfare_gateway.utils.money import Number, round_money, to_decimal

logger = logging.getLogger(__name__)

# Art. 51 TUIR fringe-benefit threshold, per employee per year
STATUTORY_ANNUAL_CEILING = Decimal("258.23")
EXCESS_TAX_RATE = Decimal("0.22")  # IRPEF bracket applied to benefits over the ceiling


def compute_fiscal_limits(
    employees: Iterable[Employee],
    reference_year: Optional[int] = None,
    annual_ceiling: Number = STATUTORY_ANNUAL_CEILING,
    clock: Optional[Clock] = None,
) -> FiscalLimit:
    """
    Compute each active employee's prorated tax-free ceiling and the company total.

    Rules:
    - Inactive employees are excluded (contribute 0, not a partial amount)
    - Hired before reference_year: full 12/12 of the ceiling
    - Hired during reference_year: (13 - hire_month)/12, hire month counts in full
    - Missing hire date: treated as hired at the start of reference_year

    Personal limits are rounded half-up to cents; total_limit is the unrounded sum
    rounded once, so it can differ from the sum of the rounded personal limits by
    at most half a cent per employee.

    Example:
        ceiling 258.23, hired 2024-09-10, reference 2024
        months_remaining = 13 - 9 = 4
        258.23 * 4 / 12 = 86.0766... -> 86.08
    """
    if reference_year is None:
        reference_year = (clock or SystemClock()).today().year

    ceiling = to_decimal(annual_ceiling)
    limits = []
    unrounded_total = Decimal("0")

    for employee in employees:
        if not employee.is_active:
            continue

        if employee.hire_date is None:
            logger.debug(
                "Missing hire date, using full-year ceiling",
                extra={"employee_id": employee.employee_id, "reference_year": reference_year},
            )

        months = months_remaining_in_year(employee.hire_date, reference_year)
        personal = ceiling * months / 12
        unrounded_total += personal

        limits.append(
            EmployeeFiscalLimit(
                employee_id=employee.employee_id,
                months_remaining=months,
                personal_limit=round_money(personal),
            )
        )

    return FiscalLimit(
        reference_year=reference_year,
        annual_ceiling=ceiling,
        employees=limits,
        total_limit=round_money(unrounded_total),
    )


def summarize_fiscal_position(
    company: Company,
    fiscal_limit: FiscalLimit,
    months_left: Optional[int] = None,
    excess_tax_rate: Number = EXCESS_TAX_RATE,
    clock: Optional[Clock] = None,
) -> FiscalSummary:
    """
    Company position against its tax-free ceiling, as shown on the credits screen.

    - remaining_tax_free: ceiling not yet consumed by spending (never negative)
    - recommended_monthly: remaining_tax_free spread over months_left, floored to euros
    - estimated_tax_savings: tax avoided on benefits already delivered
    """
    if months_left is None:
        today = (clock or SystemClock()).today()
        months_left = months_remaining_in_year(today, fiscal_limit.reference_year)

    total_limit = fiscal_limit.total_limit
    loaded = company.total_credits
    used = company.used_credits
    rate = to_decimal(excess_tax_rate)

    remaining = max(Decimal("0"), total_limit - used)

    if months_left > 0:
        recommended = (remaining / months_left).quantize(Decimal("1"), rounding=ROUND_FLOOR)
    else:
        recommended = Decimal("0")

    over_limit = loaded > total_limit
    utilization = used / total_limit * 100 if total_limit > 0 else Decimal("0")

    return FiscalSummary(
        total_limit=total_limit,
        loaded=loaded,
        used=used,
        remaining_tax_free=round_money(remaining),
        recommended_monthly=round_money(recommended),
        over_limit=over_limit,
        over_limit_amount=round_money(loaded - total_limit) if over_limit else Decimal("0.00"),
        estimated_tax_savings=round_money(used * rate),
        utilization_percent=round_money(utilization),
    )
