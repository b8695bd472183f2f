"""Credit pool distribution across employees"""

import logging
from typing import List, Mapping, Optional, Sequence, Union

from welfare_gateway.domain.exceptions import InvalidEntityError, PoolExceededError
from welfare_gateway.domain.ledger import ensure_sufficient_balance
from welfare_gateway.domain.models import (
    Company,
    DistributionEntry,
    DistributionPlan,
    DistributionPolicy,
    Employee,
    SpendVerdict,
)
from welfare_gateway.utils.money import Number, floor_points, to_decimal

logger = logging.getLogger(__name__)


def _equal_shares(pool: int, employees: Sequence[Employee]) -> List[int]:
    per_employee = pool // len(employees)
    return [per_employee] * len(employees)


def _proportional_shares(pool: int, employees: Sequence[Employee]) -> Optional[List[int]]:
    """Shares weighted by current points, or None when nobody holds any points"""
    total_current = sum(e.current_points for e in employees)
    if total_current == 0:
        return None
    # Integer arithmetic: floor(pool * current / total) without float drift
    return [pool * e.current_points // total_current for e in employees]


def _manual_points(employee_id: str, amount: Number) -> int:
    """Whole points as given; negatives become 0"""
    value = to_decimal(amount)
    if value != value.to_integral_value():
        raise InvalidEntityError(f"Manual amount for {employee_id} is not a whole number of points: {amount}")
    return max(0, int(value))


def _manual_shares(pool: int, employees: Sequence[Employee], manual_amounts: Mapping[str, Number]) -> List[int]:
    known = {e.employee_id for e in employees}
    unknown = sorted(set(manual_amounts) - known)
    if unknown:
        logger.warning(
            "Ignoring manual amounts for employees outside the distribution",
            extra={"employee_ids": unknown},
        )

    shares = [_manual_points(e.employee_id, manual_amounts.get(e.employee_id, 0)) for e in employees]

    requested = sum(shares)
    if requested > pool:
        raise PoolExceededError(requested=requested, pool=pool)
    return shares


def plan_distribution(
    pool: Number,
    employees: Sequence[Employee],
    policy: Union[DistributionPolicy, str],
    manual_amounts: Optional[Mapping[str, Number]] = None,
) -> DistributionPlan:
    """
    Split a credit pool into whole-point grants per employee.

    Policies:
    - equal: floor(pool / n) each, remainder reported as residual
    - proportional: floor(pool * current_i / sum(current)), falls back to equal
      when every employee holds 0 points
    - manual: caller amounts pass through unchanged, so they must be whole points;
      negatives count as 0 and a total above the pool raises

    The residual is never assigned to an arbitrary employee, and the plan always
    satisfies sum(new_points) + residual == pool.

    Example:
        pool 1000, current points [0, 0, 0], proportional
        -> equal fallback -> [333, 333, 333], residual 1

    Raises:
        PoolExceededError: manual amounts sum above the pool (carries the overage)
        InvalidEntityError: a manual amount has a fractional part
    """
    policy = DistributionPolicy(policy)
    points_pool = floor_points(pool)
    fallback = None

    if not employees:
        shares: List[int] = []
    elif policy == DistributionPolicy.EQUAL:
        shares = _equal_shares(points_pool, employees)
    elif policy == DistributionPolicy.PROPORTIONAL:
        proportional = _proportional_shares(points_pool, employees)
        if proportional is None:
            fallback = DistributionPolicy.EQUAL
            shares = _equal_shares(points_pool, employees)
        else:
            shares = proportional
    else:
        shares = _manual_shares(points_pool, employees, manual_amounts or {})

    entries = [
        DistributionEntry(
            employee_id=employee.employee_id,
            current_points=employee.current_points,
            new_points=share,
            resulting_total=employee.current_points + share,
        )
        for employee, share in zip(employees, shares)
    ]

    plan = DistributionPlan(
        policy=policy,
        pool=points_pool,
        entries=entries,
        residual=points_pool - sum(shares),
        fallback_policy=fallback,
    )

    logger.debug(
        "Distribution planned",
        extra={
            "policy": policy.value,
            "fallback_policy": fallback.value if fallback else None,
            "pool": points_pool,
            "allocated": plan.total_allocated,
            "residual": plan.residual,
        },
    )
    return plan


def check_plan_affordable(company: Company, plan: DistributionPlan) -> SpendVerdict:
    """
    Re-validate a plan against a freshly read company balance before it is written.

    Raises:
        InsufficientBalanceError: the balance shrank below the plan total
    """
    return ensure_sufficient_balance(company, plan.total_allocated)
