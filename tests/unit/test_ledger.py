"""Unit tests for recharge and spend validation"""

import pytest
from datetime import date
from decimal import Decimal
from welfare_gateway.domain.exceptions import InsufficientBalanceError
from welfare_gateway.domain.fiscal import compute_fiscal_limits
from welfare_gateway.domain.ledger import (
    ensure_sufficient_balance,
    validate_employee_spend,
    validate_recharge,
    validate_spend,
)
from welfare_gateway.domain.models import Company, Employee


@pytest.fixture
def company() -> Company:
    return Company("company_1", total_credits=Decimal("3000"), used_credits=Decimal("850"))


@pytest.fixture
def fiscal_limit():
    """Four long-standing employees under a 774.69 ceiling -> 3098.76"""
    employees = [Employee(f"e{i}", "company_1", date(2020, 1, 1)) for i in range(4)]
    return compute_fiscal_limits(employees, reference_year=2024, annual_ceiling=Decimal("774.69"))


def test_recharge_exceeding_ceiling(company, fiscal_limit):
    """Test 3000 + 500 against 3098.76 exceeds by 401.24"""
    verdict = validate_recharge(company, Decimal("500"), fiscal_limit)

    assert verdict.projected_total == Decimal("3500")
    assert verdict.total_limit == Decimal("3098.76")
    assert verdict.exceeds is True
    assert verdict.excess_amount == Decimal("401.24")
    # 401.24 * 0.22 = 88.2728
    assert verdict.estimated_excess_tax == Decimal("88.27")


def test_recharge_within_ceiling(company, fiscal_limit):
    verdict = validate_recharge(company, 50, fiscal_limit)

    assert verdict.exceeds is False
    assert verdict.excess_amount == Decimal("0")
    assert verdict.estimated_excess_tax == Decimal("0.00")


def test_recharge_reaching_ceiling_exactly(company, fiscal_limit):
    """Test projection equal to the ceiling does not exceed it"""
    verdict = validate_recharge(company, Decimal("98.76"), fiscal_limit)

    assert verdict.projected_total == Decimal("3098.76")
    assert verdict.exceeds is False


def test_recharge_negative_amount_treated_as_zero(company, fiscal_limit):
    verdict = validate_recharge(company, Decimal("-200"), fiscal_limit)

    assert verdict.amount == Decimal("0.00")
    assert verdict.projected_total == Decimal("3000")


def test_recharge_float_amount_has_no_binary_artifacts(company, fiscal_limit):
    verdict = validate_recharge(company, 0.1, fiscal_limit)

    assert verdict.amount == Decimal("0.1")


def test_recharge_custom_excess_tax_rate(company, fiscal_limit):
    verdict = validate_recharge(company, Decimal("500"), fiscal_limit, excess_tax_rate=Decimal("0.5"))

    assert verdict.estimated_excess_tax == Decimal("200.62")


def test_spend_whole_balance(company):
    """Test available = 3000 - 850 = 2150 is spendable in full"""
    verdict = validate_spend(company, Decimal("2150"))

    assert verdict.available_balance == Decimal("2150")
    assert verdict.sufficient is True
    assert verdict.shortfall == Decimal("0.00")


def test_spend_one_cent_over(company):
    verdict = validate_spend(company, Decimal("2150.01"))

    assert verdict.sufficient is False
    assert verdict.shortfall == Decimal("0.01")


def test_spend_negative_amount_is_sufficient(company):
    verdict = validate_spend(company, -10)

    assert verdict.sufficient is True
    assert verdict.amount == Decimal("0.00")


def test_ensure_sufficient_balance_raises(company):
    """Test hard gate carries requested, available and shortfall"""
    with pytest.raises(InsufficientBalanceError) as exc_info:
        ensure_sufficient_balance(company, Decimal("5000"))

    assert exc_info.value.requested == Decimal("5000")
    assert exc_info.value.available == Decimal("2150")
    assert exc_info.value.shortfall == Decimal("2850")


def test_ensure_sufficient_balance_passes(company):
    verdict = ensure_sufficient_balance(company, 100)

    assert verdict.sufficient is True


def test_employee_spend_uses_current_points():
    employee = Employee("e1", "company_1", date(2022, 1, 1), allocated_credits=1000, used_credits=750)

    assert validate_employee_spend(employee, 250).sufficient is True

    verdict = validate_employee_spend(employee, 300)
    assert verdict.sufficient is False
    assert verdict.shortfall == Decimal("50")
