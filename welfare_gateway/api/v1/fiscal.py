"""GET /v1/companies/{company_id}/fiscal-* - Tax-free ceiling projections"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from welfare_gateway.api.dependencies import get_clock, load_company
from welfare_gateway.api.v1.schemas import (
    EmployeeFiscalLimitSchema,
    FiscalLimitResponse,
    FiscalSummaryResponse,
)
from welfare_gateway.config import settings
from welfare_gateway.domain.clock import Clock
from welfare_gateway.domain.fiscal import compute_fiscal_limits, summarize_fiscal_position
from welfare_gateway.infrastructure.database.repositories import CompanyRepository, EmployeeRepository
from welfare_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/companies/{company_id}/fiscal-limits", response_model=FiscalLimitResponse)
def get_fiscal_limits(
    company_id: str,
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Reference year, defaults to current"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Prorated tax-free ceiling per active employee and for the whole company.

    Recomputed on every request from hire dates; nothing is cached.
    """
    load_company(db, company_id)
    employees = [EmployeeRepository.to_domain(r) for r in EmployeeRepository(db).list_by_company(company_id)]

    fiscal_limit = compute_fiscal_limits(
        employees,
        reference_year=year,
        annual_ceiling=settings.statutory_annual_ceiling,
        clock=clock,
    )

    return FiscalLimitResponse(
        company_id=company_id,
        reference_year=fiscal_limit.reference_year,
        annual_ceiling=fiscal_limit.annual_ceiling,
        total_limit=fiscal_limit.total_limit,
        employees=[
            EmployeeFiscalLimitSchema(
                employee_id=item.employee_id,
                months_remaining=item.months_remaining,
                personal_limit=item.personal_limit,
            )
            for item in fiscal_limit.employees
        ],
    )


@router.get("/companies/{company_id}/fiscal-summary", response_model=FiscalSummaryResponse)
def get_fiscal_summary(
    company_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Current-year position: remaining tax-free budget, monthly pace, tax savings"""
    company = CompanyRepository.to_domain(load_company(db, company_id))
    employees = [EmployeeRepository.to_domain(r) for r in EmployeeRepository(db).list_by_company(company_id)]

    fiscal_limit = compute_fiscal_limits(
        employees, annual_ceiling=settings.statutory_annual_ceiling, clock=clock
    )
    summary = summarize_fiscal_position(
        company, fiscal_limit, excess_tax_rate=settings.excess_tax_rate, clock=clock
    )

    return FiscalSummaryResponse(
        company_id=company_id,
        reference_year=fiscal_limit.reference_year,
        total_limit=summary.total_limit,
        loaded=summary.loaded,
        used=summary.used,
        remaining_tax_free=summary.remaining_tax_free,
        recommended_monthly=summary.recommended_monthly,
        over_limit=summary.over_limit,
        over_limit_amount=summary.over_limit_amount,
        estimated_tax_savings=summary.estimated_tax_savings,
        utilization_percent=summary.utilization_percent,
    )
