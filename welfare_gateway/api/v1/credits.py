"""POST /v1/companies/{company_id}/recharge|spend - Credit ledger checks"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from welfare_gateway.api.dependencies import get_clock, get_request_id, load_company
from welfare_gateway.api.v1.schemas import (
    AmountRequest,
    RechargeRequest,
    RechargeResponse,
    RechargeVerdictSchema,
    SpendVerdictSchema,
)
from welfare_gateway.config import settings
from welfare_gateway.domain.clock import Clock
from welfare_gateway.domain.fiscal import compute_fiscal_limits
from welfare_gateway.domain.ledger import validate_recharge, validate_spend
from welfare_gateway.domain.models import Company, RechargeVerdict
from welfare_gateway.infrastructure.database.repositories import CompanyRepository, EmployeeRepository
from welfare_gateway.infrastructure.database.session import get_db
from welfare_gateway.infrastructure.observability.logging import log_recharge
from welfare_gateway.infrastructure.observability.metrics import record_recharge_verdict

router = APIRouter()


def _recharge_verdict(db: Session, company: Company, amount, clock: Clock) -> RechargeVerdict:
    employees = [
        EmployeeRepository.to_domain(r) for r in EmployeeRepository(db).list_by_company(company.company_id)
    ]
    fiscal_limit = compute_fiscal_limits(
        employees, annual_ceiling=settings.statutory_annual_ceiling, clock=clock
    )
    return validate_recharge(company, amount, fiscal_limit, excess_tax_rate=settings.excess_tax_rate)


def _verdict_schema(verdict: RechargeVerdict) -> RechargeVerdictSchema:
    return RechargeVerdictSchema(
        current_total=verdict.current_total,
        amount=verdict.amount,
        projected_total=verdict.projected_total,
        total_limit=verdict.total_limit,
        exceeds=verdict.exceeds,
        excess_amount=verdict.excess_amount,
        estimated_excess_tax=verdict.estimated_excess_tax,
    )


@router.post("/companies/{company_id}/recharge/validate", response_model=RechargeVerdictSchema)
def validate_company_recharge(
    company_id: str,
    request_body: AmountRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Preview a recharge against the tax-free ceiling.

    Advisory: the verdict tells the UI whether to ask for confirmation.
    """
    company = CompanyRepository.to_domain(load_company(db, company_id))
    verdict = _recharge_verdict(db, company, request_body.amount, clock)
    record_recharge_verdict(verdict.exceeds)
    return _verdict_schema(verdict)


@router.post("/companies/{company_id}/recharge", response_model=RechargeResponse)
def recharge_company(
    company_id: str,
    request_body: RechargeRequest,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Load credits into the company account.

    Flow:
    1. Lock the company row and re-read its totals
    2. Project the recharge against the current fiscal ceiling
    3. Above the ceiling without confirm_over_limit -> 409 carrying the verdict
    4. Otherwise increment total credits and commit
    """
    request_id = get_request_id(request)
    record = load_company(db, company_id, for_update=True)

    try:
        repo = CompanyRepository(db)
        verdict = _recharge_verdict(db, repo.to_domain(record), request_body.amount, clock)
        record_recharge_verdict(verdict.exceeds)

        if verdict.exceeds and not request_body.confirm_over_limit:
            db.rollback()
            log_recharge(request_id, company_id, str(verdict.amount), exceeds_ceiling=True, applied=False)
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "Recharge exceeds the tax-free ceiling; confirm to proceed",
                    "verdict": _verdict_schema(verdict).model_dump(mode="json"),
                },
            )

        repo.apply_recharge(record, verdict.amount)
        db.commit()
        company = repo.to_domain(record)

        log_recharge(request_id, company_id, str(verdict.amount), exceeds_ceiling=verdict.exceeds, applied=True)

        return RechargeResponse(
            company_id=company_id,
            applied=True,
            verdict=_verdict_schema(verdict),
            total_credits=company.total_credits,
            available_balance=company.available_balance,
        )

    except HTTPException:
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/companies/{company_id}/spend/validate", response_model=SpendVerdictSchema)
def validate_company_spend(
    company_id: str,
    request_body: AmountRequest,
    db: Session = Depends(get_db),
):
    """Check whether the company balance covers a spend"""
    company = CompanyRepository.to_domain(load_company(db, company_id))
    verdict = validate_spend(company, request_body.amount)

    return SpendVerdictSchema(
        available_balance=verdict.available_balance,
        amount=verdict.amount,
        sufficient=verdict.sufficient,
        shortfall=verdict.shortfall,
    )
