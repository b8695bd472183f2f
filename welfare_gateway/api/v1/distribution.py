"""POST /v1/companies/{company_id}/distributions - Credit pool distribution"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from welfare_gateway.api.dependencies import get_request_id, load_company
from welfare_gateway.api.v1.schemas import (
    DistributionEntrySchema,
    DistributionPlanResponse,
    DistributionRequest,
    DistributionResponse,
)
from welfare_gateway.domain.distribution import check_plan_affordable, plan_distribution
from welfare_gateway.domain.exceptions import (
    InsufficientBalanceError,
    InvalidEntityError,
    PoolExceededError,
)
from welfare_gateway.domain.models import Company, DistributionPlan
from welfare_gateway.infrastructure.database.repositories import CompanyRepository, EmployeeRepository
from welfare_gateway.infrastructure.database.session import get_db
from welfare_gateway.infrastructure.observability.logging import log_distribution
from welfare_gateway.infrastructure.observability.metrics import record_distribution, spend_rejection_counter

router = APIRouter()


def _plan_schema(company_id: str, plan: DistributionPlan) -> DistributionPlanResponse:
    return DistributionPlanResponse(
        company_id=company_id,
        policy=plan.policy,
        fallback_policy=plan.fallback_policy,
        pool=plan.pool,
        total_allocated=plan.total_allocated,
        residual=plan.residual,
        entries=[
            DistributionEntrySchema(
                employee_id=e.employee_id,
                current_points=e.current_points,
                new_points=e.new_points,
                resulting_total=e.resulting_total,
            )
            for e in plan.entries
        ],
    )


def _pool_exceeded(e: PoolExceededError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "message": str(e),
            "requested": e.requested,
            "pool": e.pool,
            "overage": e.overage,
        },
    )


def _insufficient_balance(e: InsufficientBalanceError) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": str(e),
            "requested": str(e.requested),
            "available": str(e.available),
            "shortfall": str(e.shortfall),
        },
    )


def _plan(db: Session, company: Company, request_body: DistributionRequest):
    employee_repo = EmployeeRepository(db)
    records = employee_repo.list_by_company(company.company_id, active_only=True)
    employees = [employee_repo.to_domain(r) for r in records]

    pool = request_body.pool if request_body.pool is not None else company.available_balance
    plan = plan_distribution(pool, employees, request_body.policy, request_body.manual_amounts)
    return plan, records


@router.post("/companies/{company_id}/distributions/plan", response_model=DistributionPlanResponse)
def preview_distribution(
    company_id: str,
    request_body: DistributionRequest,
    db: Session = Depends(get_db),
):
    """
    Compute a distribution plan without writing anything.

    The pool defaults to the company's available balance.
    """
    company = CompanyRepository.to_domain(load_company(db, company_id))

    try:
        plan, _ = _plan(db, company, request_body)
    except PoolExceededError as e:
        raise _pool_exceeded(e)
    except InvalidEntityError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return _plan_schema(company_id, plan)


@router.post("/companies/{company_id}/distributions", response_model=DistributionResponse)
def apply_distribution(
    company_id: str,
    request_body: DistributionRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Distribute credits to active employees.

    Flow:
    1. Lock the company row so the balance is fresh and cannot move underneath
    2. Plan the distribution over the requested pool
    3. Re-check the plan total against the locked balance (hard gate)
    4. Increment employee allocations and company used credits, then commit
    """
    start_time = time.time()
    request_id = get_request_id(request)
    record = load_company(db, company_id, for_update=True)

    try:
        company_repo = CompanyRepository(db)
        company = company_repo.to_domain(record)

        plan, employee_records = _plan(db, company, request_body)
        check_plan_affordable(company, plan)

        EmployeeRepository(db).apply_allocations(employee_records, plan.allocations())
        company_repo.apply_spend(record, plan.total_allocated)
        db.commit()
        company = company_repo.to_domain(record)

        duration_ms = (time.time() - start_time) * 1000
        record_distribution(plan.policy.value, plan.total_allocated)
        log_distribution(
            request_id, company_id, plan.policy.value, plan.total_allocated, plan.residual, duration_ms
        )

        return DistributionResponse(
            plan=_plan_schema(company_id, plan),
            used_credits=company.used_credits,
            available_balance=company.available_balance,
        )

    except PoolExceededError as e:
        db.rollback()
        logging.warning(f"Pool exceeded: {e}", extra={"request_id": request_id})
        raise _pool_exceeded(e)

    except InsufficientBalanceError as e:
        db.rollback()
        spend_rejection_counter.inc()
        logging.warning(f"Insufficient balance: {e}", extra={"request_id": request_id})
        raise _insufficient_balance(e)

    except InvalidEntityError as e:
        db.rollback()
        logging.warning(f"Invalid ledger data: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
