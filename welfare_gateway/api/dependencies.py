"""Dependency injection for FastAPI endpoints"""

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session
from welfare_gateway.config import settings
from welfare_gateway.domain.alerts import AlertRules
from welfare_gateway.domain.clock import Clock, SystemClock
from welfare_gateway.domain.risk import RiskRules
from welfare_gateway.infrastructure.database.models import CompanyRecord
from welfare_gateway.infrastructure.database.repositories import CompanyRepository


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Clock:
    """Provide wall clock in the business timezone"""
    return SystemClock(settings.timezone)


def get_risk_rules() -> RiskRules:
    return settings.risk_rules()


def get_alert_rules() -> AlertRules:
    return settings.alert_rules()


def load_company(db: Session, company_id: str, for_update: bool = False) -> CompanyRecord:
    """Fetch a company row or answer 404; for_update locks it until commit"""
    repo = CompanyRepository(db)
    record = repo.get_company_for_update(company_id) if for_update else repo.get_company(company_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return record
