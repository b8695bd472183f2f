"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from welfare_gateway.domain.models import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    DistributionPolicy,
    TransactionStatus,
)


class EmployeeFiscalLimitSchema(BaseModel):
    employee_id: str
    months_remaining: int
    personal_limit: Decimal


class FiscalLimitResponse(BaseModel):
    """Response for GET /v1/companies/{company_id}/fiscal-limits"""

    company_id: str
    reference_year: int
    annual_ceiling: Decimal
    total_limit: Decimal
    employees: List[EmployeeFiscalLimitSchema]


class FiscalSummaryResponse(BaseModel):
    """Response for GET /v1/companies/{company_id}/fiscal-summary"""

    company_id: str
    reference_year: int
    total_limit: Decimal
    loaded: Decimal
    used: Decimal
    remaining_tax_free: Decimal
    recommended_monthly: Decimal
    over_limit: bool
    over_limit_amount: Decimal
    estimated_tax_savings: Decimal
    utilization_percent: Decimal


class AmountRequest(BaseModel):
    """Request body carrying a euro amount"""

    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Amount in euros")


class RechargeRequest(AmountRequest):
    """Request body for POST /v1/companies/{company_id}/recharge"""

    confirm_over_limit: bool = Field(
        False, description="Accept taxation of the part above the tax-free ceiling"
    )


class RechargeVerdictSchema(BaseModel):
    current_total: Decimal
    amount: Decimal
    projected_total: Decimal
    total_limit: Decimal
    exceeds: bool
    excess_amount: Decimal
    estimated_excess_tax: Decimal


class RechargeResponse(BaseModel):
    """Response for POST /v1/companies/{company_id}/recharge"""

    company_id: str
    applied: bool
    verdict: RechargeVerdictSchema
    total_credits: Decimal
    available_balance: Decimal


class SpendVerdictSchema(BaseModel):
    available_balance: Decimal
    amount: Decimal
    sufficient: bool
    shortfall: Decimal


class DistributionRequest(BaseModel):
    """Request body for distribution planning and application"""

    policy: DistributionPolicy
    manual_amounts: Optional[Dict[str, int]] = Field(
        None, description="Employee id -> points, required for the manual policy"
    )
    pool: Optional[Decimal] = Field(
        None, ge=0, description="Credits to distribute, defaults to the available balance"
    )


class DistributionEntrySchema(BaseModel):
    employee_id: str
    current_points: int
    new_points: int
    resulting_total: int


class DistributionPlanResponse(BaseModel):
    """Response for POST /v1/companies/{company_id}/distributions/plan"""

    company_id: str
    policy: DistributionPolicy
    fallback_policy: Optional[DistributionPolicy] = None
    pool: int
    total_allocated: int
    residual: int
    entries: List[DistributionEntrySchema]


class DistributionResponse(BaseModel):
    """Response for POST /v1/companies/{company_id}/distributions"""

    plan: DistributionPlanResponse
    used_credits: Decimal
    available_balance: Decimal


class RiskSignalSchema(BaseModel):
    name: str
    weight: int


class ScoredTransactionSchema(BaseModel):
    transaction_id: str
    employee_id: str
    partner_id: str
    points_used: int
    status: TransactionStatus
    created_at: datetime
    risk_score: int
    flags: List[str]
    signals: List[RiskSignalSchema]


class SecurityMetricsSchema(BaseModel):
    total_alerts: int
    critical_alerts: int
    active_alerts: int
    avg_risk_score: float
    high_risk_transactions: int
    flag_counts: Dict[str, int]


class ScoredTransactionsResponse(BaseModel):
    """Response for GET /v1/companies/{company_id}/transactions/scored"""

    company_id: str
    window_hours: int
    transactions: List[ScoredTransactionSchema]
    metrics: SecurityMetricsSchema


class FraudAlertSchema(BaseModel):
    alert_id: str
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    risk_score: int
    detected_at: datetime
    status: AlertStatus
    suggested_actions: List[str]
    transaction_ids: List[str]


class FraudScanResponse(BaseModel):
    """Response for POST /v1/companies/{company_id}/fraud/scan"""

    company_id: str
    transactions_scanned: int
    alerts_raised: List[FraudAlertSchema]
    alerts_skipped: int
    metrics: SecurityMetricsSchema


class AlertListResponse(BaseModel):
    """Response for GET /v1/fraud/alerts"""

    alerts: List[FraudAlertSchema]


class AlertStatusUpdate(BaseModel):
    """Request body for PATCH /v1/fraud/alerts/{alert_id}"""

    status: AlertStatus
