"""Transaction risk scoring and fraud alert endpoints"""

import logging
from datetime import timedelta, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from welfare_gateway.api.dependencies import (
    get_alert_rules,
    get_clock,
    get_request_id,
    get_risk_rules,
    load_company,
)
from welfare_gateway.api.v1.schemas import (
    AlertListResponse,
    AlertStatusUpdate,
    FraudAlertSchema,
    FraudScanResponse,
    RiskSignalSchema,
    ScoredTransactionSchema,
    ScoredTransactionsResponse,
    SecurityMetricsSchema,
)
from welfare_gateway.domain.alerts import AlertRules, aggregate_alerts, summarize_security
from welfare_gateway.domain.clock import Clock
from welfare_gateway.domain.exceptions import InvalidStatusTransitionError
from welfare_gateway.domain.lifecycle import transition_alert
from welfare_gateway.domain.models import AlertStatus, FraudAlert, ScoredTransaction, SecurityMetrics
from welfare_gateway.domain.risk import RiskRules, score_transactions
from welfare_gateway.infrastructure.database.repositories import AlertRepository, TransactionRepository
from welfare_gateway.infrastructure.database.session import get_db
from welfare_gateway.infrastructure.observability.logging import log_fraud_scan
from welfare_gateway.infrastructure.observability.metrics import fraud_alert_counter, record_risk_scores

router = APIRouter()


def _alert_schema(alert: FraudAlert) -> FraudAlertSchema:
    return FraudAlertSchema(
        alert_id=alert.alert_id,
        alert_type=alert.alert_type,
        severity=alert.severity,
        title=alert.title,
        description=alert.description,
        risk_score=alert.risk_score,
        detected_at=alert.detected_at,
        status=alert.status,
        suggested_actions=list(alert.suggested_actions),
        transaction_ids=list(alert.transaction_ids),
    )


def _scored_schema(item: ScoredTransaction) -> ScoredTransactionSchema:
    txn = item.transaction
    return ScoredTransactionSchema(
        transaction_id=txn.transaction_id,
        employee_id=txn.employee_id,
        partner_id=txn.partner_id,
        points_used=txn.points_used,
        status=txn.status,
        created_at=txn.created_at,
        risk_score=item.score,
        flags=sorted(flag.value for flag in item.assessment.flags),
        signals=[RiskSignalSchema(name=s.name, weight=s.weight) for s in item.assessment.signals],
    )


def _metrics_schema(metrics: SecurityMetrics) -> SecurityMetricsSchema:
    return SecurityMetricsSchema(
        total_alerts=metrics.total_alerts,
        critical_alerts=metrics.critical_alerts,
        active_alerts=metrics.active_alerts,
        avg_risk_score=metrics.avg_risk_score,
        high_risk_transactions=metrics.high_risk_transactions,
        flag_counts=metrics.flag_counts,
    )


def _score_window(
    db: Session, company_id: str, clock: Clock, window: timedelta, rules: RiskRules
) -> List[ScoredTransaction]:
    """Score the window's transactions against the company's full history"""
    repo = TransactionRepository(db)
    since = (clock.now() - window).astimezone(timezone.utc)
    recent = repo.list_by_company(company_id, since=since)
    history = repo.list_by_company(company_id)
    return score_transactions(recent, history, rules)


@router.get("/companies/{company_id}/transactions/scored", response_model=ScoredTransactionsResponse)
def get_scored_transactions(
    company_id: str,
    hours: int = Query(24, ge=1, le=24 * 31, description="Window length in hours"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    risk_rules: RiskRules = Depends(get_risk_rules),
    alert_rules: AlertRules = Depends(get_alert_rules),
):
    """
    Recent transactions annotated with risk score, flags and the rules that fired.

    Scores are derived at read time and never stored.
    """
    load_company(db, company_id)
    scored = _score_window(db, company_id, clock, timedelta(hours=hours), risk_rules)

    alert_repo = AlertRepository(db)
    open_alerts = [
        alert_repo.to_domain(r) for r in alert_repo.list_alerts(company_id=company_id, status=AlertStatus.ACTIVE.value)
    ]

    return ScoredTransactionsResponse(
        company_id=company_id,
        window_hours=hours,
        transactions=[_scored_schema(s) for s in scored],
        metrics=_metrics_schema(summarize_security(scored, open_alerts, alert_rules)),
    )


@router.post("/companies/{company_id}/fraud/scan", response_model=FraudScanResponse)
def scan_for_fraud(
    company_id: str,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    risk_rules: RiskRules = Depends(get_risk_rules),
    alert_rules: AlertRules = Depends(get_alert_rules),
):
    """
    Run the aggregate fraud rules over the reporting window and store new alerts.

    Safe to call repeatedly: an alert whose fingerprint is already open is skipped.
    The company row is locked so overlapping scans check and insert one at a time.
    """
    request_id = get_request_id(request)
    load_company(db, company_id, for_update=True)

    try:
        scored = _score_window(db, company_id, clock, alert_rules.window, risk_rules)
        record_risk_scores(s.score for s in scored)

        alerts = aggregate_alerts(scored, clock=clock, rules=alert_rules)

        alert_repo = AlertRepository(db)
        raised = []
        for alert in alerts:
            if alert_repo.create_if_new(company_id, alert) is not None:
                raised.append(alert)
                fraud_alert_counter.labels(type=alert.alert_type.value).inc()
        db.commit()

        skipped = len(alerts) - len(raised)
        log_fraud_scan(request_id, company_id, len(scored), len(raised), skipped)

        return FraudScanResponse(
            company_id=company_id,
            transactions_scanned=len(scored),
            alerts_raised=[_alert_schema(a) for a in raised],
            alerts_skipped=skipped,
            metrics=_metrics_schema(summarize_security(scored, alerts, alert_rules)),
        )

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/fraud/alerts", response_model=AlertListResponse)
def list_fraud_alerts(
    company_id: Optional[str] = Query(None, description="Restrict to one company"),
    status: Optional[AlertStatus] = Query(None, description="Restrict to one status"),
    db: Session = Depends(get_db),
):
    """Most recent alerts first"""
    repo = AlertRepository(db)
    records = repo.list_alerts(company_id=company_id, status=status.value if status else None)
    return AlertListResponse(alerts=[_alert_schema(repo.to_domain(r)) for r in records])


@router.patch("/fraud/alerts/{alert_id}", response_model=FraudAlertSchema)
def update_fraud_alert(
    alert_id: str,
    request_body: AlertStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Operator status change.

    Allowed: active -> investigating -> resolved, active -> false_positive.
    The row stays locked from the transition check until commit.
    """
    request_id = get_request_id(request)
    repo = AlertRepository(db)
    record = repo.get_alert_for_update(alert_id)
    if record is None:
        db.rollback()
        raise HTTPException(status_code=404, detail="Alert not found")

    try:
        updated = transition_alert(repo.to_domain(record), request_body.status)
        repo.update_status(record, updated, clock.now())
        db.commit()
        return _alert_schema(updated)

    except InvalidStatusTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
