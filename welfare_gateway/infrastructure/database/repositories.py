"""Data access layer for welfare ledger entities"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from sqlalchemy.orm import Session
from welfare_gateway.infrastructure.database.models import (
    CompanyRecord,
    EmployeeRecord,
    FraudAlertRecord,
    TransactionRecord,
)
from welfare_gateway.domain.lifecycle import ALERT_TRANSITIONS
from welfare_gateway.domain.models import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    Company,
    Employee,
    FraudAlert,
    Transaction,
)
from welfare_gateway.utils.money import from_cents, to_cents

OPEN_ALERT_STATUSES = [status.value for status, allowed in ALERT_TRANSITIONS.items() if allowed]


def _aware(moment: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class CompanyRepository:
    """Repository for company credit accounts"""

    def __init__(self, db: Session):
        self.db = db

    def get_company(self, company_id: str) -> Optional[CompanyRecord]:
        return self.db.query(CompanyRecord).filter(CompanyRecord.id == company_id).first()

    def get_company_for_update(self, company_id: str) -> Optional[CompanyRecord]:
        """Fetch with a row lock so the balance cannot change until commit"""
        return (
            self.db.query(CompanyRecord)
            .filter(CompanyRecord.id == company_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def to_domain(record: CompanyRecord) -> Company:
        return Company(
            company_id=record.id,
            total_credits=from_cents(record.total_credits_cents),
            used_credits=from_cents(record.used_credits_cents),
        )

    def apply_recharge(self, record: CompanyRecord, amount: Decimal) -> CompanyRecord:
        """Increment loaded credits"""
        record.total_credits_cents += to_cents(amount)
        self.db.flush()
        return record

    def apply_spend(self, record: CompanyRecord, amount: Decimal) -> CompanyRecord:
        """Increment consumed credits"""
        record.used_credits_cents += to_cents(amount)
        self.db.flush()
        return record


class EmployeeRepository:
    """Repository for employee point accounts"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_company(self, company_id: str, active_only: bool = False) -> List[EmployeeRecord]:
        query = self.db.query(EmployeeRecord).filter(EmployeeRecord.company_id == company_id)
        if active_only:
            query = query.filter(EmployeeRecord.is_active.is_(True))
        return query.order_by(EmployeeRecord.created_at, EmployeeRecord.id).all()

    @staticmethod
    def to_domain(record: EmployeeRecord) -> Employee:
        return Employee(
            employee_id=record.id,
            company_id=record.company_id,
            hire_date=record.hire_date,
            is_active=record.is_active,
            allocated_credits=record.allocated_points,
            used_credits=record.used_points,
        )

    def apply_allocations(self, records: Sequence[EmployeeRecord], allocations: Dict[str, int]) -> None:
        """Increment allocated points per employee id"""
        for record in records:
            points = allocations.get(record.id, 0)
            if points:
                record.allocated_points += points
        self.db.flush()


class TransactionRepository:
    """Repository for point redemptions"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_company(self, company_id: str, since: Optional[datetime] = None) -> List[Transaction]:
        """Company transactions, oldest first, optionally from a point in time"""
        query = self.db.query(TransactionRecord).filter(TransactionRecord.company_id == company_id)
        if since is not None:
            query = query.filter(TransactionRecord.created_at >= since)
        records = query.order_by(TransactionRecord.created_at, TransactionRecord.id).all()
        return [self.to_domain(r) for r in records]

    @staticmethod
    def to_domain(record: TransactionRecord) -> Transaction:
        return Transaction(
            transaction_id=record.id,
            employee_id=record.employee_id,
            partner_id=record.partner_id,
            company_id=record.company_id,
            points_used=record.points_used,
            status=record.status,
            created_at=_aware(record.created_at),
        )


class AlertRepository:
    """Repository for fraud alerts"""

    def __init__(self, db: Session):
        self.db = db

    def find_open_by_fingerprint(self, company_id: str, fingerprint: str) -> Optional[FraudAlertRecord]:
        return (
            self.db.query(FraudAlertRecord)
            .filter(
                FraudAlertRecord.company_id == company_id,
                FraudAlertRecord.fingerprint == fingerprint,
                FraudAlertRecord.status.in_(OPEN_ALERT_STATUSES),
            )
            .first()
        )

    def create_if_new(self, company_id: str, alert: FraudAlert) -> Optional[FraudAlertRecord]:
        """Persist an alert unless one with the same cause is still open"""
        if self.find_open_by_fingerprint(company_id, alert.fingerprint) is not None:
            return None

        record = FraudAlertRecord(
            id=alert.alert_id,
            company_id=company_id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            title=alert.title,
            description=alert.description,
            risk_score=alert.risk_score,
            status=alert.status.value,
            suggested_actions=list(alert.suggested_actions),
            transaction_ids=list(alert.transaction_ids),
            fingerprint=alert.fingerprint,
            detected_at=alert.detected_at.astimezone(timezone.utc),
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get_alert(self, alert_id: str) -> Optional[FraudAlertRecord]:
        return self.db.query(FraudAlertRecord).filter(FraudAlertRecord.id == alert_id).first()

    def get_alert_for_update(self, alert_id: str) -> Optional[FraudAlertRecord]:
        """Fetch with a row lock so the status is checked and written under one lock"""
        return (
            self.db.query(FraudAlertRecord)
            .filter(FraudAlertRecord.id == alert_id)
            .with_for_update()
            .first()
        )

    def list_alerts(
        self,
        company_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> List[FraudAlertRecord]:
        query = self.db.query(FraudAlertRecord)
        if company_id is not None:
            query = query.filter(FraudAlertRecord.company_id == company_id)
        if status is not None:
            query = query.filter(FraudAlertRecord.status == status)
        return query.order_by(FraudAlertRecord.detected_at.desc()).limit(limit).all()

    def update_status(self, record: FraudAlertRecord, alert: FraudAlert, updated_at: datetime) -> FraudAlertRecord:
        record.status = alert.status.value
        record.updated_at = updated_at.astimezone(timezone.utc)
        self.db.flush()
        return record

    @staticmethod
    def to_domain(record: FraudAlertRecord) -> FraudAlert:
        return FraudAlert(
            alert_id=record.id,
            alert_type=AlertType(record.alert_type),
            severity=AlertSeverity(record.severity),
            title=record.title,
            description=record.description,
            risk_score=record.risk_score,
            detected_at=_aware(record.detected_at),
            status=AlertStatus(record.status),
            suggested_actions=tuple(record.suggested_actions),
            transaction_ids=tuple(record.transaction_ids),
            fingerprint=record.fingerprint,
        )
