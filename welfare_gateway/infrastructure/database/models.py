"""SQLAlchemy ORM models for the welfare ledger"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class CompanyRecord(Base):
    """Company credit account, money in cents"""

    __tablename__ = "company"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    total_credits_cents = Column(BigInteger, nullable=False, default=0)
    used_credits_cents = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    employees = relationship("EmployeeRecord", back_populates="company")


class EmployeeRecord(Base):
    """Employee point account"""

    __tablename__ = "employee"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(36), ForeignKey("company.id"), nullable=False, index=True)
    first_name = Column(Text, nullable=False, default="")
    last_name = Column(Text, nullable=False, default="")
    hire_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    allocated_points = Column(BigInteger, nullable=False, default=0)
    used_points = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    company = relationship("CompanyRecord", back_populates="employees")


class TransactionRecord(Base):
    """Point redemption at a partner"""

    __tablename__ = "welfare_transaction"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(36), ForeignKey("company.id"), nullable=False, index=True)
    employee_id = Column(String(36), ForeignKey("employee.id"), nullable=False, index=True)
    partner_id = Column(Text, nullable=False)
    points_used = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class FraudAlertRecord(Base):
    """Persisted fraud alert with operator-managed status"""

    __tablename__ = "fraud_alert"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(36), ForeignKey("company.id"), nullable=False, index=True)
    alert_type = Column(Text, nullable=False)
    severity = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    risk_score = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default="active")
    suggested_actions = Column(JSON, nullable=False)
    transaction_ids = Column(JSON, nullable=False)
    fingerprint = Column(String(64), nullable=False, index=True)
    detected_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
