"""Pytest fixtures for testing"""

import os

os.environ.setdefault("WELFARE_DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date, datetime, timezone
from typing import Callable, Generator, Optional
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from welfare_gateway.api.dependencies import get_clock
from welfare_gateway.api.main import create_app
from welfare_gateway.domain.clock import FixedClock
from welfare_gateway.domain.models import Employee
from welfare_gateway.infrastructure.database.models import (
    Base,
    CompanyRecord,
    EmployeeRecord,
    TransactionRecord,
)
from welfare_gateway.infrastructure.database.session import build_engine, get_db, init_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday 2024-09-18, 12:00 in Rome
NOW = datetime(2024, 9, 18, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    init_db(engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session, clock: FixedClock) -> TestClient:
    """Create FastAPI test client with test database and frozen clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)


@pytest.fixture
def make_company(db: Session) -> Callable[..., CompanyRecord]:
    """Insert a company with credits given in euros"""

    def _make(total: int = 3000, used: int = 850, name: str = "TechCorp Verona") -> CompanyRecord:
        record = CompanyRecord(name=name, total_credits_cents=total * 100, used_credits_cents=used * 100)
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def make_employee(db: Session) -> Callable[..., EmployeeRecord]:
    def _make(
        company: CompanyRecord,
        hire_date: Optional[date] = date(2023, 3, 1),
        allocated: int = 0,
        used: int = 0,
        active: bool = True,
    ) -> EmployeeRecord:
        record = EmployeeRecord(
            company_id=company.id,
            first_name="Mario",
            last_name="Rossi",
            hire_date=hire_date,
            is_active=active,
            allocated_points=allocated,
            used_points=used,
        )
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def make_transaction(db: Session) -> Callable[..., TransactionRecord]:
    def _make(
        employee: EmployeeRecord,
        created_at: datetime,
        points: int = 50,
        partner_id: str = "partner_gym",
        status: str = "completed",
    ) -> TransactionRecord:
        record = TransactionRecord(
            company_id=employee.company_id,
            employee_id=employee.id,
            partner_id=partner_id,
            points_used=points,
            status=status,
            created_at=created_at,
        )
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def sample_employees() -> list[Employee]:
    """Three active employees hired in prior years plus one inactive"""
    return [
        Employee("emp_1", "company_1", date(2022, 5, 1), True, allocated_credits=1000, used_credits=250),
        Employee("emp_2", "company_1", date(2023, 2, 14), True, allocated_credits=1000, used_credits=550),
        Employee("emp_3", "company_1", date(2021, 11, 3), True, allocated_credits=500, used_credits=300),
        Employee("emp_4", "company_1", date(2020, 1, 7), False, allocated_credits=200, used_credits=200),
    ]
