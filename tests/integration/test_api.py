"""Integration tests for API endpoints"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from fastapi.testclient import TestClient
from welfare_gateway.config import settings
from welfare_gateway.infrastructure.database.repositories import AlertRepository, CompanyRepository

pytestmark = pytest.mark.integration


@pytest.fixture
def company(make_company, make_employee):
    """3000 loaded, 850 used, three active employees and one inactive"""
    record = make_company(total=3000, used=850)
    for _ in range(3):
        make_employee(record, hire_date=date(2023, 3, 1))
    make_employee(record, hire_date=date(2022, 1, 1), active=False)
    return record


@pytest.fixture
def night_burst(company, make_employee, make_transaction):
    """11 large redemptions by one employee between 03:00 and 03:50 Rome time"""
    employee = make_employee(company, allocated=10000)
    start = datetime(2024, 9, 18, 1, 0, tzinfo=timezone.utc)
    return [make_transaction(employee, start + timedelta(minutes=5 * i), points=600) for i in range(11)]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "welfare-gateway"}


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "welfare_spend_rejections_total" in response.text


def test_unmatched_paths_share_one_latency_series(client: TestClient):
    client.get("/no-such-path/abc")
    client.get("/no-such-path/def")

    text = client.get("/metrics").text

    assert 'endpoint="unmatched"' in text
    assert "/no-such-path" not in text


def test_request_id_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_unknown_company(client: TestClient):
    response = client.get("/v1/companies/missing/fiscal-limits")
    assert response.status_code == 404
    assert response.json()["detail"] == "Company not found"


def test_fiscal_limits(client: TestClient, company, make_employee):
    """Test active employees only, with a September hire prorated to 4 months"""
    make_employee(company, hire_date=date(2024, 9, 10))

    response = client.get(f"/v1/companies/{company.id}/fiscal-limits")

    assert response.status_code == 200
    data = response.json()
    assert data["reference_year"] == 2024
    assert len(data["employees"]) == 4
    assert sorted(Decimal(e["personal_limit"]) for e in data["employees"]) == [
        Decimal("86.08"),
        Decimal("258.23"),
        Decimal("258.23"),
        Decimal("258.23"),
    ]
    # 3 * 258.23 + 86.0766...
    assert Decimal(data["total_limit"]) == Decimal("860.77")


def test_fiscal_limits_for_explicit_year(client: TestClient, company):
    response = client.get(f"/v1/companies/{company.id}/fiscal-limits", params={"year": 2023})

    assert response.status_code == 200
    data = response.json()
    assert data["reference_year"] == 2023
    # Hired March 2023 -> 10 months
    assert all(e["months_remaining"] == 10 for e in data["employees"])


def test_fiscal_summary(client: TestClient, company):
    response = client.get(f"/v1/companies/{company.id}/fiscal-summary")

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["total_limit"]) == Decimal("774.69")
    assert Decimal(data["remaining_tax_free"]) == Decimal("0")
    assert data["over_limit"] is True
    assert Decimal(data["over_limit_amount"]) == Decimal("2225.31")
    assert Decimal(data["estimated_tax_savings"]) == Decimal("187.00")


@pytest.fixture
def three_year_ceiling(monkeypatch):
    monkeypatch.setattr(settings, "statutory_annual_ceiling", Decimal("774.69"))


def test_recharge_validate(client: TestClient, company, make_employee, three_year_ceiling):
    """Test 3000 + 500 against 4 * 774.69 = 3098.76"""
    make_employee(company, hire_date=date(2020, 6, 1))

    response = client.post(f"/v1/companies/{company.id}/recharge/validate", json={"amount": "500.00"})

    assert response.status_code == 200
    data = response.json()
    assert data["exceeds"] is True
    assert Decimal(data["total_limit"]) == Decimal("3098.76")
    assert Decimal(data["excess_amount"]) == Decimal("401.24")
    assert Decimal(data["estimated_excess_tax"]) == Decimal("88.27")


def test_recharge_over_ceiling_needs_confirmation(client: TestClient, db, company, make_employee, three_year_ceiling):
    make_employee(company, hire_date=date(2020, 6, 1))

    response = client.post(f"/v1/companies/{company.id}/recharge", json={"amount": "500.00"})

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert Decimal(detail["verdict"]["excess_amount"]) == Decimal("401.24")

    db.refresh(company)
    assert company.total_credits_cents == 300000


def test_recharge_confirmed_over_ceiling(client: TestClient, company, make_employee, three_year_ceiling):
    make_employee(company, hire_date=date(2020, 6, 1))

    response = client.post(
        f"/v1/companies/{company.id}/recharge",
        json={"amount": "500.00", "confirm_over_limit": True},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["applied"] is True
    assert Decimal(data["total_credits"]) == Decimal("3500")
    assert Decimal(data["available_balance"]) == Decimal("2650")


def test_recharge_within_ceiling_applies(client: TestClient, company, make_employee, three_year_ceiling):
    make_employee(company, hire_date=date(2020, 6, 1))

    response = client.post(f"/v1/companies/{company.id}/recharge", json={"amount": "98.76"})

    assert response.status_code == 200
    assert response.json()["verdict"]["exceeds"] is False
    assert Decimal(response.json()["total_credits"]) == Decimal("3098.76")


def test_recharge_rejects_non_positive_amount(client: TestClient, company):
    response = client.post(f"/v1/companies/{company.id}/recharge", json={"amount": "0"})
    assert response.status_code == 422


def test_spend_validate(client: TestClient, company):
    ok = client.post(f"/v1/companies/{company.id}/spend/validate", json={"amount": "2150.00"})
    short = client.post(f"/v1/companies/{company.id}/spend/validate", json={"amount": "2150.01"})

    assert ok.json()["sufficient"] is True
    assert short.json()["sufficient"] is False
    assert Decimal(short.json()["shortfall"]) == Decimal("0.01")


def test_distribution_preview_writes_nothing(client: TestClient, db, company):
    response = client.post(f"/v1/companies/{company.id}/distributions/plan", json={"policy": "proportional"})

    assert response.status_code == 200
    data = response.json()
    assert data["policy"] == "proportional"
    assert data["fallback_policy"] == "equal"
    assert data["pool"] == 2150
    assert [e["new_points"] for e in data["entries"]] == [716, 716, 716]
    assert data["residual"] == 2

    db.refresh(company)
    assert company.used_credits_cents == 85000


def test_distribution_manual_over_pool(client: TestClient, db, company):
    employee_ids = [e.id for e in company.employees if e.is_active]
    amounts = {employee_ids[0]: 1500, employee_ids[1]: 1000}

    response = client.post(
        f"/v1/companies/{company.id}/distributions",
        json={"policy": "manual", "manual_amounts": amounts},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["overage"] == 350

    db.refresh(company)
    assert company.used_credits_cents == 85000


def test_distribution_equal_applied(client: TestClient, db, company):
    """Test 2150 over 3 active employees -> 716 each, residual 2"""
    response = client.post(f"/v1/companies/{company.id}/distributions", json={"policy": "equal"})

    assert response.status_code == 200
    data = response.json()
    assert data["plan"]["total_allocated"] == 2148
    assert data["plan"]["residual"] == 2
    assert Decimal(data["used_credits"]) == Decimal("2998")
    assert Decimal(data["available_balance"]) == Decimal("2")

    db.refresh(company)
    active = [e for e in company.employees if e.is_active]
    inactive = [e for e in company.employees if not e.is_active]
    assert all(e.allocated_points == 716 for e in active)
    assert inactive[0].allocated_points == 0


def test_distribution_pool_above_balance(client: TestClient, db, company):
    """Test 5000 requested pool -> 4998 planned against 2150 available"""
    response = client.post(f"/v1/companies/{company.id}/distributions", json={"policy": "equal", "pool": "5000"})

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert Decimal(detail["shortfall"]) == Decimal("2848")

    db.refresh(company)
    assert company.used_credits_cents == 85000


def test_scored_transactions(client: TestClient, company, night_burst):
    """Test 600 points at night with 10 siblings -> 30 + 20 + 25 + 20 = 95"""
    response = client.get(f"/v1/companies/{company.id}/transactions/scored")

    assert response.status_code == 200
    data = response.json()
    assert data["window_hours"] == 24
    assert len(data["transactions"]) == 11
    for item in data["transactions"]:
        assert item["risk_score"] == 95
        assert item["flags"] == ["HIGH_RISK", "HIGH_VALUE", "OFF_HOURS"]
    assert data["metrics"]["high_risk_transactions"] == 11
    assert data["metrics"]["active_alerts"] == 0


def test_scored_transactions_window(client: TestClient, company, night_burst):
    response = client.get(f"/v1/companies/{company.id}/transactions/scored", params={"hours": 1})

    assert response.status_code == 200
    assert response.json()["transactions"] == []


def test_fraud_scan_is_idempotent(client: TestClient, company, night_burst):
    first = client.post(f"/v1/companies/{company.id}/fraud/scan")

    assert first.status_code == 200
    data = first.json()
    assert data["transactions_scanned"] == 11
    assert data["alerts_skipped"] == 0
    assert sorted(a["alert_type"] for a in data["alerts_raised"]) == ["suspicious_pattern", "velocity_anomaly"]

    second = client.post(f"/v1/companies/{company.id}/fraud/scan")

    assert second.json()["alerts_raised"] == []
    assert second.json()["alerts_skipped"] == 2

    alerts = client.get("/v1/fraud/alerts", params={"company_id": company.id}).json()["alerts"]
    assert len(alerts) == 2


def test_alert_status_updates(client: TestClient, company, night_burst):
    scan = client.post(f"/v1/companies/{company.id}/fraud/scan").json()
    alert_id = scan["alerts_raised"][0]["alert_id"]

    investigating = client.patch(f"/v1/fraud/alerts/{alert_id}", json={"status": "investigating"})
    assert investigating.status_code == 200
    assert investigating.json()["status"] == "investigating"

    invalid = client.patch(f"/v1/fraud/alerts/{alert_id}", json={"status": "false_positive"})
    assert invalid.status_code == 409

    listed = client.get("/v1/fraud/alerts", params={"status": "investigating"}).json()["alerts"]
    assert [a["alert_id"] for a in listed] == [alert_id]


def test_resolved_alert_is_raised_again(client: TestClient, company, night_burst):
    """Test only open alerts suppress a repeat of the same finding"""
    scan = client.post(f"/v1/companies/{company.id}/fraud/scan").json()
    for alert in scan["alerts_raised"]:
        client.patch(f"/v1/fraud/alerts/{alert['alert_id']}", json={"status": "false_positive"})

    rescan = client.post(f"/v1/companies/{company.id}/fraud/scan").json()

    assert len(rescan["alerts_raised"]) == 2


def test_alert_not_found(client: TestClient):
    response = client.patch("/v1/fraud/alerts/missing", json={"status": "resolved"})
    assert response.status_code == 404


@pytest.fixture
def locked_reads(monkeypatch):
    """Record ids fetched through the row-locking repository reads"""
    calls = []
    alert_read = AlertRepository.get_alert_for_update
    company_read = CompanyRepository.get_company_for_update

    def alert_spy(self, alert_id):
        calls.append(("alert", alert_id))
        return alert_read(self, alert_id)

    def company_spy(self, company_id):
        calls.append(("company", company_id))
        return company_read(self, company_id)

    monkeypatch.setattr(AlertRepository, "get_alert_for_update", alert_spy)
    monkeypatch.setattr(CompanyRepository, "get_company_for_update", company_spy)
    return calls


def test_fraud_scan_locks_company(client: TestClient, company, night_burst, locked_reads):
    client.post(f"/v1/companies/{company.id}/fraud/scan")

    assert locked_reads == [("company", company.id)]


def test_alert_update_locks_alert(client: TestClient, company, night_burst, locked_reads):
    """Test the transition is checked against a locked read of the alert"""
    alert_id = client.post(f"/v1/companies/{company.id}/fraud/scan").json()["alerts_raised"][0]["alert_id"]
    locked_reads.clear()

    client.patch(f"/v1/fraud/alerts/{alert_id}", json={"status": "false_positive"})
    late = client.patch(f"/v1/fraud/alerts/{alert_id}", json={"status": "investigating"})

    assert late.status_code == 409
    assert locked_reads == [("alert", alert_id), ("alert", alert_id)]

    stored = client.get("/v1/fraud/alerts", params={"status": "false_positive"}).json()["alerts"]
    assert [a["alert_id"] for a in stored] == [alert_id]
