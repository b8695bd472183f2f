"""Domain models - pure Python dataclasses representing business entities"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from welfare_gateway.domain.exceptions import InvalidEntityError
from welfare_gateway.utils.money import to_decimal

logger = logging.getLogger(__name__)


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DistributionPolicy(str, Enum):
    MANUAL = "manual"
    EQUAL = "equal"
    PROPORTIONAL = "proportional"


class RiskFlag(str, Enum):
    HIGH_RISK = "HIGH_RISK"
    HIGH_VALUE = "HIGH_VALUE"
    OFF_HOURS = "OFF_HOURS"
    WEEKEND = "WEEKEND"


class AlertType(str, Enum):
    VELOCITY_ANOMALY = "velocity_anomaly"
    SUSPICIOUS_PATTERN = "suspicious_pattern"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.LOW: 0,
    AlertSeverity.MEDIUM: 1,
    AlertSeverity.HIGH: 2,
    AlertSeverity.CRITICAL: 3,
}


class AlertStatus(str, Enum):
    ACTIVE = "active"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    FALSE_POSITIVE = "false_positive"


def _parse_hire_date(employee_id: str, value) -> Optional[date]:
    """ISO strings are parsed; anything unreadable becomes None (start of year)"""
    if isinstance(value, datetime):
        return value.date()
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    logger.debug(
        "Unreadable hire date, treating as missing",
        extra={"employee_id": employee_id, "hire_date": repr(value)},
    )
    return None


@dataclass
class Employee:
    """Employee snapshot as read from the ledger"""

    employee_id: str
    company_id: str
    hire_date: Optional[date]  # None when the record has no usable hire date
    is_active: bool = True
    allocated_credits: int = 0  # cumulative points ever granted
    used_credits: int = 0  # cumulative points spent

    def __post_init__(self) -> None:
        self.hire_date = _parse_hire_date(self.employee_id, self.hire_date)
        if self.allocated_credits < 0 or self.used_credits < 0:
            raise InvalidEntityError(f"Employee {self.employee_id} has negative credit counters")
        if self.used_credits > self.allocated_credits:
            raise InvalidEntityError(
                f"Employee {self.employee_id} used {self.used_credits} points "
                f"but was only allocated {self.allocated_credits}"
            )

    @property
    def current_points(self) -> int:
        return self.allocated_credits - self.used_credits


@dataclass
class Company:
    """Company credit account snapshot"""

    company_id: str
    total_credits: Decimal  # cumulative cash loaded
    used_credits: Decimal  # cumulative cash consumed across all employees

    def __post_init__(self) -> None:
        self.total_credits = to_decimal(self.total_credits)
        self.used_credits = to_decimal(self.used_credits)
        if self.total_credits < 0 or self.used_credits < 0:
            raise InvalidEntityError(f"Company {self.company_id} has negative credit counters")
        if self.used_credits > self.total_credits:
            raise InvalidEntityError(
                f"Company {self.company_id} used {self.used_credits} "
                f"of only {self.total_credits} loaded"
            )

    @property
    def available_balance(self) -> Decimal:
        return self.total_credits - self.used_credits


@dataclass(frozen=True)
class Transaction:
    """Redemption of employee points at a partner"""

    transaction_id: str
    employee_id: str
    partner_id: str
    company_id: str
    points_used: int
    status: TransactionStatus
    created_at: datetime  # naive values are taken as UTC

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", TransactionStatus(self.status))
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))
        if self.points_used < 0:
            raise InvalidEntityError(f"Transaction {self.transaction_id} has negative points")


@dataclass
class EmployeeFiscalLimit:
    """Prorated tax-free ceiling for one employee"""

    employee_id: str
    months_remaining: int
    personal_limit: Decimal


@dataclass
class FiscalLimit:
    """Read-only projection of statutory ceilings for a set of employees"""

    reference_year: int
    annual_ceiling: Decimal
    employees: List[EmployeeFiscalLimit]
    total_limit: Decimal

    def limit_for(self, employee_id: str) -> Decimal:
        for item in self.employees:
            if item.employee_id == employee_id:
                return item.personal_limit
        return Decimal("0.00")


@dataclass
class FiscalSummary:
    """Company fiscal position against its tax-free ceiling"""

    total_limit: Decimal
    loaded: Decimal
    used: Decimal
    remaining_tax_free: Decimal
    recommended_monthly: Decimal
    over_limit: bool
    over_limit_amount: Decimal
    estimated_tax_savings: Decimal
    utilization_percent: Decimal


@dataclass
class RechargeVerdict:
    """Advisory outcome of a recharge against the fiscal ceiling"""

    current_total: Decimal
    amount: Decimal
    projected_total: Decimal
    total_limit: Decimal
    exceeds: bool
    excess_amount: Decimal
    estimated_excess_tax: Decimal


@dataclass
class SpendVerdict:
    """Outcome of a spend check against an available balance"""

    available_balance: Decimal
    amount: Decimal
    sufficient: bool
    shortfall: Decimal


@dataclass
class DistributionEntry:
    """Points granted to a single employee by a plan"""

    employee_id: str
    current_points: int
    new_points: int
    resulting_total: int


@dataclass
class DistributionPlan:
    """Per-employee allocation of a credit pool"""

    policy: DistributionPolicy
    pool: int
    entries: List[DistributionEntry]
    residual: int
    fallback_policy: Optional[DistributionPolicy] = None

    @property
    def total_allocated(self) -> int:
        return sum(e.new_points for e in self.entries)

    def allocations(self) -> Dict[str, int]:
        """Employee id -> points, skipping zero grants"""
        return {e.employee_id: e.new_points for e in self.entries if e.new_points > 0}


@dataclass(frozen=True)
class RiskSignal:
    """A weighted scoring rule that fired for a transaction"""

    name: str
    weight: int


@dataclass(frozen=True)
class RiskAssessment:
    """Bounded risk score plus categorical evidence"""

    score: int
    flags: FrozenSet[RiskFlag]
    signals: Tuple[RiskSignal, ...] = ()

    @property
    def raw_score(self) -> int:
        return sum(s.weight for s in self.signals)


@dataclass(frozen=True)
class ScoredTransaction:
    transaction: Transaction
    assessment: RiskAssessment

    @property
    def score(self) -> int:
        return self.assessment.score


@dataclass(frozen=True)
class FraudAlert:
    """Aggregate finding over a transaction window"""

    alert_id: str
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    risk_score: int
    detected_at: datetime
    status: AlertStatus = AlertStatus.ACTIVE
    suggested_actions: Tuple[str, ...] = ()
    transaction_ids: Tuple[str, ...] = ()
    fingerprint: str = ""


@dataclass
class SecurityMetrics:
    """Dashboard roll-up of a fraud scan"""

    total_alerts: int
    critical_alerts: int
    active_alerts: int
    avg_risk_score: float
    high_risk_transactions: int
    flag_counts: Dict[str, int] = field(default_factory=dict)
