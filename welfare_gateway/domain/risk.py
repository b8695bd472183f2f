"""Rule-based transaction risk scoring"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

from welfare_gateway.domain.models import (
    RiskAssessment,
    RiskFlag,
    RiskSignal,
    ScoredTransaction,
    Transaction,
)
from welfare_gateway.utils.date_utils import is_weekend, to_local

MAX_SCORE = 100


@dataclass(frozen=True)
class RiskRules:
    """
    Thresholds and weights for transaction scoring.

    Defaults:
    - points > 500: +30 (high value), 200 < points <= 500: +15 (elevated value)
    - local hour < 6 or > 22: +20
    - same employee with > 5 other transactions in history: +25
    - > 3 other transactions within +/- 1 hour: +20
    - Saturday or Sunday: +10
    """

    high_value_points: int = 500
    elevated_value_points: int = 200
    off_hours_start: int = 22  # hours strictly after this are off-hours
    off_hours_end: int = 6  # hours strictly before this are off-hours
    employee_frequency_threshold: int = 5
    burst_threshold: int = 3
    burst_window: timedelta = timedelta(hours=1)
    high_value_weight: int = 30
    elevated_value_weight: int = 15
    off_hours_weight: int = 20
    employee_frequency_weight: int = 25
    burst_weight: int = 20
    weekend_weight: int = 10
    timezone: str = "Europe/Rome"


DEFAULT_RULES = RiskRules()


def _others(transaction: Transaction, history: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in history if t.transaction_id != transaction.transaction_id]


def score_transaction(
    transaction: Transaction,
    history: Iterable[Transaction],
    rules: RiskRules = DEFAULT_RULES,
) -> RiskAssessment:
    """
    Score one transaction against its neighbourhood.

    The score is the capped sum of fired rule weights and is meant for ranking.
    Flags are evidence derived from the same thresholds, independently of the
    score: a transaction can carry flags at a moderate score.

    Flags:
    - HIGH_VALUE: points above the high-value threshold
    - OFF_HOURS / WEEKEND: local time of the transaction
    - HIGH_RISK: behavioural anomaly (employee frequency or burst rule fired)

    Example:
        1000 points at 03:00 on a Saturday, 6 same-employee and 4 nearby transactions
        30 + 20 + 25 + 20 + 10 = 105 -> capped to 100
    """
    others = _others(transaction, history)
    local_time = to_local(transaction.created_at, rules.timezone)
    points = transaction.points_used

    signals = []
    flags = set()

    if points > rules.high_value_points:
        signals.append(RiskSignal("high_value", rules.high_value_weight))
        flags.add(RiskFlag.HIGH_VALUE)
    elif points > rules.elevated_value_points:
        signals.append(RiskSignal("elevated_value", rules.elevated_value_weight))

    if local_time.hour < rules.off_hours_end or local_time.hour > rules.off_hours_start:
        signals.append(RiskSignal("off_hours", rules.off_hours_weight))
        flags.add(RiskFlag.OFF_HOURS)

    same_employee = sum(1 for t in others if t.employee_id == transaction.employee_id)
    if same_employee > rules.employee_frequency_threshold:
        signals.append(RiskSignal("employee_frequency", rules.employee_frequency_weight))
        flags.add(RiskFlag.HIGH_RISK)

    nearby = sum(
        1 for t in others if abs(t.created_at - transaction.created_at) <= rules.burst_window
    )
    if nearby > rules.burst_threshold:
        signals.append(RiskSignal("burst", rules.burst_weight))
        flags.add(RiskFlag.HIGH_RISK)

    if is_weekend(local_time.date()):
        signals.append(RiskSignal("weekend", rules.weekend_weight))
        flags.add(RiskFlag.WEEKEND)

    raw = sum(s.weight for s in signals)

    return RiskAssessment(
        score=max(0, min(raw, MAX_SCORE)),
        flags=frozenset(flags),
        signals=tuple(signals),
    )


def score_transactions(
    transactions: Sequence[Transaction],
    history: Optional[Sequence[Transaction]] = None,
    rules: RiskRules = DEFAULT_RULES,
) -> List[ScoredTransaction]:
    """
    Score every transaction of a window.

    history defaults to the window itself; pass the company's wider history to
    count same-employee frequency beyond the window.
    """
    neighbourhood = list(history) if history is not None else list(transactions)
    return [
        ScoredTransaction(transaction=t, assessment=score_transaction(t, neighbourhood, rules))
        for t in transactions
    ]
