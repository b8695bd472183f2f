"""Fraud alert aggregation over a window of scored transactions"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

from welfare_gateway.domain.clock import Clock, SystemClock
from welfare_gateway.domain.models import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    FraudAlert,
    ScoredTransaction,
    SecurityMetrics,
)

VELOCITY_ACTIONS = (
    "Check temporal patterns",
    "Check IP addresses",
    "Review user behavior",
)

SUSPICIOUS_PATTERN_ACTIONS = (
    "Block high-risk transactions",
    "Contact involved employees",
    "Review associated partners",
)


@dataclass(frozen=True)
class AlertRules:
    """
    Aggregation thresholds.

    These are operational defaults carried over from the admin dashboard, not
    certified anti-fraud policy; tune them per deployment.
    """

    velocity_baseline: int = 10  # transactions per window considered normal
    high_risk_threshold: int = 70  # individual score above which a transaction is suspicious
    window: timedelta = timedelta(hours=24)


DEFAULT_ALERT_RULES = AlertRules()


def alert_fingerprint(alert_type: AlertType, transaction_ids: Iterable[str]) -> str:
    """Stable identity of an alert's underlying cause, independent of scan time"""
    digest = hashlib.sha256()
    digest.update(alert_type.value.encode())
    for transaction_id in sorted(transaction_ids):
        digest.update(b"\x00")
        digest.update(transaction_id.encode())
    return digest.hexdigest()[:32]


def _velocity_alert(window: Sequence[ScoredTransaction], rules: AlertRules, detected_at) -> FraudAlert:
    count = len(window)
    baseline = rules.velocity_baseline
    percent_over = round((count - baseline) / baseline * 100) if baseline > 0 else 100
    hours = int(rules.window.total_seconds() // 3600)
    ids = tuple(s.transaction.transaction_id for s in window)

    return FraudAlert(
        alert_id=str(uuid.uuid4()),
        alert_type=AlertType.VELOCITY_ANOMALY,
        severity=AlertSeverity.MEDIUM,
        title="Anomalous transaction volume",
        description=(
            f"Detected {count} transactions in the last {hours}h, "
            f"{percent_over}% above the baseline of {baseline}."
        ),
        risk_score=round(sum(s.score for s in window) / count),
        detected_at=detected_at,
        status=AlertStatus.ACTIVE,
        suggested_actions=VELOCITY_ACTIONS,
        transaction_ids=ids,
        fingerprint=alert_fingerprint(AlertType.VELOCITY_ANOMALY, ids),
    )


def _suspicious_pattern_alert(risky: Sequence[ScoredTransaction], rules: AlertRules, detected_at) -> FraudAlert:
    ids = tuple(s.transaction.transaction_id for s in risky)

    return FraudAlert(
        alert_id=str(uuid.uuid4()),
        alert_type=AlertType.SUSPICIOUS_PATTERN,
        severity=AlertSeverity.HIGH,
        title="Suspicious behavioural patterns",
        description=(
            f"{len(risky)} transaction(s) with risk score above "
            f"{rules.high_risk_threshold} detected."
        ),
        risk_score=max(s.score for s in risky),
        detected_at=detected_at,
        status=AlertStatus.ACTIVE,
        suggested_actions=SUSPICIOUS_PATTERN_ACTIONS,
        transaction_ids=ids,
        fingerprint=alert_fingerprint(AlertType.SUSPICIOUS_PATTERN, ids),
    )


def in_window(scored: Iterable[ScoredTransaction], now, window: timedelta) -> List[ScoredTransaction]:
    start = now - window
    return [s for s in scored if start <= s.transaction.created_at <= now]


def aggregate_alerts(
    scored: Iterable[ScoredTransaction],
    clock: Optional[Clock] = None,
    rules: AlertRules = DEFAULT_ALERT_RULES,
) -> List[FraudAlert]:
    """
    Emit aggregate alerts for the reporting window ending now.

    Rules are evaluated independently and their alerts are additive:
    - velocity anomaly: more transactions than the baseline -> medium
    - suspicious pattern: at least one transaction scoring above the threshold -> high

    The aggregator keeps no memory between runs. Callers that persist alerts
    should skip any alert whose fingerprint is already open.
    """
    now = (clock or SystemClock()).now()
    window = in_window(scored, now, rules.window)
    alerts = []

    if len(window) > rules.velocity_baseline:
        alerts.append(_velocity_alert(window, rules, now))

    risky = [s for s in window if s.score > rules.high_risk_threshold]
    if risky:
        alerts.append(_suspicious_pattern_alert(risky, rules, now))

    return alerts


def summarize_security(
    scored: Sequence[ScoredTransaction],
    alerts: Sequence[FraudAlert],
    rules: AlertRules = DEFAULT_ALERT_RULES,
) -> SecurityMetrics:
    """Roll-up shown at the top of the fraud dashboard"""
    flag_counts = {}
    for item in scored:
        for flag in item.assessment.flags:
            flag_counts[flag.value] = flag_counts.get(flag.value, 0) + 1

    avg_score = round(sum(s.score for s in scored) / len(scored), 1) if scored else 0.0

    return SecurityMetrics(
        total_alerts=len(alerts),
        critical_alerts=sum(1 for a in alerts if a.severity == AlertSeverity.CRITICAL),
        active_alerts=sum(1 for a in alerts if a.status == AlertStatus.ACTIVE),
        avg_risk_score=avg_score,
        high_risk_transactions=sum(1 for s in scored if s.score > rules.high_risk_threshold),
        flag_counts=flag_counts,
    )
