"""Prometheus metrics for fiscal verdicts, distributions and fraud scoring"""

from prometheus_client import Counter, Histogram

# Ledger metrics
recharge_verdict_counter = Counter(
    "welfare_recharge_verdict_total",
    "Recharge validations by fiscal outcome",
    ["outcome"],  # within_ceiling | exceeds_ceiling
)

spend_rejection_counter = Counter(
    "welfare_spend_rejections_total",
    "Spends and distributions blocked for insufficient balance",
)

# Distribution metrics
distribution_counter = Counter(
    "welfare_distribution_total",
    "Distribution plans applied",
    ["policy"],  # manual | equal | proportional
)

distributed_points_counter = Counter(
    "welfare_distributed_points_total",
    "Points granted to employees",
)

# Fraud metrics
risk_score_histogram = Histogram(
    "welfare_transaction_risk_score",
    "Risk scores of scored transactions",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

fraud_alert_counter = Counter(
    "welfare_fraud_alerts_total",
    "Fraud alerts raised",
    ["type"],  # velocity_anomaly | suspicious_pattern
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_recharge_verdict(exceeds: bool) -> None:
    """Record whether a recharge request crossed the tax-free ceiling"""
    recharge_verdict_counter.labels(outcome="exceeds_ceiling" if exceeds else "within_ceiling").inc()


def record_distribution(policy: str, allocated_points: int) -> None:
    distribution_counter.labels(policy=policy).inc()
    distributed_points_counter.inc(allocated_points)


def record_risk_scores(scores) -> None:
    for score in scores:
        risk_score_histogram.observe(score)
