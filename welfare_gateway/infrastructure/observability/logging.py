"""JSON logs on stdout, one object per line"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Stamps every record with UTC time, level and the emitting service"""

    def __init__(self, *args, service: str = "welfare-gateway", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service


def setup_logging(level: str = "INFO", service: str = "welfare-gateway") -> None:
    """Route the root logger to a single JSON stdout handler"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s", service=service))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


def log_recharge(
    request_id: str,
    company_id: str,
    amount: str,
    exceeds_ceiling: bool,
    applied: bool,
) -> None:
    """Log recharge outcome, including whether the fiscal ceiling was crossed"""
    logging.info(
        "Recharge processed",
        extra={
            "request_id": request_id,
            "company_id": company_id,
            "step": "recharge_applied" if applied else "recharge_needs_confirmation",
            "amount": amount,
            "exceeds_ceiling": exceeds_ceiling,
        },
    )


def log_distribution(
    request_id: str,
    company_id: str,
    policy: str,
    allocated: int,
    residual: int,
    duration_ms: float,
) -> None:
    """Log applied distribution plan"""
    logging.info(
        "Distribution completed",
        extra={
            "request_id": request_id,
            "company_id": company_id,
            "step": "distribution_complete",
            "policy": policy,
            "allocated_points": allocated,
            "residual_points": residual,
            "duration_ms": duration_ms,
        },
    )


def log_fraud_scan(
    request_id: str,
    company_id: str,
    transactions_scanned: int,
    alerts_raised: int,
    alerts_skipped: int,
) -> None:
    """Log fraud scan summary"""
    logging.info(
        "Fraud scan completed",
        extra={
            "request_id": request_id,
            "company_id": company_id,
            "step": "fraud_scan_complete",
            "transactions_scanned": transactions_scanned,
            "alerts_raised": alerts_raised,
            "alerts_skipped": alerts_skipped,
        },
    )
