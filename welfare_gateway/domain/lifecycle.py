"""Status state machines for fraud alerts and transactions"""

from dataclasses import replace
from typing import Dict, FrozenSet, Union

from welfare_gateway.domain.exceptions import InvalidStatusTransitionError
from welfare_gateway.domain.models import AlertStatus, FraudAlert, Transaction, TransactionStatus

ALERT_TRANSITIONS: Dict[AlertStatus, FrozenSet[AlertStatus]] = {
    AlertStatus.ACTIVE: frozenset({AlertStatus.INVESTIGATING, AlertStatus.FALSE_POSITIVE}),
    AlertStatus.INVESTIGATING: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
    AlertStatus.FALSE_POSITIVE: frozenset(),
}

TRANSACTION_TRANSITIONS: Dict[TransactionStatus, FrozenSet[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.COMPLETED, TransactionStatus.CANCELLED}),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}


def can_transition_alert(current: AlertStatus, new_status: AlertStatus) -> bool:
    return new_status in ALERT_TRANSITIONS[current]


def is_terminal(status: AlertStatus) -> bool:
    return not ALERT_TRANSITIONS[status]


def transition_alert(alert: FraudAlert, new_status: Union[AlertStatus, str]) -> FraudAlert:
    """
    Move an alert along active -> investigating -> resolved, or active -> false_positive.

    Returns a new alert; the input is left untouched.

    Raises:
        InvalidStatusTransitionError: move not allowed from the current status
    """
    new_status = AlertStatus(new_status)
    if not can_transition_alert(alert.status, new_status):
        raise InvalidStatusTransitionError(alert.status.value, new_status.value)
    return replace(alert, status=new_status)


def transition_transaction(
    transaction: Transaction, new_status: Union[TransactionStatus, str]
) -> Transaction:
    """Complete or cancel a pending transaction"""
    new_status = TransactionStatus(new_status)
    if new_status not in TRANSACTION_TRANSITIONS[transaction.status]:
        raise InvalidStatusTransitionError(transaction.status.value, new_status.value)
    return replace(transaction, status=new_status)
