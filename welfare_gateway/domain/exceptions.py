"""Domain-specific exceptions"""

from decimal import Decimal


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidEntityError(DomainException, ValueError):
    """Entity would be constructed in an impossible state"""

    pass


class InsufficientBalanceError(DomainException):
    """Spend or distribution exceeds the company's available balance"""

    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient balance: requested {requested}, available {available} "
            f"(short by {self.shortfall})"
        )


class PoolExceededError(DomainException):
    """Manual distribution sums above the allocable pool"""

    def __init__(self, requested: int, pool: int):
        self.requested = requested
        self.pool = pool
        self.overage = requested - pool
        super().__init__(
            f"Distribution of {requested} points exceeds pool of {pool} by {self.overage}"
        )


class InvalidStatusTransitionError(DomainException):
    """Status change not allowed by the lifecycle state machine"""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move from '{current}' to '{requested}'")
