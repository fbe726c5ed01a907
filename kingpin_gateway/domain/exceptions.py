"""Domain-specific exceptions"""

from kingpin_gateway.domain.models import RejectionReason


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class PrecheckRejection(DomainException):
    """Robbery rejected before any mutation (jailed, self-target, cooldown, ...)"""

    def __init__(self, reason: RejectionReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class TransactionFailure(DomainException):
    """Persistence layer could not commit; nothing was written and the call may be retried"""

    retryable = True


class AccountNotFoundError(DomainException):
    """Account id does not exist"""

    pass


class ItemNotFoundError(DomainException):
    """Inventory item does not exist or is not owned by the account"""

    pass


class InsufficientWealthError(DomainException):
    """Guarded wealth decrement matched no row"""

    pass


class InvalidInsuranceTierError(DomainException):
    """Unknown insurance tier requested"""

    pass


class CollaboratorError(DomainException):
    """Leaderboard, progress, notification or feed service call failed"""

    pass
