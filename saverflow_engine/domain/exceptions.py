"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidSnapshotError(DomainException):
    """Snapshot records are malformed or reference unknown values"""

    pass


class InsufficientDataError(DomainException):
    """Not enough transaction history for a caller that requires it"""

    pass
