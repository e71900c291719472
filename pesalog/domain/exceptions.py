"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class MalformedCaptureError(DomainException):
    """A dialect matched but one of its captured fields has the wrong shape"""

    pass


class InvalidAmountError(MalformedCaptureError):
    """Amount string does not resolve to an integer count of minor units"""

    pass


class InvalidDateError(MalformedCaptureError):
    """Date or time capture is not a real calendar instant"""

    pass


class DebtNotFoundError(DomainException):
    """Requested debt does not exist"""

    pass


class TransactionNotFoundError(DomainException):
    """Requested transaction does not exist"""

    pass


class ArchivedTransactionError(DomainException):
    """Archived transactions are read-only"""

    pass


class PersistenceError(DomainException):
    """The store rejected a write; the unit of work was rolled back"""

    pass


class CategoryNotFoundError(DomainException):
    """Requested category does not exist"""

    pass
