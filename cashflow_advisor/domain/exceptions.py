"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException):
    """Monetary amount is zero, negative or otherwise unusable"""

    pass


class InvalidTransactionDataError(DomainException):
    """Transaction data is malformed or invalid"""

    pass


class TransactionNotFoundError(DomainException):
    """Referenced transaction does not exist for the user"""

    pass
