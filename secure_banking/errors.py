"""
Error Types

Business-rule violations derive from BankingError and carry an ErrorKind so
they can be turned into failure results. Infrastructure failures derive from
StorageError and are never treated as business outcomes.
"""

from enum import Enum


class ErrorKind(Enum):
    """Classification of business-rule violations"""
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    SAME_ACCOUNT = "same_account"
    ACCOUNT_NOT_FOUND = "account_not_found"
    CURRENCY_MISMATCH = "currency_mismatch"
    DUPLICATE_ACCOUNT_NUMBER = "duplicate_account_number"


class BankingError(Exception):
    """Base class for business-rule violations"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmountError(BankingError):
    kind = ErrorKind.INVALID_AMOUNT


class InsufficientFundsError(BankingError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class SameAccountError(BankingError):
    kind = ErrorKind.SAME_ACCOUNT


class AccountNotFoundError(BankingError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_id: str):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class CurrencyMismatchError(BankingError):
    kind = ErrorKind.CURRENCY_MISMATCH


class DuplicateAccountNumberError(BankingError):
    kind = ErrorKind.DUPLICATE_ACCOUNT_NUMBER


class StorageError(Exception):
    """Storage backend unavailable or failed mid-operation"""
