"""Domain layer - ledger entities and rules."""

from ledger_service.domain.balance import BalanceCalculator
from ledger_service.domain.exceptions import (
    AccountNotFoundError,
    CurrencyMismatchError,
    DomainError,
    DuplicateTransactionError,
    EmptyTransactionError,
    ErrorCode,
    ImmutableLedgerViolationError,
    InvalidAmountError,
    NotFoundError,
    PrecisionExceededError,
    TransactionAlreadyExistsError,
    TransactionNotFoundError,
    UnbalancedTransactionError,
    UnknownAccountError,
    ValidationError,
)
from ledger_service.domain.models import (
    Account,
    AccountWithBalance,
    Direction,
    Entry,
    IdempotencyRecord,
    IdempotencyStatus,
    Money,
    Transaction,
)


__all__ = [
    "Account",
    "AccountNotFoundError",
    "AccountWithBalance",
    "BalanceCalculator",
    "CurrencyMismatchError",
    "Direction",
    "DomainError",
    "DuplicateTransactionError",
    "EmptyTransactionError",
    "Entry",
    "ErrorCode",
    "IdempotencyRecord",
    "IdempotencyStatus",
    "ImmutableLedgerViolationError",
    "InvalidAmountError",
    "Money",
    "NotFoundError",
    "PrecisionExceededError",
    "Transaction",
    "TransactionAlreadyExistsError",
    "TransactionNotFoundError",
    "UnbalancedTransactionError",
    "UnknownAccountError",
    "ValidationError",
]
