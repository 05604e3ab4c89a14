from enum import Enum
from typing import Any, ClassVar


class ErrorCode(Enum):
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    EMPTY_TRANSACTION = "EMPTY_TRANSACTION"
    UNBALANCED_TRANSACTION = "UNBALANCED_TRANSACTION"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    TRANSACTION_ALREADY_EXISTS = "TRANSACTION_ALREADY_EXISTS"
    IMMUTABLE_LEDGER_VIOLATION = "IMMUTABLE_LEDGER_VIOLATION"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    PRECISION_EXCEEDED = "PRECISION_EXCEEDED"


class DomainError(Exception):
    """Base exception for domain errors.

    Every subclass carries a fixed ``code`` so callers can branch on a closed
    set of variants instead of exception types.
    """

    code: ClassVar[ErrorCode]


class NotFoundError(DomainError):
    """Base exception for lookups of entities that do not exist."""


class AccountNotFoundError(NotFoundError):
    """Raised when an account cannot be found."""

    code = ErrorCode.ACCOUNT_NOT_FOUND

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction cannot be found."""

    code = ErrorCode.TRANSACTION_NOT_FOUND

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class UnknownAccountError(NotFoundError):
    """Raised when an entry references an account that does not exist."""

    code = ErrorCode.UNKNOWN_ACCOUNT

    def __init__(self, account_id: str | None = None) -> None:
        self.account_id = account_id
        if account_id is None:
            super().__init__("Entry references an unknown account")
        else:
            super().__init__(f"Entry references unknown account {account_id}")


class ValidationError(DomainError):
    """Raised when input fails validation.

    ``details`` holds field-level problems as ``{"path": ..., "message": ...}``.
    """

    code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        self.details = details or []
        super().__init__(message)


class EmptyTransactionError(DomainError):
    """Raised when a transaction has no entries."""

    code = ErrorCode.EMPTY_TRANSACTION

    def __init__(self) -> None:
        super().__init__("Transaction must have at least one entry")


class UnbalancedTransactionError(DomainError):
    """Raised when debits and credits of a transaction do not cancel out."""

    code = ErrorCode.UNBALANCED_TRANSACTION

    def __init__(self, difference_minor_units: int) -> None:
        self.difference_minor_units = difference_minor_units
        super().__init__(
            "Transaction entries must balance: sum of debits must equal sum of credits "
            f"(off by {difference_minor_units} minor units)"
        )


class DuplicateTransactionError(DomainError):
    """Raised when the same transaction payload was already submitted."""

    code = ErrorCode.DUPLICATE_TRANSACTION

    def __init__(self, original_transaction_id: str | None) -> None:
        self.original_transaction_id = original_transaction_id
        if original_transaction_id is None:
            super().__init__("Duplicate transaction detected: an identical request is still being processed")
        else:
            super().__init__(f"Duplicate transaction detected. Original transaction ID: {original_transaction_id}")


class TransactionAlreadyExistsError(DomainError):
    """Raised when a new transaction reuses the id of a stored one."""

    code = ErrorCode.TRANSACTION_ALREADY_EXISTS

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} already exists")


class ImmutableLedgerViolationError(DomainError):
    """Raised on any attempt to delete ledger data."""

    code = ErrorCode.IMMUTABLE_LEDGER_VIOLATION

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} cannot be deleted. The ledger is immutable.")


class CurrencyMismatchError(DomainError):
    """Raised when currencies don't match."""

    code = ErrorCode.CURRENCY_MISMATCH

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")


class InvalidAmountError(DomainError):
    """Raised when a monetary amount is invalid."""

    code = ErrorCode.INVALID_AMOUNT

    def __init__(self, amount: object, reason: str) -> None:
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class PrecisionExceededError(DomainError):
    """Raised when an amount has more fractional digits than minor units allow."""

    code = ErrorCode.PRECISION_EXCEEDED

    def __init__(self, amount: object, max_fraction_digits: int = 2) -> None:
        self.amount = amount
        self.max_fraction_digits = max_fraction_digits
        super().__init__(f"Amount {amount} must have at most {max_fraction_digits} decimal places")
