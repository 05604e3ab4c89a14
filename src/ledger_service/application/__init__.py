"""Application layer - services and use cases."""

from ledger_service.application.commands import (
    CreateAccountCommand,
    CreateTransactionCommand,
    EntryCommand,
)
from ledger_service.application.idempotency import canonical_encoding, idempotency_key
from ledger_service.application.services import (
    AccountService,
    CreateAccountResult,
    CreateTransactionResult,
    OperationStatus,
    TransactionService,
)
from ledger_service.application.unit_of_work import UnitOfWork


__all__ = [
    "AccountService",
    "CreateAccountCommand",
    "CreateAccountResult",
    "CreateTransactionCommand",
    "CreateTransactionResult",
    "EntryCommand",
    "OperationStatus",
    "TransactionService",
    "UnitOfWork",
    "canonical_encoding",
    "idempotency_key",
]
