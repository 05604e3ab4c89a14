"""Repository implementations."""

from ledger_service.infrastructure.repositories.account import AccountRepository
from ledger_service.infrastructure.repositories.transaction import TransactionRepository


__all__ = [
    "AccountRepository",
    "TransactionRepository",
]
