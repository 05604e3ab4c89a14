"""Shared pytest fixtures for ledger service tests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from ledger_service.application.commands import CreateTransactionCommand, EntryCommand
from ledger_service.application.unit_of_work import UnitOfWork
from ledger_service.domain.models import Account, Direction, Entry, Money
from ledger_service.infrastructure.database import Database


CASH_ACCOUNT_ID = "5d2b5f0e-4d8a-4b8e-9a57-2f1a9c0e7b11"
REVENUE_ACCOUNT_ID = "9e6f0c3a-1b2d-4c5e-8f7a-6b5c4d3e2f10"


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_account_repository() -> AsyncMock:
    """Create mock AccountRepository."""
    repo = AsyncMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.find_all = AsyncMock(return_value=[])
    repo.save = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_transaction_repository() -> AsyncMock:
    """Create mock TransactionRepository."""
    repo = AsyncMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.find_all = AsyncMock(return_value=[])
    repo.get_entries_for_account = AsyncMock(return_value=[])
    repo.add = AsyncMock(return_value=None)
    repo.save = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_uow(
    mock_account_repository: AsyncMock,
    mock_transaction_repository: AsyncMock,
) -> AsyncMock:
    """Create mock Unit of Work with all repositories."""
    uow = AsyncMock(spec=UnitOfWork)
    uow.accounts = mock_account_repository
    uow.transactions = mock_transaction_repository
    uow.commit = AsyncMock(return_value=None)
    uow.rollback = AsyncMock(return_value=None)

    # Configure async context manager
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


@pytest.fixture
def mock_idempotency_cache() -> AsyncMock:
    """Create mock IdempotencyCache that always grants the reservation."""
    cache = AsyncMock()
    cache.check_and_reserve = AsyncMock(return_value=None)
    cache.store = AsyncMock(return_value=None)
    cache.release = AsyncMock(return_value=None)
    cache.sweep_expired = AsyncMock(return_value=0)
    return cache


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """File backed SQLite database with the full schema."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await db.create_schema()
    yield db
    await db.close()


@pytest.fixture
def cash_account() -> Account:
    return create_account(CASH_ACCOUNT_ID, Direction.DEBIT, name="Cash")


@pytest.fixture
def revenue_account() -> Account:
    return create_account(REVENUE_ACCOUNT_ID, Direction.CREDIT, name="Revenue")


def create_account(
    account_id: str,
    direction: Direction = Direction.DEBIT,
    name: str | None = None,
) -> Account:
    """Helper to create Account with custom values."""
    return Account(
        id=account_id,
        direction=direction,
        name=name,
        created_at=datetime.now(UTC),
    )


def create_entry(
    account_id: str,
    direction: Direction,
    cents: int,
    currency: str = "USD",
) -> Entry:
    """Helper to create Entry with an amount in minor units."""
    return Entry.create(
        account_id=account_id,
        direction=direction,
        amount=Money.from_minor_units(cents, currency),
    )


def sale_command(
    amount: str = "100",
    name: str | None = "Cash sale",
    transaction_id: str | None = None,
) -> CreateTransactionCommand:
    """Helper building a balanced cash/revenue transaction command."""
    return CreateTransactionCommand(
        entries=[
            EntryCommand(account_id=CASH_ACCOUNT_ID, direction=Direction.DEBIT, amount=Decimal(amount)),
            EntryCommand(account_id=REVENUE_ACCOUNT_ID, direction=Direction.CREDIT, amount=Decimal(amount)),
        ],
        id=transaction_id,
        name=name,
    )
