from collections import defaultdict
from typing import Any

from sqlalchemy import Row, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_service.domain.exceptions import (
    DomainError,
    ImmutableLedgerViolationError,
    TransactionAlreadyExistsError,
    UnknownAccountError,
    ValidationError,
)
from ledger_service.domain.models import Direction, Entry, Money, Transaction
from ledger_service.infrastructure.repositories.dialect import as_utc, dialect_insert
from ledger_service.infrastructure.schema import accounts, entries, transactions


class TransactionRepository:
    """Persists transactions together with their entries.

    Writes happen on the caller's session; the unit of work commits or rolls
    back, so a header is never stored without all of its entries.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, transaction_id: str) -> Transaction | None:
        result = await self._session.execute(select(transactions).where(transactions.c.id == transaction_id))
        header = result.fetchone()
        if not header:
            return None

        result = await self._session.execute(
            select(entries).where(entries.c.transaction_id == transaction_id).order_by(entries.c.id)
        )
        return self._to_transaction(header, result.fetchall())

    async def find_all(self) -> list[Transaction]:
        result = await self._session.execute(
            select(transactions).order_by(transactions.c.created_at.desc(), transactions.c.id.desc())
        )
        headers = result.fetchall()
        if not headers:
            return []

        result = await self._session.execute(
            select(entries)
            .where(entries.c.transaction_id.in_([header.id for header in headers]))
            .order_by(entries.c.id)
        )
        rows_by_transaction: dict[str, list[Row[Any]]] = defaultdict(list)
        for row in result.fetchall():
            rows_by_transaction[row.transaction_id].append(row)

        return [self._to_transaction(header, rows_by_transaction[header.id]) for header in headers]

    async def get_entries_for_account(self, account_id: str) -> list[Entry]:
        result = await self._session.execute(
            select(entries).where(entries.c.account_id == account_id).order_by(entries.c.id)
        )
        return [self._to_entry(row) for row in result.fetchall()]

    async def add(self, transaction: Transaction) -> None:
        """Insert a new transaction. Never replaces an existing one."""
        result = await self._session.execute(select(transactions.c.id).where(transactions.c.id == transaction.id))
        if result.first():
            raise TransactionAlreadyExistsError(transaction.id)

        await self._ensure_accounts_exist(transaction)

        try:
            await self._session.execute(
                insert(transactions).values(
                    id=transaction.id,
                    name=transaction.name,
                    created_at=transaction.created_at,
                )
            )
            await self._insert_entries(transaction)
        except IntegrityError as exc:
            translated = self._translate_integrity_error(transaction, exc)
            if translated is None:
                raise
            raise translated from exc

    async def save(self, transaction: Transaction) -> None:
        """Upsert a transaction, replacing the entries of an existing id.

        This is the correction path. Transaction creation goes through ``add``.
        """
        await self._ensure_accounts_exist(transaction)

        upsert = dialect_insert(self._session)
        stmt = upsert(transactions).values(
            id=transaction.id,
            name=transaction.name,
            created_at=transaction.created_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[transactions.c.id],
            set_={"name": stmt.excluded.name},
        )

        try:
            await self._session.execute(stmt)
            await self._session.execute(delete(entries).where(entries.c.transaction_id == transaction.id))
            await self._insert_entries(transaction)
        except IntegrityError as exc:
            translated = self._translate_integrity_error(transaction, exc)
            if translated is None:
                raise
            raise translated from exc

    async def delete(self, transaction_id: str) -> None:
        raise ImmutableLedgerViolationError("Transaction", transaction_id)

    async def _ensure_accounts_exist(self, transaction: Transaction) -> None:
        referenced = {entry.account_id for entry in transaction.entries}
        result = await self._session.execute(select(accounts.c.id).where(accounts.c.id.in_(sorted(referenced))))
        missing = referenced - set(result.scalars().all())
        if missing:
            raise UnknownAccountError(sorted(missing)[0])

    async def _insert_entries(self, transaction: Transaction) -> None:
        await self._session.execute(
            insert(entries),
            [
                {
                    "entry_id": entry.id,
                    "transaction_id": transaction.id,
                    "account_id": entry.account_id,
                    "direction": entry.direction.value,
                    "amount_minor_units": entry.amount.minor_units,
                    "currency": entry.amount.currency,
                }
                for entry in transaction.entries
            ],
        )

    @staticmethod
    def _translate_integrity_error(
        transaction: Transaction, exc: IntegrityError
    ) -> DomainError | None:
        message = str(exc.orig).lower()
        if "foreign key" in message:
            return UnknownAccountError()
        if "entry_id" in message:
            return ValidationError("Entry id is already used by another entry")
        if "unique" in message or "duplicate key" in message:
            return TransactionAlreadyExistsError(transaction.id)
        return None

    @classmethod
    def _to_transaction(cls, header: Row[Any], entry_rows: list[Row[Any]]) -> Transaction:
        return Transaction(
            id=header.id,
            name=header.name,
            entries=tuple(cls._to_entry(row) for row in entry_rows),
            created_at=as_utc(header.created_at),
        )

    @staticmethod
    def _to_entry(row: Row[Any]) -> Entry:
        return Entry(
            id=row.entry_id,
            account_id=row.account_id,
            direction=Direction(row.direction),
            amount=Money.from_minor_units(row.amount_minor_units, row.currency),
        )
