from typing import Any

from sqlalchemy import Row, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_service.domain.exceptions import ImmutableLedgerViolationError, ValidationError
from ledger_service.domain.models import Account, Direction
from ledger_service.infrastructure.repositories.dialect import as_utc, dialect_insert
from ledger_service.infrastructure.schema import accounts


class AccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: str) -> Account | None:
        result = await self._session.execute(select(accounts).where(accounts.c.id == account_id))
        row = result.fetchone()
        if not row:
            return None
        return self._to_account(row)

    async def find_all(self) -> list[Account]:
        result = await self._session.execute(
            select(accounts).order_by(accounts.c.name.asc().nulls_first(), accounts.c.id)
        )
        return [self._to_account(row) for row in result.fetchall()]

    async def save(self, account: Account) -> None:
        """Insert the account, or update its name when the id already exists.

        The conflict update only applies when the stored direction matches, so
        concurrent writers cannot flip an account's direction.
        """
        insert = dialect_insert(self._session)
        stmt = insert(accounts).values(
            id=account.id,
            name=account.name,
            direction=account.direction.value,
            created_at=account.created_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[accounts.c.id],
            set_={"name": stmt.excluded.name},
            where=accounts.c.direction == stmt.excluded.direction,
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise ValidationError(
                "Account direction cannot be changed",
                details=[{"path": "direction", "message": f"account {account.id} has another direction"}],
            )

    async def delete(self, account_id: str) -> None:
        raise ImmutableLedgerViolationError("Account", account_id)

    @staticmethod
    def _to_account(row: Row[Any]) -> Account:
        return Account(
            id=row.id,
            name=row.name,
            direction=Direction(row.direction),
            created_at=as_utc(row.created_at),
        )
