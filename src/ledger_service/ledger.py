import asyncio
import contextlib
from datetime import timedelta
from types import TracebackType
from typing import Self

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_service.application.commands import CreateAccountCommand, CreateTransactionCommand
from ledger_service.application.services import (
    AccountService,
    CreateAccountResult,
    CreateTransactionResult,
    TransactionService,
)
from ledger_service.application.unit_of_work import UnitOfWork
from ledger_service.config import Settings, settings as default_settings
from ledger_service.domain.exceptions import AccountNotFoundError, TransactionNotFoundError
from ledger_service.domain.models import AccountWithBalance, Transaction
from ledger_service.infrastructure.database import Database
from ledger_service.infrastructure.idempotency import (
    IdempotencyCache,
    IdempotencySweeper,
    InMemoryIdempotencyCache,
    RedisIdempotencyCache,
)
from ledger_service.infrastructure.redis_client import RedisClient


logger = structlog.get_logger()


class Ledger:
    """Composition root for the ledger.

    Owns the database engine, the idempotency cache and its sweeper. Every
    operation runs in a session of its own, like a request handler would.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        idempotency: IdempotencyCache | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._database = Database(self._settings.database_url)
        self._idempotency = idempotency
        self._redis_client: RedisClient | None = None
        self._sweeper: IdempotencySweeper | None = None
        self._sweeper_task: asyncio.Task[None] | None = None

    @property
    def database(self) -> Database:
        return self._database

    @property
    def idempotency(self) -> IdempotencyCache:
        if self._idempotency is None:
            raise RuntimeError("Ledger not started. Call start() first.")
        return self._idempotency

    async def start(self) -> None:
        await self._database.create_schema()

        if self._idempotency is None:
            self._idempotency = await self._build_idempotency_cache()

        self._sweeper = IdempotencySweeper(
            self._idempotency,
            interval_seconds=self._settings.idempotency_sweep_interval_seconds,
        )
        self._sweeper_task = asyncio.create_task(self._sweeper.start())

        logger.info(
            "ledger_started",
            database=self._database.engine.url.render_as_string(hide_password=True),
            idempotency_backend=type(self._idempotency).__name__,
            currency=self._settings.currency,
        )

    async def close(self) -> None:
        if self._sweeper:
            await self._sweeper.stop()
        if self._sweeper_task:
            self._sweeper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper_task
            self._sweeper_task = None
        if self._redis_client:
            await self._redis_client.close()
            self._redis_client = None
        await self._database.close()
        logger.info("ledger_closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def create_account(self, cmd: CreateAccountCommand) -> CreateAccountResult:
        async with self._database.session() as session:
            return await self._account_service(session).create_account(cmd)

    async def get_account(self, account_id: str) -> AccountWithBalance:
        async with self._database.session() as session:
            account = await self._account_service(session).get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def list_accounts(self) -> list[AccountWithBalance]:
        async with self._database.session() as session:
            return await self._account_service(session).list_accounts()

    async def create_transaction(self, cmd: CreateTransactionCommand) -> CreateTransactionResult:
        async with self._database.session() as session:
            return await self._transaction_service(session).create_transaction(cmd)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        async with self._database.session() as session:
            transaction = await self._transaction_service(session).get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    async def list_transactions(self) -> list[Transaction]:
        async with self._database.session() as session:
            return await self._transaction_service(session).list_transactions()

    def _account_service(self, session: AsyncSession) -> AccountService:
        return AccountService(UnitOfWork(session), currency=self._settings.currency)

    def _transaction_service(self, session: AsyncSession) -> TransactionService:
        return TransactionService(
            UnitOfWork(session),
            self.idempotency,
            currency=self._settings.currency,
        )

    async def _build_idempotency_cache(self) -> IdempotencyCache:
        ttl = timedelta(seconds=self._settings.idempotency_ttl_seconds)

        if self._settings.idempotency_backend == "redis":
            self._redis_client = RedisClient(self._settings.redis_url)
            await self._redis_client.connect()
            return RedisIdempotencyCache(
                self._redis_client.client,
                ttl=ttl,
                key_prefix=self._settings.idempotency_key_prefix,
            )

        return InMemoryIdempotencyCache(ttl=ttl)
