from dataclasses import dataclass, replace
from enum import Enum

import structlog

from ledger_service.application.commands import CreateAccountCommand, CreateTransactionCommand
from ledger_service.application.idempotency import idempotency_key
from ledger_service.application.unit_of_work import UnitOfWork
from ledger_service.domain.balance import BalanceCalculator
from ledger_service.domain.exceptions import (
    DomainError,
    DuplicateTransactionError,
    ErrorCode,
    ValidationError,
)
from ledger_service.domain.models import (
    DEFAULT_CURRENCY,
    Account,
    AccountWithBalance,
    IdempotencyRecord,
    Money,
    Transaction,
)
from ledger_service.infrastructure.idempotency import IdempotencyCache
from ledger_service.infrastructure.metrics import (
    ACCOUNT_REQUESTS_TOTAL,
    IDEMPOTENCY_LOOKUPS_TOTAL,
    TRANSACTION_REQUESTS_TOTAL,
    track_transaction_duration,
)


logger = structlog.get_logger()


class OperationStatus(Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DUPLICATE = "DUPLICATE"
    REJECTED = "REJECTED"


@dataclass
class CreateAccountResult:
    status: OperationStatus
    account: AccountWithBalance | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None
    error: DomainError | None = None


@dataclass
class CreateTransactionResult:
    status: OperationStatus
    transaction_id: str | None = None
    transaction: Transaction | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None
    error: DomainError | None = None

    @classmethod
    def from_error(
        cls,
        error: DomainError,
        status: OperationStatus = OperationStatus.REJECTED,
        transaction_id: str | None = None,
    ) -> "CreateTransactionResult":
        return cls(
            status=status,
            transaction_id=transaction_id,
            error_code=error.code,
            error_message=str(error),
            error=error,
        )


class AccountService:
    def __init__(self, uow: UnitOfWork, currency: str = DEFAULT_CURRENCY) -> None:
        self.uow = uow
        self._currency = currency
        self._calculator = BalanceCalculator(currency)

    async def create_account(self, cmd: CreateAccountCommand) -> CreateAccountResult:
        account = cmd.to_domain()
        log = logger.bind(account_id=account.id, direction=account.direction)

        try:
            async with self.uow:
                existing = await self.uow.accounts.get_by_id(account.id)
                if existing is not None:
                    if existing.direction is not account.direction:
                        raise ValidationError(
                            "Account direction cannot be changed",
                            details=[
                                {
                                    "path": "direction",
                                    "message": f"account {account.id} is {existing.direction.value}",
                                }
                            ],
                        )
                    account = replace(account, created_at=existing.created_at)

                await self.uow.accounts.save(account)

                if existing is None:
                    balance = Money.zero(self._currency)
                else:
                    balance = await self._balance_of(account)

                await self.uow.commit()
        except DomainError as e:
            log.info("account_rejected", error_code=e.code, reason=str(e))
            ACCOUNT_REQUESTS_TOTAL.labels(status=OperationStatus.REJECTED.value, error_code=e.code.value).inc()
            return CreateAccountResult(
                status=OperationStatus.REJECTED,
                error_code=e.code,
                error_message=str(e),
                error=e,
            )

        status = OperationStatus.CREATED if existing is None else OperationStatus.UPDATED
        ACCOUNT_REQUESTS_TOTAL.labels(status=status.value, error_code="").inc()
        log.info("account_saved", status=status, name=account.name)

        return CreateAccountResult(
            status=status,
            account=AccountWithBalance(account=account, balance=balance),
        )

    async def get_account(self, account_id: str) -> AccountWithBalance | None:
        async with self.uow:
            account = await self.uow.accounts.get_by_id(account_id)
            if account is None:
                return None
            balance = await self._balance_of(account)

        logger.info("get_account", account_id=account_id, balance=balance.to_decimal())
        return AccountWithBalance(account=account, balance=balance)

    async def list_accounts(self) -> list[AccountWithBalance]:
        async with self.uow:
            accounts = await self.uow.accounts.find_all()
            return [AccountWithBalance(account=account, balance=await self._balance_of(account)) for account in accounts]

    async def _balance_of(self, account: Account) -> Money:
        entries = await self.uow.transactions.get_entries_for_account(account.id)
        return self._calculator.calculate(account, entries)


class TransactionService:
    def __init__(
        self,
        uow: UnitOfWork,
        idempotency: IdempotencyCache,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self.uow = uow
        self._idempotency = idempotency
        self._currency = currency

    @track_transaction_duration
    async def create_transaction(self, cmd: CreateTransactionCommand) -> CreateTransactionResult:
        key = idempotency_key(cmd)
        log = logger.bind(idempotency_key=key, entry_count=len(cmd.entries))

        existing = await self._idempotency.check_and_reserve(key)
        if existing is not None:
            return self._duplicate(existing, log)
        IDEMPOTENCY_LOOKUPS_TOTAL.labels(result="miss").inc()

        try:
            transaction = cmd.to_domain(self._currency)
            async with self.uow:
                await self.uow.transactions.add(transaction)
                await self.uow.commit()
        except DomainError as e:
            await self._idempotency.release(key)
            log.info("transaction_rejected", error_code=e.code, reason=str(e))
            TRANSACTION_REQUESTS_TOTAL.labels(status=OperationStatus.REJECTED.value, error_code=e.code.value).inc()
            return CreateTransactionResult.from_error(e, transaction_id=cmd.id)
        except Exception:
            await self._idempotency.release(key)
            log.exception("transaction_creation_failed")
            raise

        try:
            await self._idempotency.store(key, transaction.id)
        except Exception:
            # The transaction is already committed, so the result stays CREATED.
            log.exception("idempotency_store_failed", transaction_id=transaction.id)
            await self._release_after_store_failure(key, log)

        TRANSACTION_REQUESTS_TOTAL.labels(status=OperationStatus.CREATED.value, error_code="").inc()
        log.info(
            "transaction_created",
            transaction_id=transaction.id,
            currency=transaction.currency,
        )

        return CreateTransactionResult(
            status=OperationStatus.CREATED,
            transaction_id=transaction.id,
            transaction=transaction,
        )

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        async with self.uow:
            transaction = await self.uow.transactions.get_by_id(transaction_id)
        if transaction:
            logger.info(
                "get_transaction",
                transaction_id=transaction.id,
                entry_count=len(transaction.entries),
            )
        return transaction

    async def list_transactions(self) -> list[Transaction]:
        async with self.uow:
            return await self.uow.transactions.find_all()

    def _duplicate(
        self,
        existing: IdempotencyRecord,
        log: structlog.stdlib.BoundLogger,
    ) -> CreateTransactionResult:
        result = "hit" if existing.is_completed else "in_flight"
        IDEMPOTENCY_LOOKUPS_TOTAL.labels(result=result).inc()
        TRANSACTION_REQUESTS_TOTAL.labels(
            status=OperationStatus.DUPLICATE.value,
            error_code=ErrorCode.DUPLICATE_TRANSACTION.value,
        ).inc()
        log.info("idempotent_replay", original_transaction_id=existing.transaction_id, lookup=result)

        return CreateTransactionResult.from_error(
            DuplicateTransactionError(existing.transaction_id),
            status=OperationStatus.DUPLICATE,
            transaction_id=existing.transaction_id,
        )

    async def _release_after_store_failure(self, key: str, log: structlog.stdlib.BoundLogger) -> None:
        try:
            await self._idempotency.release(key)
        except Exception:
            log.warning("idempotency_release_failed", exc_info=True)
