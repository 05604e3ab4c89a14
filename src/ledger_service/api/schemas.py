"""Request and response shapes at the ledger boundary.

A transport hands raw payloads to ``parse_create_account`` or
``parse_create_transaction`` and renders results with the response models.
Validation failures surface as the domain ``ValidationError`` so every caller
deals with a single error hierarchy.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Literal, Self, TypeVar

from pydantic import UUID4, BaseModel, ConfigDict, Field, field_serializer
from pydantic import ValidationError as PydanticValidationError

from ledger_service.application.commands import (
    CreateAccountCommand,
    CreateTransactionCommand,
    EntryCommand,
)
from ledger_service.domain.exceptions import DomainError, ValidationError
from ledger_service.domain.models import AccountWithBalance, Direction, Entry, Transaction


class CreateAccountRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID4 | None = Field(default=None, description="Client supplied account id")
    name: str | None = Field(default=None, description="Display name")
    direction: Direction = Field(..., description="Native direction of the account")

    def to_command(self) -> CreateAccountCommand:
        return CreateAccountCommand(
            direction=self.direction,
            id=str(self.id) if self.id else None,
            name=self.name,
        )


class EntryRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID4 | None = None
    direction: Direction
    account_id: UUID4
    amount: Decimal = Field(..., gt=0, allow_inf_nan=False)

    def to_command(self) -> EntryCommand:
        return EntryCommand(
            account_id=str(self.account_id),
            direction=self.direction,
            amount=self.amount,
            id=str(self.id) if self.id else None,
        )


class CreateTransactionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID4 | None = None
    name: str | None = None
    entries: list[EntryRequest] = Field(..., min_length=1)

    def to_command(self) -> CreateTransactionCommand:
        return CreateTransactionCommand(
            entries=[entry.to_command() for entry in self.entries],
            id=str(self.id) if self.id else None,
            name=self.name,
        )


class AccountResponse(BaseModel):
    id: str
    name: str | None
    direction: Direction
    balance: Decimal

    @classmethod
    def from_domain(cls, account: AccountWithBalance) -> Self:
        return cls(
            id=account.account.id,
            name=account.account.name,
            direction=account.account.direction,
            balance=account.balance.to_decimal(),
        )

    @field_serializer("balance", when_used="json")
    def _balance_as_number(self, balance: Decimal) -> float:
        return float(balance)


class EntryResponse(BaseModel):
    id: str
    direction: Direction
    account_id: str
    amount: Decimal

    @classmethod
    def from_domain(cls, entry: Entry) -> Self:
        return cls(
            id=entry.id,
            direction=entry.direction,
            account_id=entry.account_id,
            amount=entry.amount.to_decimal(),
        )

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, amount: Decimal) -> float:
        return float(amount)


class TransactionResponse(BaseModel):
    id: str
    name: str | None
    entries: list[EntryResponse]

    @classmethod
    def from_domain(cls, transaction: Transaction) -> Self:
        return cls(
            id=transaction.id,
            name=transaction.name,
            entries=[EntryResponse.from_domain(entry) for entry in transaction.entries],
        )


class ErrorDetail(BaseModel):
    path: str
    message: str


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    type: str
    message: str
    details: list[ErrorDetail] | None = None

    @classmethod
    def from_exception(cls, exc: DomainError) -> Self:
        details = None
        if isinstance(exc, ValidationError) and exc.details:
            details = [ErrorDetail(**detail) for detail in exc.details]
        return cls(type=exc.code.value, message=str(exc), details=details)

    @classmethod
    def internal(cls) -> Self:
        """Opaque body for failures that must not leak internals."""
        return cls(type="INTERNAL_ERROR", message="Internal server error")


M = TypeVar("M", bound=BaseModel)


def _parse(model: type[M], payload: Mapping[str, Any]) -> M:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        details = [
            {"path": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        raise ValidationError("Validation failed", details=details) from e


def parse_create_account(payload: Mapping[str, Any]) -> CreateAccountRequest:
    return _parse(CreateAccountRequest, payload)


def parse_create_transaction(payload: Mapping[str, Any]) -> CreateTransactionRequest:
    return _parse(CreateTransactionRequest, payload)
