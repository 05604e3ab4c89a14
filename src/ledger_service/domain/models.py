from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from enum import Enum
from uuid import uuid4

from ledger_service.domain.exceptions import (
    CurrencyMismatchError,
    EmptyTransactionError,
    InvalidAmountError,
    PrecisionExceededError,
    UnbalancedTransactionError,
    ValidationError,
)


DEFAULT_CURRENCY = "USD"
MINOR_UNITS_PER_UNIT = Decimal(100)
CENT = Decimal("0.01")
PRECISION_TOLERANCE = Decimal("1e-9")
# Entries store minor units in a signed 64-bit column.
MAX_MINOR_UNITS = 2**63 - 1


def new_id() -> str:
    return str(uuid4())


class Direction(Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class IdempotencyStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class Money:
    """Exact monetary value held as integer minor units (cents)."""

    minor_units: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise InvalidAmountError(self.minor_units, "minor units must be an integer")
        if len(self.currency) != 3:
            raise ValidationError("Currency must be ISO 4217 code (3 characters)")

    @classmethod
    def from_decimal(cls, amount: Decimal | int | float | str, currency: str = DEFAULT_CURRENCY) -> "Money":
        """Build Money from a major-unit amount such as ``Decimal("10.50")``.

        The amount must be finite, fit in a signed 64-bit count of minor units
        and carry at most two fractional digits. It is rounded to the nearest
        minor unit and the round trip may not drift by more than 1e-9.
        """
        if isinstance(amount, bool):
            raise InvalidAmountError(amount, "not a number")
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(amount, "not a number") from None

        if not value.is_finite():
            raise InvalidAmountError(amount, "not finite")

        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 4)
            scaled = (value * MINOR_UNITS_PER_UNIT).to_integral_value(rounding=ROUND_HALF_UP)
            if abs(scaled) > MAX_MINOR_UNITS:
                raise InvalidAmountError(amount, "too large")
            if abs(scaled / MINOR_UNITS_PER_UNIT - value) > PRECISION_TOLERANCE:
                raise PrecisionExceededError(amount)

        return cls(int(scaled), currency)

    @classmethod
    def from_minor_units(cls, minor_units: int, currency: str = DEFAULT_CURRENCY) -> "Money":
        money = cls(minor_units, currency)
        if abs(money.minor_units) > MAX_MINOR_UNITS:
            raise InvalidAmountError(minor_units, "too large")
        return money

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(0, currency)

    def plus(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.minor_units + other.minor_units, self.currency)

    def minus(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.minor_units - other.minor_units, self.currency)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.minor_units) / MINOR_UNITS_PER_UNIT).quantize(CENT)

    def equals(self, other: "Money") -> bool:
        return self == other

    def _assert_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)


@dataclass(frozen=True)
class Account:
    id: str
    direction: Direction
    name: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        direction: Direction,
        name: str | None = None,
        account_id: str | None = None,
    ) -> "Account":
        return cls(id=account_id or new_id(), direction=direction, name=name)


@dataclass(frozen=True)
class AccountWithBalance:
    account: Account
    balance: Money


@dataclass(frozen=True)
class Entry:
    id: str
    account_id: str
    direction: Direction
    amount: Money

    def __post_init__(self) -> None:
        if self.amount.minor_units < 0:
            raise InvalidAmountError(self.amount.to_decimal(), "entry amount cannot be negative")

    @classmethod
    def create(
        cls,
        account_id: str,
        direction: Direction,
        amount: Money,
        entry_id: str | None = None,
    ) -> "Entry":
        return cls(id=entry_id or new_id(), account_id=account_id, direction=direction, amount=amount)


@dataclass(frozen=True)
class Transaction:
    """A balanced set of entries.

    Construction validates the double-entry invariant, so any instance that
    exists is balanced. Entries are frozen into a tuple.
    """

    id: str
    name: str | None
    entries: tuple[Entry, ...]
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        entries = tuple(self.entries)
        object.__setattr__(self, "entries", entries)

        if not entries:
            raise EmptyTransactionError()

        currency = entries[0].amount.currency
        for entry in entries[1:]:
            if entry.amount.currency != currency:
                raise CurrencyMismatchError(currency, entry.amount.currency)

        # Debits count positive, credits negative; the choice of side is arbitrary.
        signed_sum = sum(
            entry.amount.minor_units if entry.direction is Direction.DEBIT else -entry.amount.minor_units
            for entry in entries
        )
        if signed_sum != 0:
            raise UnbalancedTransactionError(signed_sum)

    @classmethod
    def create(
        cls,
        entries: Iterable[Entry],
        name: str | None = None,
        transaction_id: str | None = None,
    ) -> "Transaction":
        return cls(id=transaction_id or new_id(), name=name, entries=tuple(entries))

    @property
    def currency(self) -> str:
        return self.entries[0].amount.currency


@dataclass
class IdempotencyRecord:
    key: str
    status: IdempotencyStatus
    transaction_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is IdempotencyStatus.COMPLETED
