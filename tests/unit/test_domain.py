"""Unit tests for domain models and exceptions."""

from decimal import Decimal

import pytest

from ledger_service.domain.exceptions import (
    AccountNotFoundError,
    CurrencyMismatchError,
    DomainError,
    DuplicateTransactionError,
    EmptyTransactionError,
    ErrorCode,
    ImmutableLedgerViolationError,
    InvalidAmountError,
    NotFoundError,
    PrecisionExceededError,
    TransactionNotFoundError,
    UnbalancedTransactionError,
    UnknownAccountError,
    ValidationError,
)
from ledger_service.domain.models import (
    Account,
    Direction,
    Entry,
    IdempotencyRecord,
    IdempotencyStatus,
    Money,
    Transaction,
)
from tests.conftest import create_entry


class TestMoney:
    """Tests for Money value object."""

    def test_from_decimal_converts_to_minor_units(self) -> None:
        """Major-unit amounts are held as integer cents."""
        money = Money.from_decimal(Decimal("10.50"))
        assert money.minor_units == 1050
        assert money.currency == "USD"

    @pytest.mark.parametrize("amount", [Decimal("100"), 100, "100.00", 100.0])
    def test_from_decimal_accepts_numeric_types(self, amount: Decimal | int | str | float) -> None:
        """Decimal, int, str and float inputs are all accepted."""
        assert Money.from_decimal(amount).minor_units == 10000

    def test_float_sum_is_exact(self) -> None:
        """0.1 + 0.2 equals 0.3 once converted to minor units."""
        total = Money.from_decimal(0.1).plus(Money.from_decimal(0.2))
        assert total == Money.from_decimal("0.3")
        assert total.minor_units == 30

    def test_three_fractional_digits_rejected(self) -> None:
        """An amount finer than one cent is rejected."""
        with pytest.raises(PrecisionExceededError, match="at most 2 decimal places"):
            Money.from_decimal(Decimal("1.005"))

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_rejected(self, amount: str) -> None:
        """NaN and infinities are not amounts."""
        with pytest.raises(InvalidAmountError, match="not finite"):
            Money.from_decimal(amount)

    def test_largest_storable_amount_accepted(self) -> None:
        """The top of the signed 64-bit minor-unit range still converts."""
        assert Money.from_decimal("92233720368547758.07").minor_units == 2**63 - 1

    @pytest.mark.parametrize(
        "amount",
        ["92233720368547758.08", "99999999999999999999.99", "1234567890123456789012345678.91", "1E+400"],
    )
    def test_oversized_amount_rejected(self, amount: str) -> None:
        """Amounts past the minor-unit range are invalid, not imprecise."""
        with pytest.raises(InvalidAmountError, match="too large"):
            Money.from_decimal(amount)

    def test_long_input_with_trailing_zeros_accepted(self) -> None:
        """Inputs longer than the default decimal context convert exactly."""
        money = Money.from_decimal("12345678901234567.890000000000000000000000000")
        assert money.minor_units == 1234567890123456789

    def test_from_minor_units_range_checked(self) -> None:
        """Minor units must fit the storage column."""
        with pytest.raises(InvalidAmountError, match="too large"):
            Money.from_minor_units(2**63)

    def test_unparseable_string_rejected(self) -> None:
        """Garbage input is rejected as not a number."""
        with pytest.raises(InvalidAmountError, match="not a number"):
            Money.from_decimal("ten dollars")

    def test_bool_rejected(self) -> None:
        """Booleans are not amounts even though they are ints."""
        with pytest.raises(InvalidAmountError):
            Money.from_decimal(True)

    def test_from_minor_units_requires_integer(self) -> None:
        """Minor units must be an integer."""
        with pytest.raises(InvalidAmountError, match="must be an integer"):
            Money.from_minor_units(10.5)  # type: ignore[arg-type]

    def test_currency_must_be_three_letters(self) -> None:
        """Money requires ISO 4217 currency code (3 characters)."""
        with pytest.raises(ValidationError, match="ISO 4217"):
            Money(100, "US")

    def test_plus_and_minus(self) -> None:
        """Arithmetic is exact integer arithmetic on minor units."""
        a = Money.from_minor_units(1050)
        b = Money.from_minor_units(25)
        assert a.plus(b).minor_units == 1075
        assert a.minus(b).minor_units == 1025
        assert b.minus(a).minor_units == -1025

    def test_cross_currency_arithmetic_fails(self) -> None:
        """Adding different currencies raises CurrencyMismatchError."""
        with pytest.raises(CurrencyMismatchError) as exc_info:
            Money(100, "USD").plus(Money(100, "EUR"))
        assert exc_info.value.expected == "USD"
        assert exc_info.value.actual == "EUR"

    def test_to_decimal_has_two_fraction_digits(self) -> None:
        """to_decimal always renders cents."""
        assert str(Money.from_minor_units(1000).to_decimal()) == "10.00"
        assert str(Money.from_minor_units(-5).to_decimal()) == "-0.05"

    def test_equality_compares_currency_and_units(self) -> None:
        """Equal values in the same currency are equal."""
        assert Money(100, "USD").equals(Money(100, "USD"))
        assert Money(100, "USD") != Money(100, "EUR")
        assert Money(100, "USD") != Money(101, "USD")

    def test_money_is_immutable(self) -> None:
        """Money cannot be mutated after construction."""
        money = Money.zero()
        with pytest.raises(AttributeError):
            money.minor_units = 5  # type: ignore[misc]


class TestEntry:
    """Tests for Entry."""

    def test_negative_amount_rejected(self) -> None:
        """Entries never carry negative amounts."""
        with pytest.raises(InvalidAmountError, match="cannot be negative"):
            Entry.create("acc", Direction.DEBIT, Money.from_minor_units(-1))

    def test_generates_id_when_missing(self) -> None:
        """A UUID is generated when no id is given."""
        entry = Entry.create("acc", Direction.DEBIT, Money.zero())
        assert len(entry.id) == 36


class TestTransaction:
    """Tests for the balance invariant."""

    def test_balanced_transaction_is_created(self) -> None:
        """Debits equal to credits produce a transaction."""
        transaction = Transaction.create(
            [
                create_entry("cash", Direction.DEBIT, 10000),
                create_entry("revenue", Direction.CREDIT, 10000),
            ],
            name="Sale",
        )
        assert transaction.name == "Sale"
        assert isinstance(transaction.entries, tuple)
        assert len(transaction.entries) == 2
        assert transaction.currency == "USD"

    def test_empty_transaction_rejected(self) -> None:
        """A transaction needs at least one entry."""
        with pytest.raises(EmptyTransactionError):
            Transaction.create([])

    def test_unbalanced_transaction_rejected(self) -> None:
        """Debits and credits must cancel out."""
        with pytest.raises(UnbalancedTransactionError) as exc_info:
            Transaction.create(
                [
                    create_entry("cash", Direction.DEBIT, 10000),
                    create_entry("revenue", Direction.CREDIT, 9999),
                ]
            )
        assert exc_info.value.difference_minor_units == 1

    def test_invariant_is_direction_symmetric(self) -> None:
        """Swapping every direction keeps a balanced transaction balanced."""
        Transaction.create(
            [
                create_entry("cash", Direction.CREDIT, 500),
                create_entry("revenue", Direction.DEBIT, 200),
                create_entry("fees", Direction.DEBIT, 300),
            ]
        )

    def test_single_zero_entry_is_balanced(self) -> None:
        """A lone zero-amount entry sums to zero."""
        transaction = Transaction.create([create_entry("cash", Direction.DEBIT, 0)])
        assert len(transaction.entries) == 1

    def test_mixed_currencies_rejected(self) -> None:
        """All entries share one currency."""
        with pytest.raises(CurrencyMismatchError):
            Transaction.create(
                [
                    create_entry("cash", Direction.DEBIT, 100, "USD"),
                    create_entry("revenue", Direction.CREDIT, 100, "EUR"),
                ]
            )

    def test_entries_cannot_be_replaced(self) -> None:
        """Transactions are frozen."""
        transaction = Transaction.create([create_entry("cash", Direction.DEBIT, 0)])
        with pytest.raises(AttributeError):
            transaction.entries = ()  # type: ignore[misc]


class TestAccount:
    """Tests for Account."""

    def test_create_generates_id(self) -> None:
        """Accounts get a UUID when none is supplied."""
        account = Account.create(Direction.CREDIT, name="Revenue")
        assert len(account.id) == 36
        assert account.created_at.tzinfo is not None

    def test_create_keeps_supplied_id(self) -> None:
        """A client supplied id is kept."""
        account = Account.create(Direction.DEBIT, account_id="acc-1")
        assert account.id == "acc-1"
        assert account.name is None


class TestIdempotencyRecord:
    """Tests for IdempotencyRecord."""

    def test_is_completed(self) -> None:
        """Only COMPLETED records carry a usable result."""
        assert IdempotencyRecord("k", IdempotencyStatus.COMPLETED, "tx").is_completed
        assert not IdempotencyRecord("k", IdempotencyStatus.PENDING).is_completed


class TestDomainExceptions:
    """Tests for domain exceptions."""

    def test_every_error_is_a_domain_error(self) -> None:
        """All ledger errors share the DomainError base."""
        assert issubclass(AccountNotFoundError, NotFoundError)
        assert issubclass(TransactionNotFoundError, NotFoundError)
        assert issubclass(UnknownAccountError, NotFoundError)
        assert issubclass(NotFoundError, DomainError)

    def test_error_codes(self) -> None:
        """Each exception carries its fixed code."""
        assert AccountNotFoundError("a").code is ErrorCode.ACCOUNT_NOT_FOUND
        assert UnbalancedTransactionError(1).code is ErrorCode.UNBALANCED_TRANSACTION
        assert DuplicateTransactionError("tx").code is ErrorCode.DUPLICATE_TRANSACTION
        assert ValidationError("bad").code is ErrorCode.VALIDATION_FAILED

    def test_duplicate_error_carries_original_id(self) -> None:
        """The original transaction id is exposed and in the message."""
        error = DuplicateTransactionError("tx-123")
        assert error.original_transaction_id == "tx-123"
        assert "tx-123" in str(error)

    def test_immutable_violation_message(self) -> None:
        """Delete attempts name the entity."""
        error = ImmutableLedgerViolationError("Account", "acc-1")
        assert str(error) == "Account acc-1 cannot be deleted. The ledger is immutable."

    def test_validation_error_details_default_to_empty(self) -> None:
        """Details are always a list."""
        assert ValidationError("bad").details == []
