"""Unit tests for boundary request and response schemas."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ledger_service.api.schemas import (
    AccountResponse,
    ErrorResponse,
    TransactionResponse,
    parse_create_account,
    parse_create_transaction,
)
from ledger_service.domain.exceptions import UnbalancedTransactionError, ValidationError
from ledger_service.domain.models import AccountWithBalance, Direction, Money, Transaction
from tests.conftest import CASH_ACCOUNT_ID, REVENUE_ACCOUNT_ID, create_entry


class TestParseCreateAccount:
    """Tests for parse_create_account."""

    def test_minimal_payload(self) -> None:
        """Only the direction is required."""
        request = parse_create_account({"direction": "debit"})
        command = request.to_command()

        assert command.direction is Direction.DEBIT
        assert command.id is None
        assert command.name is None

    def test_full_payload(self) -> None:
        """Id and name are carried into the command."""
        command = parse_create_account(
            {"id": CASH_ACCOUNT_ID, "name": "Cash", "direction": "credit"}
        ).to_command()

        assert command.id == CASH_ACCOUNT_ID
        assert command.name == "Cash"
        assert command.direction is Direction.CREDIT

    def test_invalid_direction(self) -> None:
        """Unknown directions are reported with their path."""
        with pytest.raises(ValidationError) as exc_info:
            parse_create_account({"direction": "sideways"})

        assert [detail["path"] for detail in exc_info.value.details] == ["direction"]

    def test_id_must_be_uuid(self) -> None:
        """Ids must be UUIDs."""
        with pytest.raises(ValidationError) as exc_info:
            parse_create_account({"id": "not-a-uuid", "direction": "debit"})

        assert exc_info.value.details[0]["path"] == "id"


class TestParseCreateTransaction:
    """Tests for parse_create_transaction."""

    @pytest.fixture
    def payload(self) -> dict:
        return {
            "name": "Cash sale",
            "entries": [
                {"direction": "debit", "account_id": CASH_ACCOUNT_ID, "amount": 100},
                {"direction": "credit", "account_id": REVENUE_ACCOUNT_ID, "amount": "100.00"},
            ],
        }

    def test_valid_payload(self, payload: dict) -> None:
        """A valid payload becomes a command with Decimal amounts."""
        command = parse_create_transaction(payload).to_command()

        assert command.name == "Cash sale"
        assert [entry.amount for entry in command.entries] == [Decimal("100"), Decimal("100.00")]
        assert command.entries[0].account_id == CASH_ACCOUNT_ID

    def test_entries_required(self) -> None:
        """An empty entry list fails validation."""
        with pytest.raises(ValidationError) as exc_info:
            parse_create_transaction({"entries": []})

        assert exc_info.value.details[0]["path"] == "entries"

    def test_amount_must_be_positive(self, payload: dict) -> None:
        """Zero and negative amounts are rejected at the boundary."""
        payload["entries"][1]["amount"] = 0

        with pytest.raises(ValidationError) as exc_info:
            parse_create_transaction(payload)

        assert exc_info.value.details[0]["path"] == "entries.1.amount"

    def test_account_id_must_be_uuid(self, payload: dict) -> None:
        """Entry account ids must be UUIDs."""
        payload["entries"][0]["account_id"] = "cash"

        with pytest.raises(ValidationError) as exc_info:
            parse_create_transaction(payload)

        assert exc_info.value.details[0]["path"] == "entries.0.account_id"


class TestResponses:
    """Tests for response rendering."""

    def test_account_response(self, cash_account) -> None:
        """Balances render as numbers."""
        response = AccountResponse.from_domain(
            AccountWithBalance(account=cash_account, balance=Money.from_minor_units(10050))
        )

        body = response.model_dump(mode="json")

        assert body == {
            "id": cash_account.id,
            "name": "Cash",
            "direction": "debit",
            "balance": 100.5,
        }

    def test_transaction_response(self) -> None:
        """Entries render with their account and amount."""
        transaction = Transaction(
            id="tx-1",
            name=None,
            entries=(
                create_entry(CASH_ACCOUNT_ID, Direction.DEBIT, 2500),
                create_entry(REVENUE_ACCOUNT_ID, Direction.CREDIT, 2500),
            ),
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        )

        body = TransactionResponse.from_domain(transaction).model_dump(mode="json")

        assert body["id"] == "tx-1"
        assert body["name"] is None
        assert [entry["amount"] for entry in body["entries"]] == [25.0, 25.0]
        assert body["entries"][1]["direction"] == "credit"

    def test_error_response_from_domain_error(self) -> None:
        """Domain errors expose their code and message."""
        response = ErrorResponse.from_exception(UnbalancedTransactionError(5))

        assert response.status == "error"
        assert response.type == "UNBALANCED_TRANSACTION"
        assert response.details is None

    def test_error_response_includes_validation_details(self) -> None:
        """Validation details are carried through."""
        error = ValidationError("Validation failed", details=[{"path": "entries", "message": "too short"}])

        response = ErrorResponse.from_exception(error)

        assert response.details is not None
        assert response.details[0].path == "entries"

    def test_internal_error_is_opaque(self) -> None:
        """Unexpected failures reveal nothing."""
        response = ErrorResponse.internal()

        assert response.message == "Internal server error"
        assert response.details is None
