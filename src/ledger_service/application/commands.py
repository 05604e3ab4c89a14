from dataclasses import dataclass, field
from decimal import Decimal

from ledger_service.domain.models import Account, Direction, Entry, Money, Transaction


@dataclass
class CreateAccountCommand:
    direction: Direction
    id: str | None = None
    name: str | None = None

    def to_domain(self) -> Account:
        return Account.create(direction=self.direction, name=self.name, account_id=self.id)


@dataclass
class EntryCommand:
    account_id: str
    direction: Direction
    amount: Decimal
    id: str | None = None


@dataclass
class CreateTransactionCommand:
    entries: list[EntryCommand] = field(default_factory=list)
    id: str | None = None
    name: str | None = None

    def to_domain(self, currency: str = "USD") -> Transaction:
        """Build the domain transaction; Money and Transaction enforce their invariants here."""
        return Transaction.create(
            entries=[
                Entry.create(
                    account_id=entry.account_id,
                    direction=entry.direction,
                    amount=Money.from_decimal(entry.amount, currency),
                    entry_id=entry.id,
                )
                for entry in self.entries
            ],
            name=self.name,
            transaction_id=self.id,
        )
