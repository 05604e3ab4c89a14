from collections.abc import Iterable

from ledger_service.domain.models import DEFAULT_CURRENCY, Account, Entry, Money


class BalanceCalculator:
    """Derives an account balance from its entry history.

    An entry posted in the account's own direction increases the balance, an
    entry in the opposite direction decreases it. Nothing is cached: the
    balance is recomputed from the entries on every call.
    """

    def __init__(self, currency: str = DEFAULT_CURRENCY) -> None:
        self._currency = currency

    def calculate(self, account: Account, entries: Iterable[Entry]) -> Money:
        balance = Money.zero(self._currency)
        for entry in entries:
            if entry.account_id != account.id:
                continue
            if entry.direction is account.direction:
                balance = balance.plus(entry.amount)
            else:
                balance = balance.minus(entry.amount)
        return balance
