"""Idempotency keys for transaction creation requests.

Two requests that describe the same movements get the same key, whatever ids
the client attached to them. The canonical encoding is line based, in this
fixed order::

    name=<text>
    entries=<count>
    entry=<account_id text>|<direction>|<amount>   (once per entry, in request order)

``<text>`` is ``~`` for a missing value, otherwise ``<length>:<value>``, so no
field content can imitate a separator. ``<amount>`` is the normalized decimal
string (``100``, ``100.0`` and ``100.00`` encode the same). The client
transaction id and entry ids are excluded. The key is the SHA-256 hex digest
of the UTF-8 encoding.
"""

import hashlib
from decimal import Decimal, InvalidOperation

from ledger_service.application.commands import CreateTransactionCommand


def _encode_text(value: str | None) -> str:
    if value is None:
        return "~"
    return f"{len(value)}:{value}"


def _encode_amount(amount: Decimal | int | float | str) -> str:
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return _encode_text(str(amount))
    if not value.is_finite():
        return _encode_text(str(value))
    return format(value.normalize(), "f")


def canonical_encoding(command: CreateTransactionCommand) -> str:
    lines = [
        f"name={_encode_text(command.name)}",
        f"entries={len(command.entries)}",
    ]
    lines.extend(
        f"entry={_encode_text(entry.account_id)}|{entry.direction.value}|{_encode_amount(entry.amount)}"
        for entry in command.entries
    )
    return "\n".join(lines)


def idempotency_key(command: CreateTransactionCommand) -> str:
    return hashlib.sha256(canonical_encoding(command).encode("utf-8")).hexdigest()
