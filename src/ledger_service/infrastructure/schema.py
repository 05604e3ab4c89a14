"""Relational schema of the ledger.

Three tables: ``accounts``, ``transactions`` and ``entries``. Entries point at
both parents with ``ON DELETE RESTRICT`` foreign keys, and triggers reject any
direct ``DELETE`` on accounts or transactions, so the database refuses to lose
ledger history even when the application layer is bypassed.
"""

from sqlalchemy import (
    DDL,
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    event,
    func,
)


IMMUTABLE_LEDGER_MESSAGE = "The ledger is immutable."

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", Text, nullable=True),
    Column("direction", String(6), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("direction IN ('debit', 'credit')", name="ck_accounts_direction"),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("ix_transactions_created_at", "created_at"),
)

entries = Table(
    "entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entry_id", String(36), nullable=False, unique=True),
    Column(
        "transaction_id",
        String(36),
        ForeignKey("transactions.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "account_id",
        String(36),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("direction", String(6), nullable=False),
    Column("amount_minor_units", BigInteger, nullable=False),
    Column("currency", String(3), nullable=False, server_default="USD"),
    CheckConstraint("direction IN ('debit', 'credit')", name="ck_entries_direction"),
    CheckConstraint("amount_minor_units >= 0", name="ck_entries_amount_non_negative"),
    Index("ix_entries_account_id", "account_id"),
    Index("ix_entries_transaction_id", "transaction_id"),
    Index("ix_entries_account_direction", "account_id", "direction"),
)


SQLITE_IMMUTABILITY_DDL = [
    DDL(
        "CREATE TRIGGER IF NOT EXISTS prevent_account_deletion "
        "BEFORE DELETE ON accounts "
        f"BEGIN SELECT RAISE(ABORT, 'Accounts cannot be deleted. {IMMUTABLE_LEDGER_MESSAGE}'); END"
    ),
    DDL(
        "CREATE TRIGGER IF NOT EXISTS prevent_transaction_deletion "
        "BEFORE DELETE ON transactions "
        f"BEGIN SELECT RAISE(ABORT, 'Transactions cannot be deleted. {IMMUTABLE_LEDGER_MESSAGE}'); END"
    ),
]

POSTGRESQL_IMMUTABILITY_DDL = [
    DDL(
        "CREATE OR REPLACE FUNCTION reject_ledger_deletion() RETURNS trigger AS $$ "
        "BEGIN "
        "RAISE EXCEPTION USING "
        f"MESSAGE = initcap(TG_TABLE_NAME) || ' cannot be deleted. {IMMUTABLE_LEDGER_MESSAGE}', "
        "ERRCODE = 'restrict_violation'; "
        "END; "
        "$$ LANGUAGE plpgsql"
    ),
    DDL(
        "CREATE OR REPLACE TRIGGER prevent_account_deletion "
        "BEFORE DELETE ON accounts "
        "FOR EACH ROW EXECUTE FUNCTION reject_ledger_deletion()"
    ),
    DDL(
        "CREATE OR REPLACE TRIGGER prevent_account_truncation "
        "BEFORE TRUNCATE ON accounts "
        "FOR EACH STATEMENT EXECUTE FUNCTION reject_ledger_deletion()"
    ),
    DDL(
        "CREATE OR REPLACE TRIGGER prevent_transaction_deletion "
        "BEFORE DELETE ON transactions "
        "FOR EACH ROW EXECUTE FUNCTION reject_ledger_deletion()"
    ),
    DDL(
        "CREATE OR REPLACE TRIGGER prevent_transaction_truncation "
        "BEFORE TRUNCATE ON transactions "
        "FOR EACH STATEMENT EXECUTE FUNCTION reject_ledger_deletion()"
    ),
]

for _ddl in SQLITE_IMMUTABILITY_DDL:
    event.listen(metadata, "after_create", _ddl.execute_if(dialect="sqlite"))

for _ddl in POSTGRESQL_IMMUTABILITY_DDL:
    event.listen(metadata, "after_create", _ddl.execute_if(dialect="postgresql"))
