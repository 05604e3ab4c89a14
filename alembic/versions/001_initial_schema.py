"""Initial schema: accounts, transactions, entries, immutability triggers

Revision ID: 001
Revises:
Create Date: 2024-01-01

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("direction", sa.String(6), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("direction IN ('debit', 'credit')", name="ck_accounts_direction"),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])

    op.create_table(
        "entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("entry_id", sa.String(36), nullable=False, unique=True),
        sa.Column(
            "transaction_id",
            sa.String(36),
            sa.ForeignKey("transactions.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "account_id",
            sa.String(36),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("direction", sa.String(6), nullable=False),
        sa.Column("amount_minor_units", sa.BigInteger, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.CheckConstraint("direction IN ('debit', 'credit')", name="ck_entries_direction"),
        sa.CheckConstraint("amount_minor_units >= 0", name="ck_entries_amount_non_negative"),
    )
    op.create_index("ix_entries_account_id", "entries", ["account_id"])
    op.create_index("ix_entries_transaction_id", "entries", ["transaction_id"])
    op.create_index("ix_entries_account_direction", "entries", ["account_id", "direction"])

    op.execute(
        """
        CREATE OR REPLACE FUNCTION reject_ledger_deletion() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION USING
                MESSAGE = initcap(TG_TABLE_NAME) || ' cannot be deleted. The ledger is immutable.',
                ERRCODE = 'restrict_violation';
        END;
        $$ LANGUAGE plpgsql
        """
    )
    for table, singular in (("accounts", "account"), ("transactions", "transaction")):
        op.execute(
            f"CREATE TRIGGER prevent_{singular}_deletion BEFORE DELETE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION reject_ledger_deletion()"
        )
        op.execute(
            f"CREATE TRIGGER prevent_{singular}_truncation BEFORE TRUNCATE ON {table} "
            "FOR EACH STATEMENT EXECUTE FUNCTION reject_ledger_deletion()"
        )


def downgrade() -> None:
    for table, singular in (("transactions", "transaction"), ("accounts", "account")):
        op.execute(f"DROP TRIGGER IF EXISTS prevent_{singular}_truncation ON {table}")
        op.execute(f"DROP TRIGGER IF EXISTS prevent_{singular}_deletion ON {table}")
    op.execute("DROP FUNCTION IF EXISTS reject_ledger_deletion()")

    op.drop_table("entries")
    op.drop_table("transactions")
    op.drop_table("accounts")
