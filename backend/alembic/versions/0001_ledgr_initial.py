"""Initial schema: invoices, templates, profiles, wallets and payment intents.

Revision ID: 0001_ledgr_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_ledgr_initial"
down_revision = None
branch_labels = None
depends_on = None


INVOICE_STATUS = ("pending", "paid", "void")
TEMPLATE_KIND = ("simple", "detailed", "proforma")
TRANSACTION_TYPE = ("credit", "debit")
INTENT_STATUS = ("pending", "confirmed", "failed")


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _owned_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_user_id", table, ["user_id"], unique=False)
    op.create_index(f"ix_{table}_created_at", table, ["created_at"], unique=False)


def upgrade() -> None:
    op.create_table(
        "invoices",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("customer", sa.String(length=120), nullable=False),
        sa.Column("status", sa.Enum(*INVOICE_STATUS, name="invoice_status"), nullable=False),
        sa.Column("items", sa.JSON(), nullable=True),
        sa.Column("tax_rate", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("company_address", sa.Text(), nullable=True),
        sa.Column("client_email", sa.String(length=255), nullable=True),
        sa.Column("client_address", sa.Text(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("template_kind", sa.Enum(*TEMPLATE_KIND, name="invoice_template_kind"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_invoices"),
    )
    _owned_indexes("invoices")
    op.create_index("ix_invoices_status", "invoices", ["status"], unique=False)

    op.create_table(
        "invoice_templates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("tax_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_invoice_templates"),
    )
    _owned_indexes("invoice_templates")

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("plan", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("avatar_id", sa.Integer(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
    )
    op.create_index("ix_profiles_created_at", "profiles", ["created_at"], unique=False)

    op.create_table(
        "wallets",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="USD"),
        sa.Column("balance_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_wallets"),
    )
    _owned_indexes("wallets")

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column("wallet_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.Enum(*TRANSACTION_TYPE, name="wallet_transaction_type"), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("reference", sa.String(length=255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(
            ["wallet_id"],
            ["wallets.id"],
            name="fk_wallet_transactions_wallet_id_wallets",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_wallet_transactions"),
    )
    _owned_indexes("wallet_transactions")
    op.create_index("ix_wallet_transactions_wallet_id", "wallet_transactions", ["wallet_id"], unique=False)

    op.create_table(
        "payment_intents",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column("invoice_id", sa.String(length=36), nullable=True),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="USD"),
        sa.Column("status", sa.Enum(*INTENT_STATUS, name="payment_intent_status"), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=False, server_default="mock"),
        sa.Column("provider_ref", sa.String(length=100), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["invoice_id"],
            ["invoices.id"],
            name="fk_payment_intents_invoice_id_invoices",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_payment_intents"),
    )
    _owned_indexes("payment_intents")
    op.create_index("ix_payment_intents_invoice_id", "payment_intents", ["invoice_id"], unique=False)
    op.create_index("ix_payment_intents_status", "payment_intents", ["status"], unique=False)


def downgrade() -> None:
    op.drop_table("payment_intents")
    op.drop_table("wallet_transactions")
    op.drop_table("wallets")
    op.drop_table("profiles")
    op.drop_table("invoice_templates")
    op.drop_table("invoices")

    if op.get_bind().dialect.name != "sqlite":
        for enum_name in (
            "payment_intent_status",
            "wallet_transaction_type",
            "invoice_template_kind",
            "invoice_status",
        ):
            sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
