"""create ledger tables

Revision ID: b1c2d3e4f5a6
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "b1c2d3e4f5a6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    "currency": ("USD", "UZS"),
    "paymentmethod": ("cash", "bank", "card", "debt", "mixed"),
    "paymentstatus": ("paid", "unpaid", "partial"),
    "clienttype": ("individual", "legal"),
    "transactiontype": (
        "client_payment", "debt_obligation", "supplier_payment",
        "client_return", "client_refund", "expense",
    ),
    "referencekind": ("order", "client", "none"),
}


def _enum(name: str):
    # Types are created once up front; columns only reference them
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("type", _enum("clienttype"), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("inn", sa.String(20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_debt", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("total_purchases", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_clients_name", "clients", ["name"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("report_no", sa.Integer(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("client_id", sa.String(40), sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("seller_name", sa.String(255), nullable=True),
        sa.Column("subtotal_amount", sa.Numeric(15, 2)),
        sa.Column("vat_amount", sa.Numeric(15, 2)),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(15, 2), nullable=True),
        sa.Column("total_amount_uzs", sa.Numeric(20, 2)),
        sa.Column("payment_method", _enum("paymentmethod"), nullable=False),
        sa.Column("payment_status", _enum("paymentstatus"), nullable=False),
        sa.Column("payment_currency", _enum("currency"), nullable=True),
        sa.Column("amount_paid", sa.Numeric(15, 2)),
        sa.Column("amount_paid_usd", sa.Numeric(15, 2), nullable=True),
        sa.Column("payment_due_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_orders_date", "orders", ["date"])
    op.create_index("ix_orders_client_id", "orders", ["client_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(40), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.String(40), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("dimensions", sa.String(100), nullable=True),
        sa.Column("unit", sa.String(10), nullable=True),
        sa.Column("quantity", sa.Numeric(15, 3), nullable=False),
        sa.Column("price_at_sale", sa.Numeric(15, 2), nullable=False),
        sa.Column("cost_at_sale", sa.Numeric(15, 2), nullable=False),
        sa.Column("total", sa.Numeric(15, 2), nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("type", _enum("transactiontype"), nullable=False),
        sa.Column("amount", sa.Numeric(20, 2), nullable=False),
        sa.Column("currency", _enum("currency"), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(15, 2), nullable=True),
        sa.Column("method", _enum("paymentmethod"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("related_kind", _enum("referencekind"), nullable=False, server_default="none"),
        sa.Column("related_id", sa.String(40), nullable=True),
        sa.Column("mentioned_order_id", sa.String(40), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index("ix_transactions_type", "transactions", ["type"])
    op.create_index("ix_transactions_related_id", "transactions", ["related_id"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("amount", sa.Numeric(20, 2), nullable=False),
        sa.Column("currency", _enum("currency"), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(15, 2), nullable=True),
        sa.Column("payment_method", _enum("paymentmethod"), nullable=False),
        sa.Column("employee_id", sa.String(40), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_expenses_date", "expenses", ["date"])


def downgrade() -> None:
    op.drop_table("expenses")
    op.drop_table("transactions")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("clients")

    bind = op.get_bind()
    for name in ENUMS:
        sa.Enum(name=name).drop(bind, checkfirst=True)
