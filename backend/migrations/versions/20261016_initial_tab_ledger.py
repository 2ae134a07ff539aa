"""Initial schema: catalog, clients, line items, transaction archive

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "catalog_items",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("sale_price_cents", sa.Integer(), nullable=False),
        sa.Column("purchase_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("category", sa.String(16), nullable=False, server_default="SOFT"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("sale_price_cents >= 0", name="ck_catalog_items_sale_price"),
        sa.CheckConstraint("purchase_cost_cents >= 0", name="ck_catalog_items_purchase_cost"),
        sa.PrimaryKeyConstraint("id"),
    )

    with op.batch_alter_table("catalog_items", schema=None) as batch_op:
        batch_op.create_index("ix_catalog_items_category_name", ["category", "name"], unique=False)

    op.create_table(
        "clients",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("display_name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    with op.batch_alter_table("clients", schema=None) as batch_op:
        batch_op.create_index("ix_clients_display_name", ["display_name"], unique=False)

    op.create_table(
        "line_items",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("client_id", sa.String(32), nullable=False),
        sa.Column("item_id", sa.String(32), nullable=True),
        sa.Column("item_name_snapshot", sa.String(128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("unit_sale_price_cents", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_line_items_quantity_positive"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("client_id", "item_id", "unit_sale_price_cents", name="uq_line_items_merge_key"),
    )

    with op.batch_alter_table("line_items", schema=None) as batch_op:
        batch_op.create_index("ix_line_items_client_id", ["client_id"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.String(32), nullable=False),
        sa.Column("client_name_snapshot", sa.String(128), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("total_sale_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint(
            "(kind = 'WRITE_OFF' AND payment_method = 'NONE') OR "
            "(kind = 'SALE' AND payment_method IN ('CASH', 'CARD'))",
            name="ck_transactions_kind_payment",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sequence", name="uq_transactions_sequence"),
    )

    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index("ix_transactions_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_transactions_client_id", ["client_id"], unique=False)

    op.create_table(
        "transaction_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.String(32), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_sale_price_cents", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_transaction_lines_quantity_positive"),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
    )

    with op.batch_alter_table("transaction_lines", schema=None) as batch_op:
        batch_op.create_index("ix_transaction_lines_transaction_id", ["transaction_id"], unique=False)


def downgrade():
    with op.batch_alter_table("transaction_lines", schema=None) as batch_op:
        batch_op.drop_index("ix_transaction_lines_transaction_id")
    op.drop_table("transaction_lines")

    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.drop_index("ix_transactions_client_id")
        batch_op.drop_index("ix_transactions_occurred_at")
    op.drop_table("transactions")

    with op.batch_alter_table("line_items", schema=None) as batch_op:
        batch_op.drop_index("ix_line_items_client_id")
    op.drop_table("line_items")

    with op.batch_alter_table("clients", schema=None) as batch_op:
        batch_op.drop_index("ix_clients_display_name")
    op.drop_table("clients")

    with op.batch_alter_table("catalog_items", schema=None) as batch_op:
        batch_op.drop_index("ix_catalog_items_category_name")
    op.drop_table("catalog_items")
