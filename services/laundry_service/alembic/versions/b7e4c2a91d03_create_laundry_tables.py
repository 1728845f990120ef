"""create_laundry_tables

Revision ID: b7e4c2a91d03
Revises:
Create Date: 2026-10-12 09:30:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "b7e4c2a91d03"
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    "order_source_enum": ("pos", "mobile", "app"),
    "order_status_enum": (
        "pending",
        "processing",
        "for_pick-up",
        "delivering",
        "completed",
        "cancelled",
    ),
    "basket_status_enum": ("processing", "completed"),
    "service_type_enum": ("wash", "dry", "spin", "iron", "fold"),
    "service_tier_enum": ("basic", "premium"),
    "unit_status_enum": ("pending", "in_progress", "completed", "skipped"),
    "staff_role_enum": ("admin", "cashier", "attendant", "rider"),
    "product_transaction_type_enum": (
        "order",
        "adjustment",
        "return",
        "restock",
        "damage",
    ),
    "order_event_type_enum": (
        "order_created",
        "order_approved",
        "service_started",
        "service_completed",
        "service_skipped",
        "handling_started",
        "handling_completed",
        "order_status_changed",
        "order_completed",
        "order_rejected",
        "order_cancelled",
    ),
    "outbox_status_enum": ("pending", "dispatched", "failed"),
    "notification_status_enum": ("sent", "failed", "no_device"),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created up front; service_type_enum is shared by two tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # --- People ---
    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("auth_id", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("email_address", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("loyalty_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("fcm_device_token", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("loyalty_points >= 0", name="ck_customer_loyalty_non_negative"),
    )
    op.create_index("ix_customers_auth_id", "customers", ["auth_id"], unique=True)
    op.create_index("ix_customers_phone_number", "customers", ["phone_number"])

    op.create_table(
        "staff",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("auth_id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email_address", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_staff_auth_id", "staff", ["auth_id"], unique=True)

    op.create_table(
        "staff_roles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "staff_id",
            sa.Uuid(),
            sa.ForeignKey("staff.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", _enum("staff_role_enum"), nullable=False),
        sa.UniqueConstraint("staff_id", "role", name="uq_staff_role"),
    )
    op.create_index("ix_staff_roles_staff_id", "staff_roles", ["staff_id"])

    # --- Catalog ---
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("item_name", sa.String(200), nullable=False),
        _money("unit_price"),
        _money("unit_cost", nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reorder_level", sa.Integer(), server_default="5", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
    )

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("service_type", _enum("service_type_enum"), nullable=False),
        sa.Column("tier", _enum("service_tier_enum"), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _money("base_price"),
        _money("rate_per_kg", nullable=True),
        sa.Column("base_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
    )

    # --- Orders ---
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("source", _enum("order_source_enum"), nullable=False),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("cashier_id", sa.Uuid(), sa.ForeignKey("staff.id"), nullable=True),
        sa.Column("status", _enum("order_status_enum"), nullable=False),
        _money("total_amount"),
        sa.Column("order_note", sa.Text(), nullable=True),
        sa.Column("breakdown", postgresql.JSONB(), nullable=False),
        sa.Column("handling", postgresql.JSONB(), nullable=False),
        sa.Column("cancellation", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
        _timestamp("approved_at", nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("cancelled_at", nullable=True),
        _timestamp("updated_at"),
    )
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_status_created", "orders", ["status", "created_at"])

    op.create_table(
        "order_baskets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "order_id",
            sa.Uuid(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("basket_number", sa.Integer(), nullable=False),
        sa.Column("weight_kg", sa.Numeric(8, 2), nullable=False),
        sa.Column("service_options", postgresql.JSONB(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _money("price"),
        sa.Column("status", _enum("basket_status_enum"), nullable=False),
        _timestamp("approved_at", nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        _timestamp("completed_at", nullable=True),
        sa.UniqueConstraint("order_id", "basket_number", name="uq_order_basket_number"),
    )
    op.create_index("ix_order_baskets_order_id", "order_baskets", ["order_id"])

    op.create_table(
        "basket_service_status",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "order_id",
            sa.Uuid(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "basket_id",
            sa.Uuid(),
            sa.ForeignKey("order_baskets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("basket_number", sa.Integer(), nullable=False),
        sa.Column("service_type", _enum("service_type_enum"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", _enum("unit_status_enum"), nullable=False),
        _timestamp("started_at", nullable=True),
        sa.Column("started_by", sa.Uuid(), nullable=True),
        _timestamp("completed_at", nullable=True),
        sa.Column("completed_by", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "order_id",
            "basket_number",
            "service_type",
            name="uq_basket_service_status",
        ),
    )
    op.create_index(
        "ix_basket_service_status_order_id", "basket_service_status", ["order_id"]
    )

    # --- Inventory ledger ---
    op.create_table(
        "product_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column(
            "order_id",
            sa.Uuid(),
            sa.ForeignKey("orders.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("staff_id", sa.Uuid(), nullable=True),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column(
            "transaction_type", _enum("product_transaction_type_enum"), nullable=False
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint("quantity_change <> 0", name="ck_product_txn_non_zero"),
        sa.CheckConstraint(
            "quantity_after >= 0", name="ck_product_txn_after_non_negative"
        ),
    )
    op.create_index(
        "ix_product_transactions_product_id", "product_transactions", ["product_id"]
    )
    op.create_index(
        "ix_product_transactions_order_id", "product_transactions", ["order_id"]
    )
    op.create_index(
        "ix_product_transactions_product_created",
        "product_transactions",
        ["product_id", "created_at"],
    )

    # --- Outbox and notifications ---
    op.create_table(
        "order_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "order_id",
            sa.Uuid(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", _enum("order_event_type_enum"), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column("status", _enum("outbox_status_enum"), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("dispatched_at", nullable=True),
    )
    op.create_index("ix_order_events_order_id", "order_events", ["order_id"])
    op.create_index(
        "ix_order_events_status_created", "order_events", ["status", "created_at"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "customer_id",
            sa.Uuid(),
            sa.ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("order_id", sa.Uuid(), nullable=True),
        sa.Column("basket_number", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column("status", _enum("notification_status_enum"), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_notifications_customer_id", "notifications", ["customer_id"])


def downgrade() -> None:
    for table in (
        "notifications",
        "order_events",
        "product_transactions",
        "basket_service_status",
        "order_baskets",
        "orders",
        "services",
        "products",
        "staff_roles",
        "staff",
        "customers",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
