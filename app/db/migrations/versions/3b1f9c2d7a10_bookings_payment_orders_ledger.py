"""bookings, payment orders, payment ledger, audit logs

Revision ID: 3b1f9c2d7a10
Revises:
Create Date: 2026-10-12 10:14:03.518220

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b1f9c2d7a10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # 1️⃣ Bookings (quote snapshot is immutable after insert)
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("bike_id", sa.String(64), nullable=False),
        sa.Column("pickup_ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("drop_ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_tier", sa.String(5), nullable=False),
        sa.Column("pickup_type", sa.String(8), nullable=False),
        sa.Column("pickup_location_id", sa.Integer(), nullable=True),
        sa.Column("delivery_address", sa.String(500), nullable=True),
        sa.Column("base_amount", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("status", sa.String(15), nullable=False, server_default="PENDING_PAYMENT"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_bike_id", "bookings", ["bike_id"])

    # 2️⃣ Payment orders
    op.create_table(
        "payment_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("gateway_order_ref", sa.String(64), nullable=False),
        sa.Column("receipt", sa.String(64), nullable=False),
        sa.Column("status", sa.String(8), nullable=False, server_default="opened"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payment_orders_id", "payment_orders", ["id"])
    op.create_index("ix_payment_orders_booking_id", "payment_orders", ["booking_id"])
    op.create_index("ix_payment_orders_gateway_order_ref", "payment_orders", ["gateway_order_ref"], unique=True)
    op.create_index(
        "uq_payment_orders_one_open",
        "payment_orders",
        ["booking_id"],
        unique=True,
        sqlite_where=sa.text("status = 'opened'"),
        postgresql_where=sa.text("status = 'opened'"),
    )

    # 3️⃣ Payment ledger (append-only)
    op.create_table(
        "payment_ledger",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("payment_order_id", sa.Integer(), sa.ForeignKey("payment_orders.id"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("payment_mode", sa.String(32), nullable=False, server_default="RAZORPAY"),
        sa.Column("gateway_payment_ref", sa.String(64), nullable=True),
        sa.Column("status", sa.String(7), nullable=False),
        sa.Column("error_code", sa.String(64), nullable=True),
        sa.Column("error_description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payment_ledger_id", "payment_ledger", ["id"])
    op.create_index("ix_payment_ledger_payment_order_id", "payment_ledger", ["payment_order_id"])
    op.create_index("ix_payment_ledger_booking_id", "payment_ledger", ["booking_id"])
    op.create_index("ix_payment_ledger_gateway_payment_ref", "payment_ledger", ["gateway_payment_ref"])
    op.create_index(
        "uq_payment_ledger_one_success",
        "payment_ledger",
        ["booking_id"],
        unique=True,
        sqlite_where=sa.text("status = 'SUCCESS'"),
        postgresql_where=sa.text("status = 'SUCCESS'"),
    )

    # 4️⃣ Audit logs
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("action", sa.String(80), nullable=False),
        sa.Column("entity_type", sa.String(40), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("payment_ledger")
    op.drop_table("payment_orders")
    op.drop_table("bookings")
