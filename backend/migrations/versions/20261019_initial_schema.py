"""Initial coursepay schema: users, catalog, discounts, orders, withdrawals

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def _updated_at():
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def _catalog_table(name, *extra_columns):
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=True),
        *extra_columns,
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(f"ix_{name}_author_id", ["author_id"], unique=False)
        batch_op.create_index(f"ix_{name}_company_id", ["company_id"], unique=False)


def _discount_table(name):
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=True),
        sa.Column("course_id", sa.Integer(), nullable=True),
        sa.Column("event_id", sa.Integer(), nullable=True),
        sa.Column("discount_percent", sa.Integer(), nullable=False),
        sa.Column("expire_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_usage", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        _updated_at(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("discount_percent > 0 AND discount_percent <= 100", name=f"ck_{name}_discount_range"),
        sa.CheckConstraint("max_usage IS NULL OR used_count <= max_usage", name=f"ck_{name}_usage_ceiling"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"]),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"]),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(f"ix_{name}_code_active", ["code", "is_active"], unique=False)
        batch_op.create_index(f"ix_{name}_author_id", ["author_id"], unique=False)
        batch_op.create_index(f"ix_{name}_book_id", ["book_id"], unique=False)
        batch_op.create_index(f"ix_{name}_course_id", ["course_id"], unique=False)
        batch_op.create_index(f"ix_{name}_event_id", ["event_id"], unique=False)
        batch_op.create_index(f"ix_{name}_expire_at", ["expire_at"], unique=False)
        batch_op.create_index(f"ix_{name}_is_active", ["is_active"], unique=False)


def upgrade():
    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="STUDENT"),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("balance_cents >= 0", name="ck_users_balance_non_negative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_role", ["role"], unique=False)
        batch_op.create_index("ix_users_status", ["status"], unique=False)

    op.create_table(
        "bank_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("bank_name", sa.String(255), nullable=False),
        sa.Column("account_holder", sa.String(255), nullable=False),
        sa.Column("account_number", sa.String(64), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sqlite_autoincrement=True,
    )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    _catalog_table("books")
    _catalog_table("courses")
    _catalog_table("course_bundles")
    _catalog_table("events", sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True))

    op.create_table(
        "co_instructors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("co_instructor_id", sa.Integer(), nullable=False),
        sa.Column("invited_by_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"]),
        sa.ForeignKeyConstraint(["co_instructor_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["invited_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("course_id", "co_instructor_id", name="uq_co_instructors_course_user"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("co_instructors", schema=None) as batch_op:
        batch_op.create_index("ix_co_instructors_course_id", ["course_id"], unique=False)
        batch_op.create_index("ix_co_instructors_co_instructor_id", ["co_instructor_id"], unique=False)

    # ------------------------------------------------------------------
    # Discount instruments & affiliates
    # ------------------------------------------------------------------
    _discount_table("coupons")
    _discount_table("promo_codes")

    op.create_table(
        "affiliates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sqlite_autoincrement=True,
    )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("gross_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("final_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("instructor_share_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("platform_share_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("affiliate_share_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("co_instructors_share_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("co_instructor_ids", sa.JSON(), nullable=False),
        sa.Column("coupon_code", sa.String(64), nullable=True),
        sa.Column("promo_code", sa.String(64), nullable=True),
        sa.Column("affiliate_id", sa.Integer(), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("transaction_id", sa.String(128), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="UNPAID"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        _updated_at(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["affiliate_id"], ["affiliates.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_orders_company_id", ["company_id"], unique=False)
        batch_op.create_index("ix_orders_affiliate_id", ["affiliate_id"], unique=False)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_orders_user_created", ["user_id", "created_at"], unique=False)
        batch_op.create_index("ix_orders_author_created", ["author_id", "created_at"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=True),
        sa.Column("course_id", sa.Integer(), nullable=True),
        sa.Column("course_bundle_id", sa.Integer(), nullable=True),
        sa.Column("event_id", sa.Integer(), nullable=True),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("base_price_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("final_price_cents", sa.Integer(), nullable=False),
        sa.Column("co_instructors_share_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.CheckConstraint(
            "(CASE WHEN book_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN course_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN course_bundle_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN event_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_order_items_single_reference",
        ),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"]),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"]),
        sa.ForeignKeyConstraint(["course_bundle_id"], ["course_bundles.id"]),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index("ix_order_items_order_id", ["order_id"], unique=False)

    op.create_table(
        "co_instructor_earnings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("co_instructor_id", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["co_instructor_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "co_instructor_id", name="uq_co_instructor_earnings_order_user"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("co_instructor_earnings", schema=None) as batch_op:
        batch_op.create_index("ix_co_instructor_earnings_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_co_instructor_earnings_co_instructor_id", ["co_instructor_id"], unique=False)

    op.create_table(
        "affiliate_sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("affiliate_id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("commission_cents", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["affiliate_id"], ["affiliates.id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("affiliate_sales", schema=None) as batch_op:
        batch_op.create_index("ix_affiliate_sales_affiliate_id", ["affiliate_id"], unique=False)

    # ------------------------------------------------------------------
    # Withdrawals & notifications
    # ------------------------------------------------------------------
    op.create_table(
        "withdraw_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("payout_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("transfer_reference", sa.String(128), nullable=True),
        sa.Column("processed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("amount_cents > 0", name="ck_withdraw_requests_amount_positive"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["processed_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("withdraw_requests", schema=None) as batch_op:
        batch_op.create_index("ix_withdraw_requests_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_withdraw_requests_status_created", ["status", "created_at"], unique=False)

    # At most one PENDING request per user
    op.create_index(
        "uq_withdraw_requests_user_pending",
        "withdraw_requests",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("status = 'PENDING'"),
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("mode_type", sa.String(32), nullable=False),
        sa.Column("message", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("context_json", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.ForeignKeyConstraint(["receiver_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("notifications", schema=None) as batch_op:
        batch_op.create_index("ix_notifications_receiver_id", ["receiver_id"], unique=False)
        batch_op.create_index("ix_notifications_receiver_read", ["receiver_id", "is_read"], unique=False)


def downgrade():
    op.drop_table("notifications")
    op.drop_index("uq_withdraw_requests_user_pending", table_name="withdraw_requests")
    op.drop_table("withdraw_requests")
    op.drop_table("affiliate_sales")
    op.drop_table("co_instructor_earnings")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("affiliates")
    op.drop_table("promo_codes")
    op.drop_table("coupons")
    op.drop_table("co_instructors")
    op.drop_table("events")
    op.drop_table("course_bundles")
    op.drop_table("courses")
    op.drop_table("books")
    op.drop_table("companies")
    op.drop_table("bank_details")
    op.drop_table("users")
