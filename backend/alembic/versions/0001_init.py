"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    def existing_indexes(table: str) -> set[str]:
        if table not in existing_tables:
            return set()
        return {idx["name"] for idx in inspector.get_indexes(table)}

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("first_name", sa.String(), nullable=True),
            sa.Column("last_name", sa.String(), nullable=True),
            sa.Column("avatar", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("users")
    if "ix_users_id" not in idxs:
        op.create_index("ix_users_id", "users", ["id"])
    if "ix_users_email" not in idxs:
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if "extract_history" not in existing_tables:
        op.create_table(
            "extract_history",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("prompt", sa.Text(), nullable=True),
            sa.Column("extract_time", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("extract_history")
    if "ix_extract_history_id" not in idxs:
        op.create_index("ix_extract_history_id", "extract_history", ["id"])
    if "ix_extract_history_user_id_extract_time" not in idxs:
        op.create_index("ix_extract_history_user_id_extract_time", "extract_history", ["user_id", "extract_time"])

    if "user_subscriptions" not in existing_tables:
        op.create_table(
            "user_subscriptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("external_subscription_id", sa.String(), nullable=False),
            sa.Column("product_id", sa.String(), nullable=True),
            sa.Column("variant_id", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("quota", sa.Integer(), nullable=True),
            sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
            sa.Column("renews_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("type", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=True),
        )
    idxs = existing_indexes("user_subscriptions")
    if "ix_user_subscriptions_id" not in idxs:
        op.create_index("ix_user_subscriptions_id", "user_subscriptions", ["id"])
    if "ix_user_subscriptions_user_id" not in idxs:
        op.create_index("ix_user_subscriptions_user_id", "user_subscriptions", ["user_id"])
    if "ix_user_subscriptions_status" not in idxs:
        op.create_index("ix_user_subscriptions_status", "user_subscriptions", ["status"])
    if "ix_user_subscriptions_external_subscription_id" not in idxs:
        op.create_index(
            "ix_user_subscriptions_external_subscription_id",
            "user_subscriptions",
            ["external_subscription_id"],
            unique=True,
        )

    if "orders" not in existing_tables:
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("internal_order_id", sa.String(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.Integer(), nullable=True),
            sa.Column("external_order_id", sa.String(), nullable=True),
            sa.Column("external_subscription_id", sa.String(), nullable=True),
            sa.Column("redirect_url", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=True),
        )
    idxs = existing_indexes("orders")
    if "ix_orders_id" not in idxs:
        op.create_index("ix_orders_id", "orders", ["id"])
    if "ix_orders_internal_order_id" not in idxs:
        op.create_index("ix_orders_internal_order_id", "orders", ["internal_order_id"], unique=True)
    if "ix_orders_user_id" not in idxs:
        op.create_index("ix_orders_user_id", "orders", ["user_id"])
    if "ix_orders_external_order_id" not in idxs:
        op.create_index("ix_orders_external_order_id", "orders", ["external_order_id"])
    if "ix_orders_external_subscription_id" not in idxs:
        op.create_index("ix_orders_external_subscription_id", "orders", ["external_subscription_id"])

    if "todos" not in existing_tables:
        op.create_table(
            "todos",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=True),
            sa.Column("remind_time", sa.DateTime(timezone=True), nullable=True),
            sa.Column("status", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("todos")
    if "ix_todos_id" not in idxs:
        op.create_index("ix_todos_id", "todos", ["id"])
    if "ix_todos_user_id" not in idxs:
        op.create_index("ix_todos_user_id", "todos", ["user_id"])
    if "ix_todos_scheduled_time" not in idxs:
        op.create_index("ix_todos_scheduled_time", "todos", ["scheduled_time"])


def downgrade() -> None:
    op.drop_index("ix_todos_scheduled_time", table_name="todos")
    op.drop_index("ix_todos_user_id", table_name="todos")
    op.drop_index("ix_todos_id", table_name="todos")
    op.drop_table("todos")

    op.drop_index("ix_orders_external_subscription_id", table_name="orders")
    op.drop_index("ix_orders_external_order_id", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_index("ix_orders_internal_order_id", table_name="orders")
    op.drop_index("ix_orders_id", table_name="orders")
    op.drop_table("orders")

    op.drop_index("ix_user_subscriptions_external_subscription_id", table_name="user_subscriptions")
    op.drop_index("ix_user_subscriptions_status", table_name="user_subscriptions")
    op.drop_index("ix_user_subscriptions_user_id", table_name="user_subscriptions")
    op.drop_index("ix_user_subscriptions_id", table_name="user_subscriptions")
    op.drop_table("user_subscriptions")

    op.drop_index("ix_extract_history_user_id_extract_time", table_name="extract_history")
    op.drop_index("ix_extract_history_id", table_name="extract_history")
    op.drop_table("extract_history")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
