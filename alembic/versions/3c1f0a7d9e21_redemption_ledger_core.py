"""redemption_ledger_core

Revision ID: 3c1f0a7d9e21
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "3c1f0a7d9e21"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("quota", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'ACTIVE'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('ACTIVE','BLOCKED','DELETED')", name="ck_users_status"),
        sa.CheckConstraint("quota >= 0", name="ck_users_quota_non_negative"),
    )
    op.create_index("idx_users_username", "users", ["username"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "redemption_codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("key", sa.CHAR(32), nullable=False),
        sa.Column("name", sa.String(64), nullable=False, server_default=sa.text("''")),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("quota", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("max_uses_per_user", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("used_user_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("used_user_id", sa.BigInteger(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("kind IN ('SINGLE','GIFT')", name="ck_redemption_codes_kind"),
        sa.CheckConstraint("status IN ('ENABLED','USED','DISABLED')", name="ck_redemption_codes_status"),
        sa.CheckConstraint("quota > 0", name="ck_redemption_codes_quota_positive"),
        sa.CheckConstraint("max_uses >= 0", name="ck_redemption_codes_max_uses_non_negative"),
        sa.CheckConstraint(
            "max_uses_per_user >= 0",
            name="ck_redemption_codes_max_uses_per_user_non_negative",
        ),
        sa.CheckConstraint("used_count >= 0", name="ck_redemption_codes_used_count_non_negative"),
        sa.CheckConstraint(
            "used_user_count >= 0",
            name="ck_redemption_codes_used_user_count_non_negative",
        ),
        sa.CheckConstraint(
            "max_uses = 0 OR used_user_count <= max_uses",
            name="ck_redemption_codes_used_user_count_le_max_uses",
        ),
        sa.UniqueConstraint("key", name="uq_redemption_codes_key"),
    )
    op.create_index("idx_redemption_codes_name", "redemption_codes", ["name"])
    op.create_index("idx_redemption_codes_status_expires", "redemption_codes", ["status", "expires_at"])
    op.create_index("idx_redemption_codes_deleted_at", "redemption_codes", ["deleted_at"])

    op.create_table(
        "redemption_usages",
        sa.Column("code_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("uses", sa.Integer(), nullable=False),
        sa.Column("first_redeemed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_redeemed_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("uses > 0", name="ck_redemption_usages_uses_positive"),
        sa.ForeignKeyConstraint(["code_id"], ["redemption_codes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("code_id", "user_id"),
    )
    op.create_index("idx_redemption_usages_user", "redemption_usages", ["user_id"])

    op.create_table(
        "usage_facts",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("code_id", sa.BigInteger(), nullable=False),
        sa.Column("code_kind", sa.String(16), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_usage_facts_amount_positive"),
        sa.CheckConstraint("code_kind IN ('SINGLE','GIFT')", name="ck_usage_facts_code_kind"),
    )
    op.create_index("idx_usage_facts_user_code", "usage_facts", ["user_id", "code_id"])
    op.create_index("idx_usage_facts_created_at", "usage_facts", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_usage_facts_created_at", table_name="usage_facts")
    op.drop_index("idx_usage_facts_user_code", table_name="usage_facts")
    op.drop_table("usage_facts")

    op.drop_index("idx_redemption_usages_user", table_name="redemption_usages")
    op.drop_table("redemption_usages")

    op.drop_index("idx_redemption_codes_deleted_at", table_name="redemption_codes")
    op.drop_index("idx_redemption_codes_status_expires", table_name="redemption_codes")
    op.drop_index("idx_redemption_codes_name", table_name="redemption_codes")
    op.drop_table("redemption_codes")

    op.drop_index("idx_users_username", table_name="users")
    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_table("users")
