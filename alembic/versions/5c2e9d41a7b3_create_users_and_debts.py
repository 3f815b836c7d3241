"""Create users and debts tables

Revision ID: 5c2e9d41a7b3
Revises:
Create Date: 2026-10-17 09:12:44.208113

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e9d41a7b3"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "debts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("counterparty_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=3), server_default="COP", nullable=False),
        sa.Column("paid", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["counterparty_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_debts_id", "debts", ["id"])
    op.create_index("ix_debts_owner_id", "debts", ["owner_id"])
    op.create_index("ix_debts_counterparty_id", "debts", ["counterparty_id"])
    op.create_index("ix_debts_paid", "debts", ["paid"])
    op.create_index("ix_debts_created_at", "debts", ["created_at"])
    op.create_index("ix_debts_owner_id_paid", "debts", ["owner_id", "paid"])
    op.create_index(
        "ix_debts_due_date",
        "debts",
        ["due_date"],
        postgresql_where=sa.text("due_date IS NOT NULL"),
    )


def downgrade() -> None:
    op.drop_index("ix_debts_due_date", table_name="debts")
    op.drop_index("ix_debts_owner_id_paid", table_name="debts")
    op.drop_index("ix_debts_created_at", table_name="debts")
    op.drop_index("ix_debts_paid", table_name="debts")
    op.drop_index("ix_debts_counterparty_id", table_name="debts")
    op.drop_index("ix_debts_owner_id", table_name="debts")
    op.drop_index("ix_debts_id", table_name="debts")
    op.drop_table("debts")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
