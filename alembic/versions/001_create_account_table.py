"""Create account table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "account",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("is_email_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_confirmation_token", sa.String(length=128), nullable=True),
        sa.Column("email_confirmation_expires", sa.DateTime(), nullable=True),
        sa.Column("password_reset_token", sa.String(length=128), nullable=True),
        sa.Column("password_reset_expires", sa.DateTime(), nullable=True),
        sa.Column(
            "role",
            sa.Enum("standard", "admin", name="account_role"),
            nullable=False,
            server_default="standard",
        ),
        sa.Column("profile_picture", sa.String(length=2048), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_account_username"), "account", ["username"], unique=True)
    op.create_index(op.f("ix_account_email"), "account", ["email"], unique=True)
    op.create_index(
        op.f("ix_account_email_confirmation_token"), "account", ["email_confirmation_token"], unique=False
    )
    op.create_index(op.f("ix_account_password_reset_token"), "account", ["password_reset_token"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_account_password_reset_token"), table_name="account")
    op.drop_index(op.f("ix_account_email_confirmation_token"), table_name="account")
    op.drop_index(op.f("ix_account_email"), table_name="account")
    op.drop_index(op.f("ix_account_username"), table_name="account")
    op.drop_table("account")
    sa.Enum(name="account_role").drop(op.get_bind(), checkfirst=True)
