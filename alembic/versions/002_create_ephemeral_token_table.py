"""Create ephemeral token table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

PURPOSES = ("EMAIL_VERIFICATION", "PASSWORD_RESET")


def upgrade() -> None:
    op.create_table(
        "ephemeral_token",
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("account_id", sa.String(length=36), nullable=False),
        sa.Column("purpose", sa.Enum(*PURPOSES, name="tokenpurpose", native_enum=False, length=32), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index(op.f("ix_ephemeral_token_expires_at"), "ephemeral_token", ["expires_at"], unique=False)
    op.create_index(
        "ix_ephemeral_token_account_purpose", "ephemeral_token", ["account_id", "purpose"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_ephemeral_token_account_purpose", table_name="ephemeral_token")
    op.drop_index(op.f("ix_ephemeral_token_expires_at"), table_name="ephemeral_token")
    op.drop_table("ephemeral_token")
