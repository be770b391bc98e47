"""create otps table

Revision ID: 2d3e4f5a6b7c
Revises: 1c2d3e4f5a6b
Create Date: 2026-10-12 00:10:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "2d3e4f5a6b7c"
down_revision: Union[str, None] = "1c2d3e4f5a6b"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "otps",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("code_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_otps_user_email"), "otps", ["user_email"])
    op.create_index(op.f("ix_otps_expires_at"), "otps", ["expires_at"])
    op.create_index("ix_otps_email_used_expires", "otps", ["user_email", "used", "expires_at"])


def downgrade() -> None:
    op.drop_index("ix_otps_email_used_expires", table_name="otps")
    op.drop_index(op.f("ix_otps_expires_at"), table_name="otps")
    op.drop_index(op.f("ix_otps_user_email"), table_name="otps")
    op.drop_table("otps")
