"""add explicit category to grades

Revision ID: 0004
Revises: 0003
Create Date: 2024-05-10 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("grades") as batch_op:
        batch_op.add_column(sa.Column("category", sa.String(length=1), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("grades") as batch_op:
        batch_op.drop_column("category")
