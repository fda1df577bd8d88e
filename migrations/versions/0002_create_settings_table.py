"""create settings table

Revision ID: 0002
Revises: 0001
Create Date: 2024-04-22 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("school_address", sa.Text(), nullable=False, server_default=""),
        sa.Column("school_email", sa.String(length=200), nullable=True),
        sa.Column("school_website", sa.String(length=200), nullable=True),
        sa.Column("school_logo", sa.Text(), nullable=True),
        sa.Column("ministry_logo", sa.Text(), nullable=True),
        sa.Column("school_stamp", sa.Text(), nullable=True),
        sa.Column("headmaster_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("headmaster_nip", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("headmaster_signature", sa.Text(), nullable=True),
        sa.Column("city_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("province_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("academic_year", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("graduation_date", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("graduation_time", sa.String(length=20), nullable=True),
        sa.Column("cert_number_prefix", sa.String(length=100), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.func.now(),
            nullable=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("settings")
