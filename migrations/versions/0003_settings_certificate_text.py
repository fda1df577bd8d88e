"""add certificate text and digital signature settings

Revision ID: 0003
Revises: 0002
Create Date: 2024-05-02 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("settings") as batch_op:
        batch_op.add_column(sa.Column("cert_before_student_data", sa.Text(), nullable=True))
        batch_op.add_column(sa.Column("cert_after_student_data", sa.Text(), nullable=True))
        batch_op.add_column(sa.Column("cert_regulation_text", sa.Text(), nullable=True))
        batch_op.add_column(sa.Column("cert_criteria_text", sa.Text(), nullable=True))
        batch_op.add_column(
            sa.Column(
                "use_digital_signature",
                sa.Boolean(),
                nullable=False,
                server_default=sa.false(),
            )
        )


def downgrade() -> None:
    with op.batch_alter_table("settings") as batch_op:
        batch_op.drop_column("use_digital_signature")
        batch_op.drop_column("cert_criteria_text")
        batch_op.drop_column("cert_regulation_text")
        batch_op.drop_column("cert_after_student_data")
        batch_op.drop_column("cert_before_student_data")
