"""create users, students and grades tables

Revision ID: 0001
Revises: 
Create Date: 2024-04-15 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nisn", sa.String(length=20), nullable=False),
        sa.Column("nis", sa.String(length=20), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("birth_place", sa.String(length=100), nullable=False),
        sa.Column("birth_date", sa.String(length=20), nullable=False),
        sa.Column("parent_name", sa.String(length=100), nullable=False),
        sa.Column("class_name", sa.String(length=20), nullable=False),
        sa.Column("major_name", sa.String(length=50), nullable=True),
        sa.Column(
            "status", sa.String(length=20), nullable=False, server_default="pending"
        ),
        sa.Column("verified_by", sa.Integer(), nullable=True),
        sa.Column("verification_date", sa.DateTime(), nullable=True),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_students_nisn", "students", ["nisn"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=10), nullable=False, server_default="siswa"),
        sa.Column(
            "student_id", sa.Integer(), sa.ForeignKey("students.id"), nullable=True
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_foreign_key(
        "fk_students_verified_by_users",
        "students",
        "users",
        ["verified_by"],
        ["id"],
    )

    op.create_table(
        "grades",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "student_id", sa.Integer(), sa.ForeignKey("students.id"), nullable=False
        ),
        sa.Column("subject_name", sa.String(length=100), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_grades_student_id", "grades", ["student_id"])


def downgrade() -> None:
    op.drop_index("ix_grades_student_id", table_name="grades")
    op.drop_table("grades")
    op.drop_constraint("fk_students_verified_by_users", "students", type_="foreignkey")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_students_nisn", table_name="students")
    op.drop_table("students")
