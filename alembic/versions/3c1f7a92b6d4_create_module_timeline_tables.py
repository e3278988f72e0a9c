"""create module timeline tables

Revision ID: 3c1f7a92b6d4
Revises:
Create Date: 2026-10-19 09:12:41.331208

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f7a92b6d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
    )
    op.create_index("ix_departments_id", "departments", ["id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column(
            "department_id",
            sa.Integer(),
            sa.ForeignKey("departments.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_department_id", "users", ["department_id"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructor_id", sa.Integer(), nullable=True),
    )
    op.create_index("ix_courses_id", "courses", ["id"])
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])

    op.create_table(
        "course_modules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
    )
    op.create_index("ix_course_modules_id", "course_modules", ["id"])
    op.create_index("ix_course_modules_course_id", "course_modules", ["course_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )
    op.create_index("ix_enrollments_id", "enrollments", ["id"])
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    op.create_table(
        "module_completions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("module_id", sa.Integer(), sa.ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("student_id", "module_id", name="uq_module_completion_student_module"),
    )
    op.create_index("ix_module_completions_id", "module_completions", ["id"])
    op.create_index("ix_module_completions_student_id", "module_completions", ["student_id"])
    op.create_index("ix_module_completions_module_id", "module_completions", ["module_id"])

    op.create_table(
        "student_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "current_module_id",
            sa.Integer(),
            sa.ForeignKey("course_modules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("student_id", "course_id", name="uq_student_progress_student_course"),
    )
    op.create_index("ix_student_progress_id", "student_progress", ["id"])
    op.create_index("ix_student_progress_student_id", "student_progress", ["student_id"])
    op.create_index("ix_student_progress_course_id", "student_progress", ["course_id"])

    op.create_table(
        "module_timelines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("module_id", sa.Integer(), sa.ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("grace_period_hours", sa.Float(), nullable=False),
        sa.Column("enable_warnings", sa.Boolean(), nullable=False),
        sa.Column("warning_periods", sa.JSON(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "course_id", "module_id", "department_id", name="uq_module_timeline_course_module_department"
        ),
    )
    op.create_index("ix_module_timelines_id", "module_timelines", ["id"])
    op.create_index("ix_module_timelines_course_id", "module_timelines", ["course_id"])
    op.create_index("ix_module_timelines_module_id", "module_timelines", ["module_id"])
    op.create_index("ix_module_timelines_department_id", "module_timelines", ["department_id"])
    op.create_index("ix_module_timelines_deadline", "module_timelines", ["deadline"])

    op.create_table(
        "timeline_demotions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "timeline_id", sa.Integer(), sa.ForeignKey("module_timelines.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("missed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("demoted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "previous_module_id",
            sa.Integer(),
            sa.ForeignKey("course_modules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.UniqueConstraint("timeline_id", "student_id", name="uq_timeline_demotion_timeline_student"),
    )
    op.create_index("ix_timeline_demotions_id", "timeline_demotions", ["id"])
    op.create_index("ix_timeline_demotions_timeline_id", "timeline_demotions", ["timeline_id"])
    op.create_index("ix_timeline_demotions_student_id", "timeline_demotions", ["student_id"])

    op.create_table(
        "timeline_warnings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "timeline_id", sa.Integer(), sa.ForeignKey("module_timelines.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("warning_period", sa.Integer(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "timeline_id", "student_id", "warning_period", name="uq_timeline_warning_timeline_student_period"
        ),
    )
    op.create_index("ix_timeline_warnings_id", "timeline_warnings", ["id"])
    op.create_index("ix_timeline_warnings_timeline_id", "timeline_warnings", ["timeline_id"])
    op.create_index("ix_timeline_warnings_student_id", "timeline_warnings", ["student_id"])

    op.create_table(
        "timeline_notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "module_id", sa.Integer(), sa.ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("warning_period", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_timeline_notifications_id", "timeline_notifications", ["id"])
    op.create_index("ix_timeline_notifications_student_id", "timeline_notifications", ["student_id"])
    op.create_index("ix_timeline_notifications_course_id", "timeline_notifications", ["course_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("timeline_notifications")
    op.drop_table("timeline_warnings")
    op.drop_table("timeline_demotions")
    op.drop_table("module_timelines")
    op.drop_table("student_progress")
    op.drop_table("module_completions")
    op.drop_table("enrollments")
    op.drop_table("course_modules")
    op.drop_table("courses")
    op.drop_table("users")
    op.drop_table("departments")
