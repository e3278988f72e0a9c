from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func

from app.db.base_class import Base


class StudentProgress(Base):
    """Where a student currently is inside a course. Demotions move it back."""

    __tablename__ = "student_progress"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    current_module_id = Column(
        Integer, ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True
    )

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_student_progress_student_course"),
    )
