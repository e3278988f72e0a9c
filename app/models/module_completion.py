from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func

from app.db.base_class import Base


class ModuleCompletion(Base):
    __tablename__ = "module_completions"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False, index=True)

    completed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "module_id", name="uq_module_completion_student_module"),
    )
