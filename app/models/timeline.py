from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.core.config import DEFAULT_GRACE_PERIOD_HOURS, DEFAULT_WARNING_PERIODS
from app.db.base_class import Base


class ModuleTimeline(Base):
    __tablename__ = "module_timelines"

    id = Column(Integer, primary_key=True, index=True)

    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)

    deadline = Column(DateTime(timezone=True), nullable=False, index=True)
    grace_period_hours = Column(Float, nullable=False, default=DEFAULT_GRACE_PERIOD_HOURS)
    enable_warnings = Column(Boolean, nullable=False, default=True)
    # hours before deadline, deduplicated, largest first
    warning_periods = Column(JSON, nullable=False, default=lambda: list(DEFAULT_WARNING_PERIODS))
    description = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # last enforcement pass that handled this timeline; cleared on edit
    last_processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "course_id", "module_id", "department_id", name="uq_module_timeline_course_module_department"
        ),
    )

    course = relationship("Course")
    module = relationship("CourseModule")
    department = relationship("Department")

    demotions = relationship("TimelineDemotion", back_populates="timeline", cascade="all, delete-orphan")
    warnings = relationship("TimelineWarning", back_populates="timeline", cascade="all, delete-orphan")
