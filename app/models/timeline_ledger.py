from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class TimelineDemotion(Base):
    """One row per (timeline, student) that missed the deadline beyond grace."""

    __tablename__ = "timeline_demotions"

    id = Column(Integer, primary_key=True, index=True)
    timeline_id = Column(Integer, ForeignKey("module_timelines.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    missed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # null when there was no earlier module to move the student back to
    demoted_at = Column(DateTime(timezone=True), nullable=True)
    previous_module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("timeline_id", "student_id", name="uq_timeline_demotion_timeline_student"),
    )

    timeline = relationship("ModuleTimeline", back_populates="demotions")


class TimelineWarning(Base):
    """Warning-sent ledger keyed by (timeline, student, threshold hours)."""

    __tablename__ = "timeline_warnings"

    id = Column(Integer, primary_key=True, index=True)
    timeline_id = Column(Integer, ForeignKey("module_timelines.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    warning_period = Column(Integer, nullable=False)

    sent_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "timeline_id", "student_id", "warning_period", name="uq_timeline_warning_timeline_student_period"
        ),
    )

    timeline = relationship("ModuleTimeline", back_populates="warnings")
