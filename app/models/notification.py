from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func

from app.db.base_class import Base


class TimelineNotification(Base):
    __tablename__ = "timeline_notifications"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True)

    kind = Column(String(20), nullable=False)  # "WARNING" | "DEMOTION"
    message = Column(Text, nullable=False)
    warning_period = Column(Integer, nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    sent_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
