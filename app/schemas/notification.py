from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from app.services.timeline_policy import as_utc


class NotificationRead(BaseModel):
    id: int
    course_id: int
    module_id: Optional[int] = None
    kind: str  # "WARNING" | "DEMOTION"
    message: str
    warning_period: Optional[int] = None
    is_read: bool
    sent_at: datetime

    @field_validator("sent_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True
