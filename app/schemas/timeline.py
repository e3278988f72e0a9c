from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.core.config import DEFAULT_GRACE_PERIOD_HOURS, DEFAULT_WARNING_PERIODS, MAX_GRACE_PERIOD_HOURS
from app.services.timeline_policy import StudentModuleStatus, as_utc, normalize_warning_periods


class CamelModel(BaseModel):
    """JSON uses camelCase keys; snake_case is accepted on input too."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class TimelineCreate(CamelModel):
    course_id: int = Field(gt=0)
    module_id: int = Field(gt=0)
    department_id: int = Field(gt=0)
    deadline: datetime
    grace_period_hours: float = Field(default=DEFAULT_GRACE_PERIOD_HOURS, ge=0, le=MAX_GRACE_PERIOD_HOURS)
    enable_warnings: bool = True
    warning_periods: list[float] = Field(default_factory=lambda: list(DEFAULT_WARNING_PERIODS))
    description: Optional[str] = None

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("warning_periods")
    @classmethod
    def _normalize_periods(cls, v: list[float]) -> list[int]:
        return normalize_warning_periods(v)

    @model_validator(mode="after")
    def _grace_end_in_range(self):
        try:
            self.deadline + timedelta(hours=self.grace_period_hours)
        except OverflowError:
            raise ValueError("deadline plus grace period is past the last representable date")
        return self


class TimelineUpdate(TimelineCreate):
    pass


class TimelineRead(CamelModel):
    id: int
    course_id: int
    module_id: int
    department_id: int
    deadline: datetime
    grace_period_hours: float
    enable_warnings: bool
    warning_periods: list[int]
    description: Optional[str] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    last_processed_at: Optional[datetime] = None

    @field_validator("deadline", "created_at", "updated_at", "last_processed_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class Pagination(CamelModel):
    current: int
    pages: int
    total: int
    limit: int


class TimelinePage(CamelModel):
    timelines: list[TimelineRead]
    pagination: Pagination


class BatchError(CamelModel):
    timeline_id: int
    student_id: Optional[int] = None
    error: str


class EnforcementRunRead(CamelModel):
    processed_count: int
    demotion_count: int
    errors: list[BatchError] = []


class WarningRunRead(CamelModel):
    warnings_sent: int
    errors: list[BatchError] = []


class StudentRef(CamelModel):
    id: int
    full_name: Optional[str] = None
    email: str


class ModuleRef(CamelModel):
    id: int
    title: str
    order: int


class StudentTimelineStatus(CamelModel):
    student: StudentRef
    status: StudentModuleStatus
    completed_at: Optional[datetime] = None
    demoted: bool = False

    @field_validator("completed_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class TimelineStatusReport(CamelModel):
    timeline_id: int
    module: ModuleRef
    deadline: datetime
    grace_period_hours: float
    is_overdue: bool
    students: list[StudentTimelineStatus]

    @field_validator("deadline")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)
