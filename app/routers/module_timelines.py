import logging
import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_PAGE_SIZE, MAX_NOTIFICATIONS
from app.core.deps import get_clock, get_db, get_notifier
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.permissions import require_admin, require_staff, require_student
from app.models.course import Course
from app.models.course_module import CourseModule
from app.models.department import Department
from app.models.notification import TimelineNotification
from app.models.timeline import ModuleTimeline
from app.models.user import User
from app.schemas.notification import NotificationRead
from app.schemas.timeline import (
    EnforcementRunRead,
    Pagination,
    TimelineCreate,
    TimelinePage,
    TimelineRead,
    TimelineStatusReport,
    TimelineUpdate,
    WarningRunRead,
)
from app.services.notifier import Notifier
from app.services.timeline_evaluator import TimelineEvaluator
from app.services.timeline_policy import as_utc
from app.services.timeline_store import TimelineStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise NotFoundError("Course", course_id)
    return course


def _ensure_department_exists(db: Session, department_id: int) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise NotFoundError("Department", department_id)
    return department


def _ensure_timeline_exists(db: Session, timeline_id: int) -> ModuleTimeline:
    timeline = TimelineStore(db).get_timeline(timeline_id)
    if not timeline:
        raise NotFoundError("Timeline", timeline_id)
    return timeline


def _validate_references(db: Session, payload: TimelineCreate) -> None:
    course = _ensure_course_exists(db, payload.course_id)
    module = db.query(CourseModule).filter(CourseModule.id == payload.module_id).first()
    if not module:
        raise NotFoundError("Module", payload.module_id)
    _ensure_department_exists(db, payload.department_id)

    if module.course_id != course.id:
        raise ValidationError(
            "Module does not belong to the specified course",
            details={"course_id": course.id, "module_id": module.id},
        )


def _duplicate_error(payload: TimelineCreate) -> ConflictError:
    return ConflictError(
        "A timeline already exists for this course, module and department",
        details={
            "course_id": payload.course_id,
            "module_id": payload.module_id,
            "department_id": payload.department_id,
        },
    )


def _commit_timeline(db: Session, payload: TimelineCreate) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _duplicate_error(payload)


@router.post(
    "",
    response_model=TimelineRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing fields or malformed identifiers"},
        404: {"description": "Course, module or department not found"},
        409: {"description": "Timeline already exists"},
    },
)
def create_timeline(
    payload: TimelineCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    _validate_references(db, payload)

    store = TimelineStore(db)
    if store.find_timeline(payload.course_id, payload.module_id, payload.department_id):
        raise _duplicate_error(payload)

    timeline = ModuleTimeline(
        course_id=payload.course_id,
        module_id=payload.module_id,
        department_id=payload.department_id,
        deadline=payload.deadline,
        grace_period_hours=payload.grace_period_hours,
        enable_warnings=payload.enable_warnings,
        warning_periods=payload.warning_periods,
        description=payload.description,
        created_by=admin.id,
    )
    db.add(timeline)
    _commit_timeline(db, payload)
    db.refresh(timeline)

    logger.info("timeline %s created by user %s", timeline.id, admin.id)
    return timeline


@router.get("", response_model=TimelinePage)
def list_timelines(
    course_id: int | None = Query(default=None, alias="courseId", gt=0),
    department_id: int | None = Query(default=None, alias="departmentId", gt=0),
    overdue: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
    staff: User = Depends(require_staff),
):
    q = db.query(ModuleTimeline)
    if course_id is not None:
        q = q.filter(ModuleTimeline.course_id == course_id)
    if department_id is not None:
        q = q.filter(ModuleTimeline.department_id == department_id)
    if overdue:
        q = q.filter(ModuleTimeline.deadline < as_utc(now))

    total = q.count()
    timelines = (
        q.order_by(ModuleTimeline.deadline.asc(), ModuleTimeline.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return TimelinePage(
        timelines=[TimelineRead.model_validate(t) for t in timelines],
        pagination=Pagination(
            current=page,
            pages=math.ceil(total / limit),
            total=total,
            limit=limit,
        ),
    )


@router.post("/process-enforcement", response_model=EnforcementRunRead)
def process_enforcement(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    now: datetime = Depends(get_clock),
    admin: User = Depends(require_admin),
):
    logger.info("enforcement pass requested by user %s", admin.id)
    result = TimelineEvaluator(TimelineStore(db), notifier, now).process_enforcement()
    return EnforcementRunRead(
        processed_count=result.processed_count,
        demotion_count=result.demotion_count,
        errors=result.errors,
    )


@router.post("/send-warnings", response_model=WarningRunRead)
def send_warnings(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    now: datetime = Depends(get_clock),
    admin: User = Depends(require_admin),
):
    logger.info("warning pass requested by user %s", admin.id)
    result = TimelineEvaluator(TimelineStore(db), notifier, now).send_warnings()
    return WarningRunRead(warnings_sent=result.warnings_sent, errors=result.errors)


@router.get("/status/{course_id}/{department_id}", response_model=list[TimelineStatusReport])
def timeline_status(
    course_id: int,
    department_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
    staff: User = Depends(require_staff),
):
    _ensure_course_exists(db, course_id)
    _ensure_department_exists(db, department_id)

    evaluator = TimelineEvaluator(TimelineStore(db), None, now)
    return evaluator.get_timeline_status(course_id, department_id)


@router.get("/department/{course_id}/{department_id}", response_model=list[TimelineRead])
def department_timelines(
    course_id: int,
    department_id: int,
    db: Session = Depends(get_db),
    staff: User = Depends(require_staff),
):
    _ensure_course_exists(db, course_id)
    _ensure_department_exists(db, department_id)

    timelines = TimelineStore(db).list_timelines(course_id=course_id, department_id=department_id)
    return sorted(timelines, key=lambda t: (t.module.order, t.module.id))


@router.get("/notifications/{course_id}", response_model=list[NotificationRead])
def my_notifications(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_student),
):
    _ensure_course_exists(db, course_id)

    return (
        db.query(TimelineNotification)
        .filter(
            TimelineNotification.student_id == me.id,
            TimelineNotification.course_id == course_id,
        )
        .order_by(TimelineNotification.sent_at.desc(), TimelineNotification.id.desc())
        .limit(MAX_NOTIFICATIONS)
        .all()
    )


@router.patch(
    "/notifications/{course_id}/{notification_id}/read",
    response_model=NotificationRead,
)
def mark_notification_read(
    course_id: int,
    notification_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_student),
):
    notification = (
        db.query(TimelineNotification)
        .filter(
            TimelineNotification.id == notification_id,
            TimelineNotification.course_id == course_id,
            TimelineNotification.student_id == me.id,
        )
        .first()
    )
    if not notification:
        raise NotFoundError("Notification", notification_id)

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


@router.get("/{timeline_id}", response_model=TimelineRead)
def get_timeline(
    timeline_id: int,
    db: Session = Depends(get_db),
    staff: User = Depends(require_staff),
):
    return _ensure_timeline_exists(db, timeline_id)


@router.put("/{timeline_id}", response_model=TimelineRead)
def update_timeline(
    timeline_id: int,
    payload: TimelineUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    timeline = _ensure_timeline_exists(db, timeline_id)
    _validate_references(db, payload)

    store = TimelineStore(db)
    existing = store.find_timeline(payload.course_id, payload.module_id, payload.department_id)
    if existing and existing.id != timeline.id:
        raise _duplicate_error(payload)

    deadline_changed = as_utc(timeline.deadline) != payload.deadline
    target_changed = (timeline.course_id, timeline.module_id, timeline.department_id) != (
        payload.course_id,
        payload.module_id,
        payload.department_id,
    )

    timeline.course_id = payload.course_id
    timeline.module_id = payload.module_id
    timeline.department_id = payload.department_id
    timeline.deadline = payload.deadline
    timeline.grace_period_hours = payload.grace_period_hours
    timeline.enable_warnings = payload.enable_warnings
    timeline.warning_periods = payload.warning_periods
    timeline.description = payload.description
    timeline.updated_by = admin.id
    timeline.last_processed_at = None

    # a new deadline starts a new warning cycle; demotions stand unless the
    # timeline now points at a different module or cohort
    if deadline_changed or target_changed:
        cleared = store.clear_warnings(timeline.id)
        logger.info("timeline %s rescheduled, %s sent warnings cleared", timeline.id, cleared)
    if target_changed:
        cleared = store.clear_demotions(timeline.id)
        logger.info("timeline %s retargeted, %s demotion entries cleared", timeline.id, cleared)

    _commit_timeline(db, payload)
    db.refresh(timeline)
    return timeline


@router.delete("/{timeline_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_timeline(
    timeline_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    timeline = _ensure_timeline_exists(db, timeline_id)
    db.delete(timeline)
    db.commit()
    logger.info("timeline %s deleted by user %s", timeline_id, admin.id)
