"""
Warning and enforcement passes over module timelines.

The evaluator holds no state between calls. Everything it needs to stay
idempotent (which warnings went out, who was already demoted) lives in the
ledger tables behind TimelineStore. Each student is its own unit of work:
a failure is rolled back, recorded in the pass result and the pass moves on.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import DEMOTION_STEP, OVERDUE_WARNING_PERIOD
from app.core.exceptions import TimelineError
from app.models.timeline import ModuleTimeline
from app.services import timeline_policy as policy
from app.services.notifier import DEMOTION, WARNING, Notifier
from app.services.timeline_policy import StudentModuleStatus
from app.services.timeline_store import TimelineStore

logger = logging.getLogger(__name__)

# errors a single item may raise without aborting the pass
ITEM_ERRORS = (TimelineError, SQLAlchemyError, OverflowError)


@dataclass
class WarningResult:
    warnings_sent: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class EnforcementResult:
    processed_count: int = 0
    demotion_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


def _error_entry(timeline_id: int, exc: Exception, student_id: int | None = None) -> dict[str, Any]:
    message = exc.message if isinstance(exc, TimelineError) else str(exc)
    return {"timeline_id": timeline_id, "student_id": student_id, "error": message}


class TimelineEvaluator:
    def __init__(self, store: TimelineStore, notifier: Notifier | None, now: datetime):
        # the status report reads only; passes that notify need a notifier
        self.store = store
        self.notifier = notifier
        self.now = policy.as_utc(now)

    @property
    def db(self):
        return self.store.db

    # ------------------------------------------------------------------
    # warnings
    # ------------------------------------------------------------------

    def send_warnings(self) -> WarningResult:
        result = WarningResult()

        for timeline in self.store.list_timelines(warnings_enabled=True):
            timeline_id = timeline.id
            try:
                self._warn_timeline(timeline, result)
            except ITEM_ERRORS as exc:
                self.db.rollback()
                logger.exception("sending warnings for timeline %s failed", timeline_id)
                result.errors.append(_error_entry(timeline_id, exc))

        logger.info(
            "warning pass done: %s sent, %s errors", result.warnings_sent, len(result.errors)
        )
        return result

    def _warn_timeline(self, timeline: ModuleTimeline, result: WarningResult) -> None:
        timeline_id = timeline.id
        course_id = timeline.course_id
        module_id = timeline.module_id
        module_title = timeline.module.title
        deadline = timeline.deadline
        grace = timeline.grace_period_hours
        periods = list(timeline.warning_periods or [])

        if self.now >= policy.grace_deadline(deadline, grace):
            return

        hours_remaining = policy.hours_until(deadline, self.now)
        students = self.store.get_enrolled_students(timeline.department_id, course_id)
        completions = self.store.get_module_completions((s.id for s in students), module_id)

        for student_id in [s.id for s in students]:
            status = policy.derive_status(deadline, grace, completions.get(student_id), self.now)
            if status not in (StudentModuleStatus.IN_PROGRESS, StudentModuleStatus.OVERDUE):
                continue

            try:
                sent = self.store.sent_warning_periods(student_id, timeline_id)
                if status == StudentModuleStatus.IN_PROGRESS:
                    due = policy.due_warning_periods(periods, hours_remaining, sent)
                    if not due:
                        continue
                    tag = due[0]
                    message = policy.warning_message(module_title, hours_remaining)
                else:
                    if OVERDUE_WARNING_PERIOD in sent:
                        continue
                    due = [OVERDUE_WARNING_PERIOD]
                    tag = OVERDUE_WARNING_PERIOD
                    message = policy.overdue_message(module_title, deadline, grace)

                self.notifier.send_notification(
                    student_id,
                    WARNING,
                    {
                        "course_id": course_id,
                        "module_id": module_id,
                        "timeline_id": timeline_id,
                        "warning_period": tag,
                        "message": message,
                        "sent_at": self.now,
                    },
                )
                self.store.record_warnings(student_id, timeline_id, due, self.now)
                self.db.commit()
                result.warnings_sent += 1
            except ITEM_ERRORS as exc:
                self.db.rollback()
                logger.exception(
                    "warning for student %s on timeline %s failed", student_id, timeline_id
                )
                result.errors.append(_error_entry(timeline_id, exc, student_id))

    # ------------------------------------------------------------------
    # enforcement
    # ------------------------------------------------------------------

    def process_enforcement(self) -> EnforcementResult:
        result = EnforcementResult()

        for timeline in self.store.list_timelines(deadline_before=self.now):
            timeline_id = timeline.id
            try:
                self._enforce_timeline(timeline, result)
                timeline.last_processed_at = self.now
                self.db.commit()
                result.processed_count += 1
            except ITEM_ERRORS as exc:
                self.db.rollback()
                logger.exception("enforcement for timeline %s failed", timeline_id)
                result.errors.append(_error_entry(timeline_id, exc))

        logger.info(
            "enforcement pass done: %s timelines, %s demotions, %s errors",
            result.processed_count,
            result.demotion_count,
            len(result.errors),
        )
        return result

    def _enforce_timeline(self, timeline: ModuleTimeline, result: EnforcementResult) -> None:
        timeline_id = timeline.id
        course_id = timeline.course_id
        module = timeline.module
        module_id = module.id
        module_title = module.title
        deadline = timeline.deadline
        grace = timeline.grace_period_hours

        students = self.store.get_enrolled_students(timeline.department_id, course_id)
        completions = self.store.get_module_completions((s.id for s in students), module_id)
        already_demoted = self.store.demoted_student_ids(timeline_id)
        target = self.store.module_behind(module, DEMOTION_STEP)
        target_id = target.id if target else None
        target_title = target.title if target else None

        for student_id in [s.id for s in students]:
            if student_id in already_demoted:
                continue
            status = policy.derive_status(deadline, grace, completions.get(student_id), self.now)
            if status != StudentModuleStatus.MISSED_DEADLINE:
                continue

            try:
                demoted = False
                if target_id is not None:
                    demoted = self.store.demote_to(student_id, course_id, target)
                if demoted:
                    self.notifier.send_notification(
                        student_id,
                        DEMOTION,
                        {
                            "course_id": course_id,
                            "module_id": module_id,
                            "timeline_id": timeline_id,
                            "message": policy.demotion_message(module_title, target_title),
                            "sent_at": self.now,
                        },
                    )
                self.store.record_demotion(
                    student_id,
                    timeline_id,
                    missed_at=self.now,
                    demoted_at=self.now if demoted else None,
                    previous_module_id=target_id if demoted else None,
                )
                self.db.commit()
                if demoted:
                    result.demotion_count += 1
                    logger.info(
                        "student %s moved back to module %s (timeline %s)",
                        student_id,
                        target_id,
                        timeline_id,
                    )
            except ITEM_ERRORS as exc:
                self.db.rollback()
                logger.exception(
                    "demotion of student %s on timeline %s failed", student_id, timeline_id
                )
                result.errors.append(_error_entry(timeline_id, exc, student_id))

    # ------------------------------------------------------------------
    # status report
    # ------------------------------------------------------------------

    def get_timeline_status(self, course_id: int, department_id: int) -> list[dict[str, Any]]:
        timelines = self.store.list_timelines(course_id=course_id, department_id=department_id)
        timelines.sort(key=lambda t: (t.module.order, t.module.id))
        students = self.store.get_enrolled_students(department_id, course_id)

        report: list[dict[str, Any]] = []
        for timeline in timelines:
            completions = self.store.get_module_completions((s.id for s in students), timeline.module_id)
            demoted = self.store.demoted_student_ids(timeline.id, moved_only=True)

            rows = []
            for s in students:
                completed_at = completions.get(s.id)
                rows.append(
                    {
                        "student": {"id": s.id, "full_name": s.full_name, "email": s.email},
                        "status": policy.derive_status(
                            timeline.deadline, timeline.grace_period_hours, completed_at, self.now
                        ),
                        "completed_at": completed_at,
                        "demoted": s.id in demoted,
                    }
                )

            report.append(
                {
                    "timeline_id": timeline.id,
                    "module": {
                        "id": timeline.module.id,
                        "title": timeline.module.title,
                        "order": timeline.module.order,
                    },
                    "deadline": timeline.deadline,
                    "grace_period_hours": timeline.grace_period_hours,
                    "is_overdue": self.now >= policy.as_utc(timeline.deadline),
                    "students": rows,
                }
            )

        return report
