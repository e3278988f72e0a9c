from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from app.models.course_module import CourseModule
from app.models.enrollment import Enrollment
from app.models.module_completion import ModuleCompletion
from app.models.progress import StudentProgress
from app.models.timeline import ModuleTimeline
from app.models.timeline_ledger import TimelineDemotion, TimelineWarning
from app.models.user import User


class TimelineStore:
    """Queries and ledger writes the timeline evaluator depends on."""

    def __init__(self, db: Session):
        self.db = db

    # --- timelines ---

    def get_timeline(self, timeline_id: int) -> ModuleTimeline | None:
        return self.db.query(ModuleTimeline).filter(ModuleTimeline.id == timeline_id).first()

    def find_timeline(self, course_id: int, module_id: int, department_id: int) -> ModuleTimeline | None:
        return (
            self.db.query(ModuleTimeline)
            .filter(
                ModuleTimeline.course_id == course_id,
                ModuleTimeline.module_id == module_id,
                ModuleTimeline.department_id == department_id,
            )
            .first()
        )

    def list_timelines(
        self,
        course_id: int | None = None,
        department_id: int | None = None,
        warnings_enabled: bool | None = None,
        deadline_before: datetime | None = None,
    ) -> list[ModuleTimeline]:
        q = self.db.query(ModuleTimeline)
        if course_id is not None:
            q = q.filter(ModuleTimeline.course_id == course_id)
        if department_id is not None:
            q = q.filter(ModuleTimeline.department_id == department_id)
        if warnings_enabled is not None:
            q = q.filter(ModuleTimeline.enable_warnings == warnings_enabled)
        if deadline_before is not None:
            q = q.filter(ModuleTimeline.deadline <= deadline_before)
        return q.order_by(ModuleTimeline.deadline.asc(), ModuleTimeline.id.asc()).all()

    # --- students ---

    def get_enrolled_students(self, department_id: int, course_id: int) -> list[User]:
        return (
            self.db.query(User)
            .join(Enrollment, Enrollment.student_id == User.id)
            .filter(
                Enrollment.course_id == course_id,
                User.department_id == department_id,
                User.role == "student",
            )
            .order_by(User.email.asc())
            .all()
        )

    def get_module_completion(self, student_id: int, module_id: int) -> datetime | None:
        row = (
            self.db.query(ModuleCompletion)
            .filter(
                ModuleCompletion.student_id == student_id,
                ModuleCompletion.module_id == module_id,
            )
            .first()
        )
        return row.completed_at if row else None

    def get_module_completions(self, student_ids: Iterable[int], module_id: int) -> dict[int, datetime]:
        ids = list(student_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(ModuleCompletion.student_id, ModuleCompletion.completed_at)
            .filter(
                ModuleCompletion.module_id == module_id,
                ModuleCompletion.student_id.in_(ids),
            )
            .all()
        )
        return {r.student_id: r.completed_at for r in rows}

    # --- demotion ledger ---

    def was_demoted(self, student_id: int, timeline_id: int) -> bool:
        return (
            self.db.query(TimelineDemotion)
            .filter(
                TimelineDemotion.timeline_id == timeline_id,
                TimelineDemotion.student_id == student_id,
            )
            .first()
            is not None
        )

    def demoted_student_ids(self, timeline_id: int, moved_only: bool = False) -> set[int]:
        """Students ledgered for the timeline; `moved_only` skips misses that moved nobody."""
        q = self.db.query(TimelineDemotion.student_id).filter(TimelineDemotion.timeline_id == timeline_id)
        if moved_only:
            q = q.filter(TimelineDemotion.demoted_at.isnot(None))
        rows = q.all()
        return {r.student_id for r in rows}

    def record_demotion(
        self,
        student_id: int,
        timeline_id: int,
        missed_at: datetime,
        demoted_at: datetime | None = None,
        previous_module_id: int | None = None,
    ) -> TimelineDemotion:
        entry = TimelineDemotion(
            timeline_id=timeline_id,
            student_id=student_id,
            missed_at=missed_at,
            demoted_at=demoted_at,
            previous_module_id=previous_module_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    # --- warning ledger ---

    def sent_warning_periods(self, student_id: int, timeline_id: int) -> set[int]:
        rows = (
            self.db.query(TimelineWarning.warning_period)
            .filter(
                TimelineWarning.timeline_id == timeline_id,
                TimelineWarning.student_id == student_id,
            )
            .all()
        )
        return {r.warning_period for r in rows}

    def record_warnings(
        self,
        student_id: int,
        timeline_id: int,
        warning_periods: Iterable[int],
        sent_at: datetime,
    ) -> None:
        for period in warning_periods:
            self.db.add(
                TimelineWarning(
                    timeline_id=timeline_id,
                    student_id=student_id,
                    warning_period=period,
                    sent_at=sent_at,
                )
            )
        self.db.flush()

    def clear_demotions(self, timeline_id: int) -> int:
        return (
            self.db.query(TimelineDemotion)
            .filter(TimelineDemotion.timeline_id == timeline_id)
            .delete(synchronize_session=False)
        )

    def clear_warnings(self, timeline_id: int) -> int:
        return (
            self.db.query(TimelineWarning)
            .filter(TimelineWarning.timeline_id == timeline_id)
            .delete(synchronize_session=False)
        )

    # --- progress ---

    def module_behind(self, module: CourseModule, step: int) -> CourseModule | None:
        """The module `step` places before `module` in course order, clamped at the first one."""
        modules = (
            self.db.query(CourseModule)
            .filter(CourseModule.course_id == module.course_id)
            .order_by(CourseModule.order.asc(), CourseModule.id.asc())
            .all()
        )
        index = next(i for i, m in enumerate(modules) if m.id == module.id)
        if index == 0:
            return None
        return modules[max(0, index - step)]

    def get_progress(self, student_id: int, course_id: int) -> StudentProgress | None:
        return (
            self.db.query(StudentProgress)
            .filter(
                StudentProgress.student_id == student_id,
                StudentProgress.course_id == course_id,
            )
            .first()
        )

    def demote_to(self, student_id: int, course_id: int, target: CourseModule) -> bool:
        """
        Move the student's current module back to `target`.

        Returns False when the student has no progress in the course yet or
        is already at or behind `target`; a demotion never moves anyone forward.
        """
        progress = self.get_progress(student_id, course_id)
        if progress is None or progress.current_module_id is None:
            return False
        current = self.db.get(CourseModule, progress.current_module_id)
        if current is None or (current.order, current.id) <= (target.order, target.id):
            return False

        progress.current_module_id = target.id
        self.db.flush()
        return True
