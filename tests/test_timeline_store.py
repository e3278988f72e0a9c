from datetime import datetime, timezone

from app.models.course_module import CourseModule
from app.models.module_completion import ModuleCompletion
from app.models.progress import StudentProgress
from app.models.timeline import ModuleTimeline
from app.services.timeline_policy import as_utc
from app.services.timeline_store import TimelineStore

NOW = datetime(2024, 1, 12, tzinfo=timezone.utc)


def make_timeline(db, seed, module_index=1):
    timeline = ModuleTimeline(
        course_id=seed.course_id,
        module_id=seed.module_ids[module_index],
        department_id=seed.assembly_id,
        deadline=datetime(2024, 1, 10, tzinfo=timezone.utc),
        grace_period_hours=24,
        warning_periods=[168, 72, 24],
    )
    db.add(timeline)
    db.commit()
    return timeline


def test_enrolled_students_are_scoped_to_department(db, seed_data):
    store = TimelineStore(db)

    assembly = store.get_enrolled_students(seed_data.assembly_id, seed_data.course_id)
    welding = store.get_enrolled_students(seed_data.welding_id, seed_data.course_id)

    assert [s.email for s in assembly] == ["student1@example.com", "student2@example.com"]
    assert [s.id for s in welding] == [seed_data.student3_id]
    assert store.get_enrolled_students(seed_data.assembly_id, seed_data.other_course_id) == []


def test_module_completion_lookup(db, seed_data):
    done_at = datetime(2024, 1, 8, 9, 30, tzinfo=timezone.utc)
    db.add(ModuleCompletion(student_id=seed_data.student1_id, module_id=seed_data.module_ids[0], completed_at=done_at))
    db.commit()
    store = TimelineStore(db)

    assert as_utc(store.get_module_completion(seed_data.student1_id, seed_data.module_ids[0])) == done_at
    assert store.get_module_completion(seed_data.student2_id, seed_data.module_ids[0]) is None

    completions = store.get_module_completions(
        [seed_data.student1_id, seed_data.student2_id], seed_data.module_ids[0]
    )
    assert list(completions) == [seed_data.student1_id]
    assert store.get_module_completions([], seed_data.module_ids[0]) == {}


def test_demotion_ledger(db, seed_data):
    timeline = make_timeline(db, seed_data)
    store = TimelineStore(db)

    assert not store.was_demoted(seed_data.student1_id, timeline.id)
    store.record_demotion(seed_data.student1_id, timeline.id, missed_at=NOW)
    db.commit()

    assert store.was_demoted(seed_data.student1_id, timeline.id)
    assert not store.was_demoted(seed_data.student2_id, timeline.id)
    assert store.demoted_student_ids(timeline.id) == {seed_data.student1_id}


def test_warning_ledger_and_clear(db, seed_data):
    timeline = make_timeline(db, seed_data)
    store = TimelineStore(db)

    store.record_warnings(seed_data.student1_id, timeline.id, [72, 168], sent_at=NOW)
    db.commit()
    assert store.sent_warning_periods(seed_data.student1_id, timeline.id) == {72, 168}
    assert store.sent_warning_periods(seed_data.student2_id, timeline.id) == set()

    assert store.clear_warnings(timeline.id) == 2
    db.commit()
    assert store.sent_warning_periods(seed_data.student1_id, timeline.id) == set()


def test_module_behind_clamps_at_first_module(db, seed_data):
    store = TimelineStore(db)
    first, second, third = (db.get(CourseModule, mid) for mid in seed_data.module_ids)

    assert store.module_behind(first, 1) is None
    assert store.module_behind(second, 1).id == first.id
    assert store.module_behind(third, 1).id == second.id
    assert store.module_behind(third, 5).id == first.id


def test_demote_to_never_moves_forward(db, seed_data):
    store = TimelineStore(db)
    first, second, third = (db.get(CourseModule, mid) for mid in seed_data.module_ids)

    # nobody to move back before the student has started the course
    assert not store.demote_to(seed_data.student1_id, seed_data.course_id, second)
    assert store.get_progress(seed_data.student1_id, seed_data.course_id) is None

    db.add(StudentProgress(student_id=seed_data.student1_id, course_id=seed_data.course_id, current_module_id=third.id))
    db.commit()
    assert store.demote_to(seed_data.student1_id, seed_data.course_id, second)
    db.commit()
    progress = store.get_progress(seed_data.student1_id, seed_data.course_id)
    assert progress.current_module_id == second.id

    # already at the target, and the target ahead of the student
    assert not store.demote_to(seed_data.student1_id, seed_data.course_id, second)
    assert not store.demote_to(seed_data.student1_id, seed_data.course_id, third)

    assert store.demote_to(seed_data.student1_id, seed_data.course_id, first)
    db.commit()
    assert db.query(StudentProgress).filter_by(student_id=seed_data.student1_id).one().current_module_id == first.id


def test_clear_demotions_only_touches_one_timeline(db, seed_data):
    first = make_timeline(db, seed_data, module_index=1)
    second = make_timeline(db, seed_data, module_index=2)
    store = TimelineStore(db)
    store.record_demotion(seed_data.student1_id, first.id, missed_at=NOW, demoted_at=NOW)
    store.record_demotion(seed_data.student1_id, second.id, missed_at=NOW)
    db.commit()

    assert store.demoted_student_ids(second.id, moved_only=True) == set()
    assert store.clear_demotions(first.id) == 1
    db.commit()

    assert store.demoted_student_ids(first.id) == set()
    assert store.demoted_student_ids(second.id) == {seed_data.student1_id}
