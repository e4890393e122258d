from datetime import date

import pytest

from tuition_tracker import crud, models, schemas
from tuition_tracker.services.lesson_entry import (
    EntryRegistry,
    EntryState,
    EntryStateError,
    LessonEntry,
    PendingLesson,
    cancel_payment_decision,
    confirm_payment_decision,
    requires_payment_decision,
    submit_lesson,
)

OWNER = "tutor-1"
TODAY = date(2026, 7, 3)


@pytest.mark.parametrize("target, serial, is_new, paid, expected", [
    (10, 10, True, False, True),
    (10, 12, True, False, True),
    (10, 9, True, False, False),
    (10, None, True, False, False),
    (10, 10, True, True, False),
    (10, 10, False, False, False),
    (0, 10, True, False, False),
    (0, 0, True, False, False),
])
def test_requires_payment_decision(target, serial, is_new, paid, expected):
    assert requires_payment_decision(target, serial, is_new, paid) is expected


def _pending(serial=3):
    return PendingLesson(
        student_id=1, student_name="Rafi", target_classes=3,
        class_serial=serial, month=7, year=2026, values={},
    )


def test_entry_transitions():
    entry = LessonEntry()
    assert entry.state is EntryState.IDLE

    entry.hold(_pending())
    assert entry.state is EntryState.AWAITING_PAYMENT_DECISION
    with pytest.raises(EntryStateError):
        entry.hold(_pending(4))

    released = entry.release()
    assert released.class_serial == 3
    assert entry.state is EntryState.IDLE
    assert entry.pending is None
    with pytest.raises(EntryStateError):
        entry.release()


def test_registry_stores_only_held_entries():
    reg = EntryRegistry()
    reg.get("a")
    reg.get("b")
    assert len(reg) == 0

    held = reg.get("a")
    held.hold(_pending())
    assert reg.get("a") is held
    assert reg.get("b") is not held
    assert len(reg) == 1

    held.release()
    assert len(reg) == 0
    assert reg.get("a").state is EntryState.IDLE

    reg.get("a").hold(_pending())
    reg.reset("a")
    assert reg.get("a").state is EntryState.IDLE


def test_second_hold_for_same_owner_is_rejected():
    reg = EntryRegistry()
    first, second = reg.get("a"), reg.get("a")
    first.hold(_pending())
    with pytest.raises(EntryStateError):
        second.hold(_pending(4))
    assert reg.get("a").pending.class_serial == 3


def test_commit_in_progress_blocks_confirm_and_cancel():
    entry = LessonEntry()
    entry.hold(_pending())

    assert entry.begin_commit().class_serial == 3
    with pytest.raises(EntryStateError):
        entry.begin_commit()
    with pytest.raises(EntryStateError):
        entry.release()

    # failed write: still waiting and can be confirmed again
    entry.end_commit(saved=False)
    assert entry.state is EntryState.AWAITING_PAYMENT_DECISION
    entry.begin_commit()
    entry.end_commit(saved=True)
    assert entry.state is EntryState.IDLE
    assert entry.pending is None


def _student(db, target):
    return crud.insert_record(db, models.Student, OWNER, name="Rafi", batch="A", subjects=["Math"], target_classes=target)


def _lesson(student_id, serial, lesson_date=date(2026, 7, 1)):
    return schemas.LessonCreate(student_id=student_id, lesson_topic="Topic", lesson_date=lesson_date, class_serial=serial)


def test_submit_holds_then_confirm_commits(db_session):
    student = _student(db_session, 3)
    entry = LessonEntry()

    result = submit_lesson(db_session, OWNER, entry, student, _lesson(student.id, 3), TODAY)
    assert result.lesson is None
    assert result.pending.prompt().model_dump()["class_serial"] == 3
    assert db_session.query(models.Lesson).count() == 0

    lesson, payment = confirm_payment_decision(db_session, OWNER, entry, "paid")
    assert (payment.student_id, payment.month, payment.year, payment.status) == (student.id, 7, 2026, "paid")
    assert lesson.class_serial == 3 and lesson.subject == "Math"
    assert entry.state is EntryState.IDLE

    # now paid for July: the next lesson past target goes straight in
    again = submit_lesson(db_session, OWNER, entry, student, _lesson(student.id, 4), TODAY)
    assert again.lesson is not None
    assert db_session.query(models.Payment).count() == 1
    assert db_session.query(models.Lesson).count() == 2


def test_cancel_writes_nothing(db_session):
    student = _student(db_session, 2)
    entry = LessonEntry()
    submit_lesson(db_session, OWNER, entry, student, _lesson(student.id, 2), TODAY)

    pending = cancel_payment_decision(entry)
    assert pending.student_id == student.id
    assert entry.state is EntryState.IDLE
    assert db_session.query(models.Lesson).count() == 0
    assert db_session.query(models.Payment).count() == 0


def test_upsert_payment_last_write_wins(db_session):
    student = _student(db_session, 0)
    crud.upsert_payment(db_session, OWNER, student.id, 7, 2026, "due")
    updated = crud.upsert_payment(db_session, OWNER, student.id, 7, 2026, "paid")
    assert updated.status == "paid"
    assert db_session.query(models.Payment).count() == 1
    assert crud.is_paid_for_month(db_session, OWNER, student.id, 7, 2026)
    assert not crud.is_paid_for_month(db_session, OWNER, student.id, 8, 2026)
