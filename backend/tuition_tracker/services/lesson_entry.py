# backend/tuition_tracker/services/lesson_entry.py
"""
Lesson entry flow with the payment-threshold check.

A new lesson whose class serial reaches the student's target, in a month
with no "paid" record, is held back until the tutor says whether the
month is paid or due:

    idle --submit (threshold crossed)--> awaiting_payment_decision
    awaiting_payment_decision --confirm(paid|due)--> idle   (payment + lesson written)
    awaiting_payment_decision --cancel--> idle               (nothing written)

Any other submission is written straight away. Edits never run the check.
"""
import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..date_utils import month_year

logger = logging.getLogger(__name__)


class EntryState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_PAYMENT_DECISION = "awaiting_payment_decision"


class EntryStateError(Exception):
    """Operation not allowed in the entry's current state."""


class LessonValidationError(ValueError):
    pass


@dataclass
class PendingLesson:
    student_id: int
    student_name: str
    target_classes: int
    class_serial: int
    month: int
    year: int
    values: Dict = field(default_factory=dict)

    def prompt(self) -> schemas.PaymentPrompt:
        return schemas.PaymentPrompt(
            student_id=self.student_id,
            student_name=self.student_name,
            target_classes=self.target_classes,
            class_serial=self.class_serial,
            month=self.month,
            year=self.year,
        )


@dataclass
class LessonEntry:
    """
    Entry state for one principal. While a confirm is being written the entry
    stays awaiting but is marked committing, so a second confirm or a cancel
    is turned away instead of writing the held lesson twice.
    """
    owner_id: Optional[str] = None
    registry: Optional["EntryRegistry"] = field(default=None, repr=False, compare=False)
    state: EntryState = EntryState.IDLE
    pending: Optional[PendingLesson] = None
    committing: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def _guard(self) -> threading.Lock:
        return self.registry._lock if self.registry is not None else self._lock

    def hold(self, pending: PendingLesson) -> None:
        with self._guard():
            if self.state is not EntryState.IDLE:
                raise EntryStateError("A payment decision is already pending")
            if self.registry is not None:
                self.registry._attach(self)
            self.state = EntryState.AWAITING_PAYMENT_DECISION
            self.pending = pending

    def release(self) -> PendingLesson:
        with self._guard():
            if self.state is not EntryState.AWAITING_PAYMENT_DECISION:
                raise EntryStateError("No payment decision is pending")
            if self.committing:
                raise EntryStateError("The payment decision is already being saved")
            return self._reset()

    def discard(self) -> None:
        self.release()

    def begin_commit(self) -> PendingLesson:
        with self._guard():
            if self.state is not EntryState.AWAITING_PAYMENT_DECISION:
                raise EntryStateError("No payment decision is pending")
            if self.committing:
                raise EntryStateError("The payment decision is already being saved")
            self.committing = True
            return self.pending

    def end_commit(self, saved: bool) -> None:
        with self._guard():
            self.committing = False
            if saved:
                self._reset()

    def _reset(self) -> PendingLesson:
        # caller holds the guard lock
        pending = self.pending
        self.state = EntryState.IDLE
        self.pending = None
        if self.registry is not None:
            self.registry._detach(self)
        return pending


class EntryRegistry:
    """
    Lesson entry state per principal, kept in process memory.
    Only entries holding a lesson are stored; idle ones are handed out fresh.
    """

    def __init__(self):
        self._entries: Dict[str, LessonEntry] = {}
        self._lock = threading.Lock()

    def get(self, owner_id: str) -> LessonEntry:
        with self._lock:
            entry = self._entries.get(owner_id)
        if entry is None:
            entry = LessonEntry(owner_id=owner_id, registry=self)
        return entry

    def _attach(self, entry: LessonEntry) -> None:
        current = self._entries.get(entry.owner_id)
        if current is not None and current is not entry:
            raise EntryStateError("A payment decision is already pending")
        self._entries[entry.owner_id] = entry

    def _detach(self, entry: LessonEntry) -> None:
        if self._entries.get(entry.owner_id) is entry:
            del self._entries[entry.owner_id]

    def reset(self, owner_id: str) -> None:
        with self._lock:
            self._entries.pop(owner_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


registry = EntryRegistry()


def get_registry() -> EntryRegistry:
    return registry


def requires_payment_decision(
    target_classes: int,
    class_serial: Optional[int],
    is_new: bool,
    paid_this_month: bool,
) -> bool:
    if not is_new:
        return False
    if not target_classes or target_classes <= 0:
        return False
    if class_serial is None or class_serial < target_classes:
        return False
    return not paid_this_month


def lesson_values(student: models.Student, data: schemas.LessonCreate) -> Dict:
    """Copy the student's current name/batch/subject onto the lesson row."""
    subjects = list(student.subjects or [])
    subject = data.subject.strip() if data.subject else None
    if subject:
        if subjects and subject not in subjects:
            raise LessonValidationError(f"{student.name} does not take {subject!r}")
    elif len(subjects) == 1:
        subject = subjects[0]
    elif len(subjects) > 1:
        raise LessonValidationError("Select a subject for this lesson")

    return {
        "student_name": student.name,
        "batch": student.batch,
        "subject": subject,
        "class_no": data.class_no or "N/A",
        "class_serial": data.class_serial,
        "lesson_topic": data.lesson_topic,
        "lesson_date": data.lesson_date,
    }


@dataclass
class SubmitResult:
    lesson: Optional[models.Lesson] = None
    pending: Optional[PendingLesson] = None


def submit_lesson(
    db: Session,
    owner_id: str,
    entry: LessonEntry,
    student: models.Student,
    data: schemas.LessonCreate,
    today: date,
) -> SubmitResult:
    if entry.state is not EntryState.IDLE:
        raise EntryStateError("A payment decision is already pending")

    values = lesson_values(student, data)
    # the month being checked is today's, not the lesson's date
    month, year = month_year(today)
    paid = crud.is_paid_for_month(db, owner_id, student.id, month, year)

    if requires_payment_decision(student.target_classes, data.class_serial, True, paid):
        pending = PendingLesson(
            student_id=student.id,
            student_name=student.name,
            target_classes=student.target_classes,
            class_serial=data.class_serial,
            month=month,
            year=year,
            values=values,
        )
        entry.hold(pending)
        logger.info(
            "student %s reached serial %s of %s; holding lesson for payment decision",
            student.id, data.class_serial, student.target_classes,
        )
        return SubmitResult(pending=pending)

    lesson = crud.insert_record(db, models.Lesson, owner_id, **values)
    return SubmitResult(lesson=lesson)


def edit_lesson(
    db: Session,
    owner_id: str,
    lesson_id: int,
    student: models.Student,
    data: schemas.LessonCreate,
) -> Optional[models.Lesson]:
    return crud.update_record(db, models.Lesson, owner_id, lesson_id, **lesson_values(student, data))


def confirm_payment_decision(
    db: Session,
    owner_id: str,
    entry: LessonEntry,
    status: str,
) -> Tuple[models.Lesson, models.Payment]:
    """
    Write the monthly payment and the held lesson in one transaction.
    On failure nothing is written and the entry keeps waiting for a decision.
    """
    pending = entry.begin_commit()

    try:
        payment = crud.upsert_payment(
            db, owner_id, pending.student_id, pending.month, pending.year, status, commit=False
        )
        lesson = crud.insert_record(db, models.Lesson, owner_id, commit=False, **pending.values)
        db.commit()
    except Exception:
        db.rollback()
        entry.end_commit(saved=False)
        logger.exception("payment decision for student %s failed", pending.student_id)
        raise

    entry.end_commit(saved=True)
    db.refresh(lesson)
    db.refresh(payment)
    return lesson, payment


def cancel_payment_decision(entry: LessonEntry) -> PendingLesson:
    return entry.release()
