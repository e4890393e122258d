# backend/tuition_tracker/routers/lessons.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..config import settings
from ..db import get_db
from ..date_utils import get_today
from ..identity import Principal, get_current_principal
from ..services import lesson_entry
from ..services.lesson_entry import EntryRegistry, EntryStateError, LessonValidationError, get_registry

router = APIRouter(prefix="/lessons", tags=["Lessons"])


def _student_for_lesson(db: Session, principal: Principal, student_id: int) -> models.Student:
    student = crud.get_record(db, models.Student, principal.id, student_id)
    if not student:
        raise HTTPException(status_code=400, detail="Select a student")
    return student


# =========================================================
# RECENT LESSONS
# =========================================================
@router.get("", response_model=List[schemas.LessonOut])
@router.get("/", response_model=List[schemas.LessonOut])
def recent_lessons(
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return crud.list_records(
        db,
        models.Lesson,
        principal.id,
        order_by=[models.Lesson.lesson_date.desc(), models.Lesson.id.desc()],
        limit=limit or settings.RECENT_LESSONS_LIMIT,
    )


# =========================================================
# NEW LESSON (payment-threshold check)
# =========================================================
@router.post("/", responses={202: {"model": schemas.PaymentPrompt}}, response_model=schemas.LessonOut, status_code=201)
def create_lesson(
    payload: schemas.LessonCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    entries: EntryRegistry = Depends(get_registry),
    today: date = Depends(get_today),
):
    student = _student_for_lesson(db, principal, payload.student_id)
    entry = entries.get(principal.id)
    try:
        result = lesson_entry.submit_lesson(db, principal.id, entry, student, payload, today)
    except EntryStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except LessonValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.pending is not None:
        return JSONResponse(status_code=202, content=result.pending.prompt().model_dump())
    return result.lesson


# =========================================================
# PENDING PAYMENT DECISION
# =========================================================
@router.get("/pending", response_model=Optional[schemas.PaymentPrompt])
def pending_decision(
    principal: Principal = Depends(get_current_principal),
    entries: EntryRegistry = Depends(get_registry),
):
    entry = entries.get(principal.id)
    if entry.pending is None:
        return None
    return entry.pending.prompt()


@router.post("/pending/decision", response_model=schemas.ConfirmedEntry, status_code=201)
def confirm_decision(
    payload: schemas.PaymentDecision,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    entries: EntryRegistry = Depends(get_registry),
):
    entry = entries.get(principal.id)
    try:
        if entry.committing:
            raise EntryStateError("The payment decision is already being saved")
        pending = entry.pending
        if pending is not None and not crud.get_record(db, models.Student, principal.id, pending.student_id):
            entry.discard()
            raise HTTPException(status_code=404, detail="Student not found")
        lesson, payment = lesson_entry.confirm_payment_decision(db, principal.id, entry, payload.status)
    except EntryStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return schemas.ConfirmedEntry(
        lesson=schemas.LessonOut.model_validate(lesson),
        payment=schemas.PaymentOut.model_validate(payment),
    )


@router.delete("/pending")
def cancel_decision(
    principal: Principal = Depends(get_current_principal),
    entries: EntryRegistry = Depends(get_registry),
):
    try:
        pending = lesson_entry.cancel_payment_decision(entries.get(principal.id))
    except EntryStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "discarded", "student_id": pending.student_id}


# =========================================================
# EDIT / DELETE
# =========================================================
@router.put("/{lesson_id}", response_model=schemas.LessonOut)
def edit_lesson(
    lesson_id: int,
    payload: schemas.LessonCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not crud.get_record(db, models.Lesson, principal.id, lesson_id):
        raise HTTPException(status_code=404, detail="Lesson not found")
    student = _student_for_lesson(db, principal, payload.student_id)
    try:
        lesson = lesson_entry.edit_lesson(db, principal.id, lesson_id, student, payload)
    except LessonValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return lesson


@router.delete("/{lesson_id}")
def delete_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not crud.delete_record(db, models.Lesson, principal.id, lesson_id):
        raise HTTPException(status_code=404, detail="Lesson not found")
    return {"status": "deleted", "lesson_id": lesson_id}
