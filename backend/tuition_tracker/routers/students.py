# backend/tuition_tracker/routers/students.py
from datetime import date
from typing import List

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from .. import crud, schemas, models
from ..db import get_db
from ..date_utils import get_today, month_year
from ..identity import Principal, get_current_principal

router = APIRouter(prefix="/students", tags=["students"])


def _student_out(student: models.Student, status_map: dict) -> schemas.StudentOut:
    out = schemas.StudentOut.model_validate(student)
    out.payment_status = status_map.get(student.id)
    return out


def _get_owned_student(db: Session, principal: Principal, student_id: int) -> models.Student:
    student = crud.get_record(db, models.Student, principal.id, student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.get("", response_model=List[schemas.StudentOut])
@router.get("/", response_model=List[schemas.StudentOut])
def list_students(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    today: date = Depends(get_today),
):
    students = crud.list_records(
        db, models.Student, principal.id, order_by=[models.Student.id.desc()]
    )
    status_map = crud.payment_status_by_student(db, principal.id, *month_year(today))
    return [_student_out(s, status_map) for s in students]


@router.post("/", response_model=schemas.StudentOut, status_code=201)
def create_student(
    payload: schemas.StudentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    student = crud.insert_record(db, models.Student, principal.id, **payload.model_dump())
    return _student_out(student, {})


@router.get("/{student_id}", response_model=schemas.StudentOut)
def get_student(
    student_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    today: date = Depends(get_today),
):
    student = _get_owned_student(db, principal, student_id)
    status_map = crud.payment_status_by_student(db, principal.id, *month_year(today))
    return _student_out(student, status_map)


@router.patch("/{student_id}", response_model=schemas.StudentOut)
def update_student(
    student_id: int,
    payload: schemas.StudentUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    today: date = Depends(get_today),
):
    _get_owned_student(db, principal, student_id)
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and not changes["name"]:
        raise HTTPException(status_code=400, detail="name is required")
    if changes.get("target_classes", 0) is None:
        changes["target_classes"] = 0
    student = crud.update_record(db, models.Student, principal.id, student_id, **changes)
    status_map = crud.payment_status_by_student(db, principal.id, *month_year(today))
    return _student_out(student, status_map)


@router.delete("/{student_id}")
def delete_student(
    student_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not crud.delete_student(db, principal.id, student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    return {"status": "ok", "student_id": student_id}


@router.get("/{student_id}/next-serial", response_model=schemas.NextSerialOut)
def next_serial(
    student_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    student = _get_owned_student(db, principal, student_id)
    return schemas.NextSerialOut(
        student_id=student.id,
        next_serial=crud.next_class_serial(db, principal.id, student),
        target_classes=student.target_classes,
    )
