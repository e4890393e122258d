# backend/tuition_tracker/routers/subjects.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..db import get_db
from ..identity import Principal, get_current_principal

router = APIRouter(prefix="/subjects", tags=["Subjects"])


@router.get("/", response_model=List[schemas.SubjectOut])
def list_subjects(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return crud.list_records(db, models.Subject, principal.id, order_by=[models.Subject.name])


@router.post("/", response_model=schemas.SubjectOut, status_code=201)
def create_subject(
    payload: schemas.SubjectIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        return crud.insert_record(db, models.Subject, principal.id, name=payload.name)
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Subject already exists")


@router.patch("/{subject_id}", response_model=schemas.SubjectOut)
def rename_subject(
    subject_id: int,
    payload: schemas.SubjectIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    # students reference subjects by name, so existing students keep the old label
    try:
        subject = crud.update_record(db, models.Subject, principal.id, subject_id, name=payload.name)
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Subject already exists")
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    return subject


@router.delete("/{subject_id}")
def delete_subject(
    subject_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not crud.delete_record(db, models.Subject, principal.id, subject_id):
        raise HTTPException(status_code=404, detail="Subject not found")
    return {"status": "ok", "id": subject_id}
