# backend/tuition_tracker/routers/payments.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..db import get_db
from ..identity import Principal, get_current_principal

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("", response_model=List[schemas.PaymentOut])
@router.get("/", response_model=List[schemas.PaymentOut])
def list_payments(
    student_id: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    filters = {k: v for k, v in {"student_id": student_id, "month": month, "year": year}.items() if v is not None}
    return crud.list_records(
        db,
        models.Payment,
        principal.id,
        filters=filters,
        order_by=[models.Payment.year.desc(), models.Payment.month.desc(), models.Payment.student_id],
    )


# direct correction of a month's status, same upsert the lesson flow uses
@router.put("/", response_model=schemas.PaymentOut)
def set_payment(
    payload: schemas.PaymentUpsert,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not crud.get_record(db, models.Student, principal.id, payload.student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    return crud.upsert_payment(
        db, principal.id, payload.student_id, payload.month, payload.year, payload.status
    )


@router.delete("/{payment_id}")
def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not crud.delete_record(db, models.Payment, principal.id, payment_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    return {"status": "deleted", "payment_id": payment_id}
