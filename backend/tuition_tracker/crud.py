# backend/tuition_tracker/crud.py
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

# ---------- GENERIC OWNER-SCOPED ACCESS ----------
# Every query filters on user_id; a row owned by someone else is treated as missing.

def scoped(db: Session, model: Type[models.Base], owner_id: str):
    return db.query(model).filter(model.user_id == owner_id)


def list_records(
    db: Session,
    model,
    owner_id: str,
    filters: Optional[Dict[str, Any]] = None,
    order_by: Iterable = (),
    limit: Optional[int] = None,
) -> List:
    """List rows for an owner with optional equality filters, ordering and limit."""
    q = scoped(db, model, owner_id)
    for column, value in (filters or {}).items():
        q = q.filter(getattr(model, column) == value)
    order_by = list(order_by)
    if order_by:
        q = q.order_by(*order_by)
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def get_record(db: Session, model, owner_id: str, record_id: int):
    return scoped(db, model, owner_id).filter(model.id == record_id).first()


def insert_record(db: Session, model, owner_id: str, commit: bool = True, **values):
    obj = model(user_id=owner_id, **values)
    db.add(obj)
    if commit:
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(obj)
    else:
        db.flush()
    return obj


def update_record(db: Session, model, owner_id: str, record_id: int, **values):
    obj = get_record(db, model, owner_id, record_id)
    if obj is None:
        return None
    for k, v in values.items():
        setattr(obj, k, v)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(obj)
    return obj


def delete_record(db: Session, model, owner_id: str, record_id: int) -> bool:
    obj = get_record(db, model, owner_id, record_id)
    if obj is None:
        return False
    db.delete(obj)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True

# ---------- STUDENTS ----------
def delete_student(db: Session, owner_id: str, student_id: int) -> bool:
    """
    Delete a student together with its payment rows.
    Lessons are left alone: they only carry a copy of the student's name/batch.
    """
    student = get_record(db, models.Student, owner_id, student_id)
    if student is None:
        return False
    try:
        removed = scoped(db, models.Payment, owner_id).filter(
            models.Payment.student_id == student_id
        ).delete(synchronize_session=False)
        db.delete(student)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("deleted student %s (%s payment rows)", student_id, removed)
    return True


def next_class_serial(db: Session, owner_id: str, student: models.Student) -> int:
    highest = (
        db.query(func.max(models.Lesson.class_serial))
        .filter(
            models.Lesson.user_id == owner_id,
            models.Lesson.student_name == student.name,
        )
        .scalar()
    )
    return (highest or 0) + 1

# ---------- PAYMENTS ----------
def get_payment(db: Session, owner_id: str, student_id: int, month: int, year: int) -> Optional[models.Payment]:
    return scoped(db, models.Payment, owner_id).filter(
        models.Payment.student_id == student_id,
        models.Payment.month == month,
        models.Payment.year == year,
    ).first()


def is_paid_for_month(db: Session, owner_id: str, student_id: int, month: int, year: int) -> bool:
    pay = get_payment(db, owner_id, student_id, month, year)
    return pay is not None and pay.status == "paid"


def payment_status_by_student(db: Session, owner_id: str, month: int, year: int) -> Dict[int, str]:
    rows = scoped(db, models.Payment, owner_id).filter(
        models.Payment.month == month,
        models.Payment.year == year,
    ).all()
    return {p.student_id: p.status for p in rows}


def _dialect_insert(db: Session):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


def upsert_payment(
    db: Session,
    owner_id: str,
    student_id: int,
    month: int,
    year: int,
    status: str,
    commit: bool = True,
) -> models.Payment:
    """
    Insert the monthly payment row or overwrite its status when
    (student_id, month, year) already exists. Last write wins.
    """
    now = datetime.utcnow()
    insert = _dialect_insert(db)
    try:
        if insert is not None:
            stmt = insert(models.Payment.__table__).values(
                user_id=owner_id,
                student_id=student_id,
                month=month,
                year=year,
                status=status,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["student_id", "month", "year"],
                set_={"status": stmt.excluded.status, "updated_at": stmt.excluded.updated_at},
            )
            db.execute(stmt)
        else:
            existing = get_payment(db, owner_id, student_id, month, year)
            if existing is None:
                db.add(models.Payment(
                    user_id=owner_id, student_id=student_id,
                    month=month, year=year, status=status, updated_at=now,
                ))
            else:
                existing.status = status
                existing.updated_at = now
        db.flush()
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise

    payment = get_payment(db, owner_id, student_id, month, year)
    # the Core upsert bypasses the identity map
    db.refresh(payment)
    logger.info("payment %s/%s for student %s set to %s", month, year, student_id, status)
    return payment

# ---------- PROFILE ----------
def get_profile(db: Session, owner_id: str) -> Optional[models.Profile]:
    return db.query(models.Profile).filter(models.Profile.user_id == owner_id).first()


def save_profile(db: Session, owner_id: str, **values) -> models.Profile:
    profile = get_profile(db, owner_id)
    if profile is None:
        profile = models.Profile(user_id=owner_id)
        db.add(profile)
    for k, v in values.items():
        setattr(profile, k, v)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(profile)
    return profile
