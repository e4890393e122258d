# backend/tuition_tracker/schemas.py
from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List, Optional, Literal

from .encoding import normalize_subjects

PaymentStatus = Literal["paid", "due"]
FilterType = Literal["student", "batch", "subject"]


def _coerce_subjects(v):
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    return normalize_subjects(v)

# --------------------------------------------
# Student Schema
# --------------------------------------------
class StudentCreate(BaseModel):
    name: str = Field(min_length=1)
    batch: Optional[str] = None
    subjects: List[str] = []
    target_classes: int = Field(0, ge=0)

    @field_validator("subjects", mode="before")
    @classmethod
    def clean_subjects(cls, v):
        return _coerce_subjects(v)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name is required")
        return v.strip()


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    batch: Optional[str] = None
    subjects: Optional[List[str]] = None
    target_classes: Optional[int] = Field(None, ge=0)

    @field_validator("subjects", mode="before")
    @classmethod
    def clean_subjects(cls, v):
        return _coerce_subjects(v)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.strip():
            raise ValueError("name is required")
        return v.strip()


class StudentOut(BaseModel):
    id: int
    name: str
    batch: Optional[str]
    subjects: List[str] = []
    target_classes: int
    # derived for the current calendar month, None when nothing recorded
    payment_status: Optional[PaymentStatus] = None

    class Config:
        from_attributes = True


class NextSerialOut(BaseModel):
    student_id: int
    next_serial: int
    target_classes: int

# --------------------------------------------
# Lesson Schema
# --------------------------------------------
class LessonCreate(BaseModel):
    student_id: int
    subject: Optional[str] = None
    lesson_topic: str = Field(min_length=1)
    lesson_date: date
    class_serial: Optional[int] = Field(None, ge=1)
    class_no: Optional[str] = None


class LessonOut(BaseModel):
    id: int
    student_name: str
    batch: Optional[str]
    subject: Optional[str]
    class_no: Optional[str]
    class_serial: Optional[int]
    lesson_topic: str
    lesson_date: date
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class PaymentPrompt(BaseModel):
    state: Literal["awaiting_payment_decision"] = "awaiting_payment_decision"
    student_id: int
    student_name: str
    target_classes: int
    class_serial: int
    month: int
    year: int
    choices: List[PaymentStatus] = ["paid", "due"]


class PaymentDecision(BaseModel):
    status: PaymentStatus


# --------------------------------------------
# Payment Schema
# --------------------------------------------
class PaymentUpsert(BaseModel):
    student_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1900, le=9999)
    status: PaymentStatus


class PaymentOut(BaseModel):
    id: int
    student_id: int
    month: int
    year: int
    status: PaymentStatus
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ConfirmedEntry(BaseModel):
    lesson: LessonOut
    payment: PaymentOut

# --------------------------------------------
# Subject / Profile / Session
# --------------------------------------------
class SubjectIn(BaseModel):
    name: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name is required")
        return v.strip()


class SubjectOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ProfileIn(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileOut(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class PrincipalOut(BaseModel):
    id: str
    email: Optional[str] = None
