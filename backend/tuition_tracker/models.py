# backend/tuition_tracker/models.py
from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, Text, UniqueConstraint, CheckConstraint
from .db import Base
from .encoding import SubjectList
from datetime import datetime

PAYMENT_STATUSES = ("paid", "due")


class Student(Base):
    __tablename__ = "students"

    id = Column("id", Integer, primary_key=True, index=True)
    user_id = Column("user_id", String(64), nullable=False, index=True)
    name = Column("name", String, nullable=False)
    batch = Column("batch", String, nullable=True)
    # JSON list in a text column ("subject" kept for older rows holding a bare string)
    subjects = Column("subject", SubjectList, nullable=False, default=list)
    target_classes = Column("target_classes", Integer, nullable=False, default=0)

    created_at = Column("created_at", DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("target_classes >= 0", name="student_target_non_negative"),
    )


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column("id", Integer, primary_key=True, index=True)
    user_id = Column("user_id", String(64), nullable=False, index=True)

    # snapshot of the student at write time, not a reference
    student_name = Column("student_name", String, nullable=False)
    batch = Column("batch", String, nullable=True)
    subject = Column("subject", String, nullable=True)

    class_no = Column("class_no", String, nullable=True, default="N/A")
    class_serial = Column("class_serial", Integer, nullable=True)
    lesson_topic = Column("lesson_topic", Text, nullable=False)
    lesson_date = Column("lesson_date", Date, nullable=False)

    created_at = Column("created_at", DateTime, default=datetime.utcnow)


class Subject(Base):
    __tablename__ = "subjects"

    id = Column("id", Integer, primary_key=True, index=True)
    user_id = Column("user_id", String(64), nullable=False, index=True)
    name = Column("name", String, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="unique_subject_per_user"),
    )


class Payment(Base):
    __tablename__ = "payments"

    id = Column("id", Integer, primary_key=True, index=True)
    user_id = Column("user_id", String(64), nullable=False, index=True)
    student_id = Column("student_id", Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)

    month = Column("month", Integer, nullable=False)   # 1..12
    year = Column("year", Integer, nullable=False)
    status = Column("status", String(8), nullable=False)  # paid | due

    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "month", "year", name="unique_payment_per_month"),
        CheckConstraint("status in ('paid', 'due')", name="payment_status_values"),
    )


class Profile(Base):
    __tablename__ = "profiles"

    user_id = Column("id", String(64), primary_key=True)
    full_name = Column("full_name", String, nullable=True)
    # public URL returned by the blob store after upload
    avatar_url = Column("avatar_url", String, nullable=True)

    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
