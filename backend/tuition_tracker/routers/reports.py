# backend/tuition_tracker/routers/reports.py
import io
from typing import List

import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..db import get_db
from ..identity import Principal, get_current_principal

router = APIRouter(prefix="/reports", tags=["Reports"])

# filter type -> snapshot column on lessons
LESSON_FILTER_COLUMNS = {
    "student": "student_name",
    "batch": "batch",
    "subject": "subject",
}


def filter_options(students: List[models.Student], filter_type: str) -> List[str]:
    values = []
    for s in students:
        if filter_type == "student":
            candidates = [s.name]
        elif filter_type == "batch":
            candidates = [s.batch]
        else:
            candidates = s.subjects or []
        for v in candidates:
            if v and v not in values:
                values.append(v)
    return values


def filtered_lessons(db: Session, owner_id: str, filter_type: str, value: str) -> List[models.Lesson]:
    return crud.list_records(
        db,
        models.Lesson,
        owner_id,
        filters={LESSON_FILTER_COLUMNS[filter_type]: value},
        order_by=[models.Lesson.lesson_date.desc(), models.Lesson.id.desc()],
    )


@router.get("/options", response_model=List[str])
def report_options(
    filter_type: schemas.FilterType = Query("student"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    students = crud.list_records(db, models.Student, principal.id, order_by=[models.Student.id])
    return filter_options(students, filter_type)


@router.get("/lessons", response_model=List[schemas.LessonOut])
def report_lessons(
    filter_type: schemas.FilterType = Query("student"),
    value: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return filtered_lessons(db, principal.id, filter_type, value)


# =========================================================
# EXPORT
# =========================================================
@router.get("/lessons.xlsx")
def export_lessons_xlsx(
    filter_type: schemas.FilterType = Query("student"),
    value: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    lessons = filtered_lessons(db, principal.id, filter_type, value)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Lessons"

    header = ["Date", "Student", "Batch", "Subject", "Class #", "Topic"]
    ws.append(header)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for l in lessons:
        ws.append([
            l.lesson_date.isoformat(),
            l.student_name,
            l.batch or "",
            l.subject or "",
            l.class_serial if l.class_serial is not None else "",
            l.lesson_topic,
        ])

    for idx, width in enumerate([12, 24, 16, 16, 8, 60], start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width

    stream = io.BytesIO()
    wb.save(stream)
    stream.seek(0)

    safe_value = "".join(ch if ch.isalnum() else "_" for ch in value)
    filename = f"lessons_{filter_type}_{safe_value}.xlsx"

    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
