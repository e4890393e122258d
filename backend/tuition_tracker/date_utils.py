# backend/tuition_tracker/date_utils.py
from datetime import date
from typing import Tuple


def get_today() -> date:
    """System clock. Used as a FastAPI dependency so tests can pin the date."""
    return date.today()


def month_year(d: date) -> Tuple[int, int]:
    return d.month, d.year
