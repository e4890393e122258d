# backend/tuition_tracker/encoding.py
"""
Storage encoding for a student's subject list.

Subjects live in the text column ``students.subject`` as a JSON list.
Older rows hold a bare subject string ("Math") instead; those decode to a
one-element list so nothing above the model layer ever sees a plain string.
"""
import json
from typing import Iterable, List, Optional

from sqlalchemy.types import Text, TypeDecorator


def normalize_subjects(values: Iterable[str]) -> List[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    seen = []
    for v in values:
        if v is None:
            continue
        name = str(v).strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def decode_subjects(raw: Optional[str]) -> List[str]:
    if raw is None or raw.strip() == "":
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        # legacy row: plain text subject
        return normalize_subjects([raw])
    if isinstance(value, list):
        return normalize_subjects(value)
    if isinstance(value, str):
        return normalize_subjects([value])
    # null, true, 42: keep the text as written
    return normalize_subjects([raw])


def encode_subjects(values: Optional[Iterable[str]]) -> str:
    return json.dumps(normalize_subjects(values or []))


class SubjectList(TypeDecorator):
    """Text column that round-trips a list of subject names."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return encode_subjects([])
        if isinstance(value, str):
            return encode_subjects([value])
        return encode_subjects(value)

    def process_result_value(self, value, dialect):
        return decode_subjects(value)
