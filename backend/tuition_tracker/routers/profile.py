# backend/tuition_tracker/routers/profile.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..db import get_db
from ..identity import Principal, get_current_principal

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=schemas.ProfileOut)
def get_profile(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    profile = crud.get_profile(db, principal.id)
    if profile is None:
        return schemas.ProfileOut(user_id=principal.id)
    return profile


@router.put("", response_model=schemas.ProfileOut)
def save_profile(
    payload: schemas.ProfileIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return crud.save_profile(db, principal.id, **payload.model_dump(exclude_unset=True))
