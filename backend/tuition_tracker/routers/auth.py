# backend/tuition_tracker/routers/auth.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from .. import schemas
from ..identity import Principal, get_current_principal, get_optional_principal
from ..services.lesson_entry import EntryRegistry, get_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/session")
def current_session(principal: Optional[Principal] = Depends(get_optional_principal)):
    if principal is None:
        return {"session": None}
    return {"session": schemas.PrincipalOut(id=principal.id, email=principal.email)}


# The provider revokes the token client-side; drop anything held for this principal.
@router.post("/signout")
def sign_out(
    principal: Principal = Depends(get_current_principal),
    entries: EntryRegistry = Depends(get_registry),
):
    entries.reset(principal.id)
    logger.info("principal %s signed out", principal.id)
    return {"status": "ok"}
