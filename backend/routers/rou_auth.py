from fastapi import APIRouter, Depends
from backend.dependencies.dep_auth import get_current_session
from backend.models.mod_auth import Session
from backend.schemas.sch_auth import SessionResponse
from datetime import datetime, timezone

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={401: {"description": "Unauthorized"}},
)

@router.get("/session", response_model=SessionResponse)
def get_session(session: Session = Depends(get_current_session)):
    """
    Return the session of the authenticated user.

    - Identity (id, email, name, role, image) comes from the bearer token
    - `expires` is the token expiry in ISO 8601
    """
    expires = None
    if session.expires:
        expires = datetime.fromtimestamp(session.expires, tz=timezone.utc).isoformat()
    return SessionResponse(user=session.user, expires=expires)
