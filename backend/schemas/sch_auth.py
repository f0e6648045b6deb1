from pydantic import BaseModel
from typing import Optional
from backend.models.mod_auth import SessionUser

class SessionResponse(BaseModel):
    user: SessionUser
    expires: Optional[str] = None  # ISO 8601, taken from the token's exp claim
