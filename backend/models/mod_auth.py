from enum import Enum
from pydantic import BaseModel, EmailStr
from typing import Optional

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"
    CLIENT = "CLIENT"

class SessionUser(BaseModel):
    id: str
    email: EmailStr
    name: str
    role: UserRole
    image: Optional[str] = None

class Session(BaseModel):
    user: SessionUser
    expires: Optional[float] = None

class TokenPayload(BaseModel):
    """Claims carried by the session token; enough to rebuild the session user."""
    id: str
    role: UserRole
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    exp: Optional[float] = None
