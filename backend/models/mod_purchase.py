from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime, timezone

ACTIVE_PURCHASE_STATUSES = ("ACTIVE", "PENDING")

class UserProfile(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None

class UserRecord(BaseModel):
    id: str
    email: Optional[str] = None
    profile: Optional[UserProfile] = None

    @property
    def display_name(self) -> Optional[str]:
        if self.profile is None:
            return None
        return f"{self.profile.first_name or ''} {self.profile.last_name or ''}".strip()

class PackagePurchase(BaseModel):
    id: Optional[str] = None
    user_id: str
    status: str
    expires_at: datetime
    package_name: Optional[str] = None

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Expiry without an offset is stored in UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
