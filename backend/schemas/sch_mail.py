from pydantic import BaseModel, Field
from typing import Any, Optional, List
from datetime import datetime

PASSWORD_MASK = "********"

class MailSettingsUpdate(BaseModel):
    host: str = ""
    port: Any = Field(default=None, description="SMTP port, e.g. 587 or 465; checked by MailValidator")
    secure: bool = Field(default=False, description="Implicit TLS (SMTPS)")
    username: Optional[str] = None
    password: Optional[str] = Field(
        default=None,
        description="Leave empty or send the mask to keep the stored password"
    )
    from_name: str = ""
    from_email: str = ""
    reply_to: Optional[str] = None
    test: bool = False

class MailSettingView(BaseModel):
    host: str
    port: int
    secure: bool
    username: Optional[str] = None
    password: Optional[str] = None
    from_name: str
    from_email: str
    reply_to: Optional[str] = None
    last_tested: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class MailSettingsResponse(BaseModel):
    setting: Optional[MailSettingView] = None

class ConnectionTestResult(BaseModel):
    success: bool
    tested_at: Optional[datetime] = None
    message: str

class MailSettingsSaveResponse(BaseModel):
    success: bool
    updated_at: Optional[datetime] = None
    test_result: Optional[ConnectionTestResult] = None

class MailTestRequest(BaseModel):
    email: str = ""

class MailTestResponse(BaseModel):
    success: bool
    message: str
    warning: Optional[str] = None
    message_id: Optional[str] = None
    accepted: List[str] = []
    rejected: List[str] = []
