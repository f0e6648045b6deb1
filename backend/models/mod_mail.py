from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime

class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    AUDIT = "AUDIT"

class MailConfig(BaseModel):
    host: str
    port: int
    secure: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    from_name: str
    from_email: str
    reply_to: Optional[str] = None

class MailMessage(BaseModel):
    to: Union[str, List[str]]
    subject: str
    html: str
    text: Optional[str] = None

    @property
    def recipients(self) -> List[str]:
        return self.to if isinstance(self.to, list) else [self.to]

class MailMeta(BaseModel):
    type: Optional[str] = None
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    source: Optional[str] = None
    level: Optional[LogLevel] = None
    context: Dict[str, Any] = Field(default_factory=dict)

class DeliveryInfo(BaseModel):
    message_id: Optional[str] = None
    accepted: List[str] = []
    rejected: List[str] = []

class MailSetting(BaseModel):
    id: Optional[str] = None
    host: str
    port: int
    secure: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    from_name: str
    from_email: str
    reply_to: Optional[str] = None
    is_active: bool = True
    last_tested: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class MailLog(BaseModel):
    id: Optional[str] = None
    level: LogLevel
    message: str
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    source: str = "mail"
    context: Dict[str, Any] = {}
    created_at: datetime
