from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class SchedulerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"

class JobOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # another run was still in flight

class JobRunResult(BaseModel):
    job_id: str
    outcome: JobOutcome
    started_at: datetime
    finished_at: datetime
    emails_sent: int = 0
    error: Optional[str] = None

class SchedulerStatus(BaseModel):
    state: SchedulerState
    job_id: str
    cron_expression: str
    timezone: Optional[str] = None
    next_run_time: Optional[datetime] = None
    running: bool = False
    last_result: Optional[JobRunResult] = None
