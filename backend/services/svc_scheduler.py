import asyncio
from functools import lru_cache
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from backend.configuration.config import Config
from backend.configuration.monitor import log_event, log_exception, record_job_run
from backend.models.mod_scheduler import JobOutcome, JobRunResult, SchedulerState, SchedulerStatus
from backend.services.svc_mail_jobs import send_weekly_checkin_reminder_emails
from typing import Awaitable, Callable, Optional
from datetime import datetime, timezone

WEEKLY_CHECKIN_JOB_ID = "weekly-checkin-reminder"
WEEKLY_CHECKIN_CRON = "0 9 * * 1,5"
WEEKLY_EMAIL_ERROR_PREFIX = "Haftalık e-posta gönderimi hatası:"

def weekly_checkin_trigger(tz: str) -> CronTrigger:
    """09:00 every Monday and Friday in the given timezone"""
    # APScheduler numbers weekdays from Monday = 0, so the crontab string is not passed through
    return CronTrigger(day_of_week="mon,fri", hour=9, minute=0, timezone=tz)

class MailScheduler:
    """
    Owns the recurring weekly check-in reminder job.

    One instance is created by the application lifespan. `ensure_started`
    registers the job at most once per instance; the state only moves from
    uninitialized to initialized. Runs never overlap: a run that starts while
    another is in flight is reported as skipped.
    """

    def __init__(
        self,
        job: Optional[Callable[[], Awaitable[Optional[int]]]] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self._job = job or send_weekly_checkin_reminder_emails
        self._scheduler = scheduler or AsyncIOScheduler()
        self._lock = asyncio.Lock()
        self.state = SchedulerState.UNINITIALIZED
        self.timezone: Optional[str] = None
        self.last_result: Optional[JobRunResult] = None

    @property
    def initialized(self) -> bool:
        return self.state == SchedulerState.INITIALIZED

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def ensure_started(self) -> None:
        if self.initialized:
            return
        if Config.cron_disabled():
            log_event("Mail scheduler disabled", {"DISABLE_CRON": "true"})
            return
        tz = Config.cron_timezone()
        trigger = weekly_checkin_trigger(tz)
        self._scheduler.add_job(
            self.run_weekly_checkin,
            trigger,
            id=WEEKLY_CHECKIN_JOB_ID,
            name="Weekly check-in reminder emails",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        # State moves only once the job is registered
        self.timezone = tz
        self.state = SchedulerState.INITIALIZED

        log_event("Mail scheduler started", {
            "job_id": WEEKLY_CHECKIN_JOB_ID,
            "cron": WEEKLY_CHECKIN_CRON,
            "timezone": self.timezone
        })

    async def run_weekly_checkin(self) -> JobRunResult:
        """Run the reminder job once. Failures are logged and reported, never raised."""
        started_at = datetime.now(timezone.utc)

        if self._lock.locked():
            log_event("Weekly check-in run skipped", {
                "job_id": WEEKLY_CHECKIN_JOB_ID,
                "reason": "previous run still in flight"
            })
            result = JobRunResult(
                job_id=WEEKLY_CHECKIN_JOB_ID,
                outcome=JobOutcome.SKIPPED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
            )
        else:
            async with self._lock:
                try:
                    sent = await self._job()
                    result = JobRunResult(
                        job_id=WEEKLY_CHECKIN_JOB_ID,
                        outcome=JobOutcome.SUCCEEDED,
                        started_at=started_at,
                        finished_at=datetime.now(timezone.utc),
                        emails_sent=sent or 0,
                    )
                except Exception as e:
                    log_exception(e, {"job_id": WEEKLY_CHECKIN_JOB_ID}, message=WEEKLY_EMAIL_ERROR_PREFIX)
                    result = JobRunResult(
                        job_id=WEEKLY_CHECKIN_JOB_ID,
                        outcome=JobOutcome.FAILED,
                        started_at=started_at,
                        finished_at=datetime.now(timezone.utc),
                        error=str(e),
                    )

        self.last_result = result
        record_job_run(result.job_id, result.outcome.value, result.started_at, result.finished_at, result.emails_sent)
        return result

    def status(self) -> SchedulerStatus:
        next_run_time = None
        if self.initialized:
            job = self._scheduler.get_job(WEEKLY_CHECKIN_JOB_ID)
            next_run_time = job.next_run_time if job else None
        return SchedulerStatus(
            state=self.state,
            job_id=WEEKLY_CHECKIN_JOB_ID,
            cron_expression=WEEKLY_CHECKIN_CRON,
            timezone=self.timezone,
            next_run_time=next_run_time,
            running=self.running,
            last_result=self.last_result,
        )

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log_event("Mail scheduler stopped", {"job_id": WEEKLY_CHECKIN_JOB_ID})

@lru_cache(maxsize=1)
def get_mail_scheduler() -> MailScheduler:
    """The process-wide scheduler, built once by the application lifespan"""
    return MailScheduler()

def ensure_mail_scheduler() -> None:
    get_mail_scheduler().ensure_started()

def shutdown_mail_scheduler() -> None:
    """
    Stop the process-wide scheduler and drop it.

    An AsyncIOScheduler is bound to the event loop it was started on, so the
    next application lifespan builds a fresh instance.
    """
    get_mail_scheduler().shutdown()
    get_mail_scheduler.cache_clear()
