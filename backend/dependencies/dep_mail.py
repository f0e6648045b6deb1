from fastapi import Depends
from azure.cosmos import ContainerProxy
from backend.configuration.database import get_mailsettings_db, get_adminlogs_db
from backend.services.svc_mail import MailService
from backend.services.svc_scheduler import MailScheduler, get_mail_scheduler

def get_mail_service(
    settings_db: ContainerProxy = Depends(get_mailsettings_db),
    logs_db: ContainerProxy = Depends(get_adminlogs_db)
) -> MailService:
    return MailService(settings_db, logs_db)

def get_scheduler() -> MailScheduler:
    return get_mail_scheduler()
