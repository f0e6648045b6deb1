import asyncio
from fastapi import APIRouter, Depends, HTTPException
from azure.cosmos import ContainerProxy
from backend.configuration.database import get_mailsettings_db
from backend.configuration.monitor import log_event, log_exception
from backend.dependencies.dep_auth import get_current_admin
from backend.dependencies.dep_mail import get_mail_service, get_scheduler
from backend.models.mod_auth import SessionUser
from backend.models.mod_mail import LogLevel, MailConfig, MailMessage
from backend.models.mod_scheduler import JobRunResult, SchedulerStatus
from backend.schemas.sch_mail import (
    ConnectionTestResult,
    MailSettingsResponse,
    MailSettingsSaveResponse,
    MailSettingsUpdate,
    MailTestRequest,
    MailTestResponse,
)
from backend.services.svc_email_templates import EmailTemplates
from backend.services.svc_mail import MailService, describe_smtp_error
from backend.services.svc_mail_settings import MailSettingsService
from backend.services.svc_scheduler import MailScheduler
from backend.validators.val_mail import MailValidator
from datetime import datetime, timezone

router = APIRouter(
    prefix="/admin",
    tags=["Admin Mail"],
    responses={403: {"description": "Forbidden"}},
)

@router.get("/mail-settings", response_model=MailSettingsResponse)
def get_mail_settings(
    db: ContainerProxy = Depends(get_mailsettings_db),
    current_admin: SessionUser = Depends(get_current_admin)
):
    """
    Get the active SMTP settings.

    - The stored password is never returned, only a mask
    - Returns `{"setting": null}` when nothing is configured
    """
    setting = MailSettingsService.get_active_setting(db)
    if not setting:
        return MailSettingsResponse(setting=None)
    return MailSettingsResponse(setting=MailSettingsService.to_view(setting))

@router.put("/mail-settings", response_model=MailSettingsSaveResponse)
async def update_mail_settings(
    settings: MailSettingsUpdate,
    db: ContainerProxy = Depends(get_mailsettings_db),
    mail_service: MailService = Depends(get_mail_service),
    current_admin: SessionUser = Depends(get_current_admin)
):
    """
    Save new SMTP settings.

    - Host may not carry ssl:// or tls://; use `secure` for implicit TLS
    - An empty or masked password keeps the stored one
    - With `test: true` the connection is verified and `last_tested` stamped
    """
    validated = MailValidator.validate_settings(settings)
    saved = await asyncio.to_thread(MailSettingsService.save_setting, db, validated)

    test_result = None
    if validated.test:
        config = MailConfig(
            host=saved.host,
            port=saved.port,
            secure=saved.secure,
            username=saved.username,
            password=saved.password,
            from_name=saved.from_name,
            from_email=saved.from_email,
            reply_to=saved.reply_to,
        )
        try:
            await mail_service.verify_connection(config)
            tested_at = datetime.now(timezone.utc)
            await asyncio.to_thread(MailSettingsService.mark_tested, db, saved, tested_at)
            test_result = ConnectionTestResult(
                success=True,
                tested_at=tested_at,
                message=f"SMTP sunucusuna başarıyla bağlanıldı: {saved.host}:{saved.port}"
            )
        except Exception as e:
            log_exception(e, {"operation": "update_mail_settings", "host": saved.host}, message="SMTP doğrulama hatası:")
            test_result = ConnectionTestResult(success=False, message=describe_smtp_error(e))

    return MailSettingsSaveResponse(success=True, updated_at=saved.updated_at, test_result=test_result)

@router.post("/mail-settings/test", response_model=MailTestResponse)
async def send_test_mail(
    request: MailTestRequest,
    db: ContainerProxy = Depends(get_mailsettings_db),
    mail_service: MailService = Depends(get_mail_service),
    current_admin: SessionUser = Depends(get_current_admin)
):
    """
    Send a test mail with the active SMTP settings.

    - Requires saved settings with a host and sender address
    - Reports accepted and rejected recipients; every attempt is written to the admin log
    """
    recipient = MailValidator.validate_recipient(request.email)

    setting = await asyncio.to_thread(MailSettingsService.get_active_setting, db)
    if not setting or not setting.host or not setting.from_email:
        raise HTTPException(
            status_code=400,
            detail="SMTP ayarları yapılandırılmamış. Lütfen önce mail ayarlarını kaydedin."
        )

    template = EmailTemplates.smtp_test_email(datetime.now())
    mail = MailMessage(to=recipient, subject=template.subject, html=template.html, text=template.text)
    log_context = {
        "type": "Test e-postası",
        "recipients": [recipient],
        "subject": template.subject,
    }

    try:
        info = await mail_service.send_mail(mail)
    except Exception as e:
        log_exception(e, {"operation": "send_test_mail", "recipient": recipient})
        await asyncio.to_thread(
            mail_service.record_mail_log,
            level=LogLevel.ERROR,
            message=f"Test e-postası gönderilemedi: {e}",
            actor_id=current_admin.id,
            actor_email=current_admin.email,
            source="mail",
            context={**log_context, "error": {"name": type(e).__name__, "message": str(e)}},
        )
        raise HTTPException(status_code=500, detail=f"E-posta gönderilirken hata oluştu: {e}")

    if info.rejected:
        level = LogLevel.WARN
        log_message = f"Test e-postası gönderildi ancak bazı alıcılar reddedildi: {', '.join(info.rejected)}"
    elif not info.accepted:
        level = LogLevel.WARN
        log_message = "Test e-postası gönderildi ancak hiçbir alıcı kabul edilmedi"
    else:
        level = LogLevel.AUDIT
        log_message = f"Test e-postası {recipient} adresine başarıyla gönderildi"

    await asyncio.to_thread(
        mail_service.record_mail_log,
        level=level,
        message=log_message,
        actor_id=current_admin.id,
        actor_email=current_admin.email,
        source="mail",
        context={**log_context, "delivery": info.model_dump()},
    )
    log_event("Test mail sent", {"recipient": recipient, "level": level.value})

    if info.rejected:
        return MailTestResponse(
            success=False,
            warning="E-posta SMTP sunucusuna gönderildi ancak bazı alıcılar reddedildi.",
            message=f"Test e-postası gönderildi. Reddedilen alıcılar: {', '.join(info.rejected)}",
            message_id=info.message_id,
            accepted=info.accepted,
            rejected=info.rejected,
        )
    if not info.accepted:
        return MailTestResponse(
            success=False,
            warning="E-posta SMTP sunucusuna gönderildi ancak hiçbir alıcı kabul edilmedi.",
            message="Test e-postası gönderildi ancak alıcı kabul edilmedi.",
            message_id=info.message_id,
            accepted=info.accepted,
            rejected=info.rejected,
        )
    return MailTestResponse(
        success=True,
        message=f"Test e-postası {recipient} adresine başarıyla gönderildi.",
        message_id=info.message_id,
        accepted=info.accepted,
        rejected=info.rejected,
    )

@router.get("/scheduler", response_model=SchedulerStatus)
def get_scheduler_status(
    scheduler: MailScheduler = Depends(get_scheduler),
    current_admin: SessionUser = Depends(get_current_admin)
):
    """State, timezone, next fire time and last run of the weekly reminder job"""
    return scheduler.status()

@router.post("/scheduler/weekly-checkin/run", response_model=JobRunResult)
async def run_weekly_checkin(
    scheduler: MailScheduler = Depends(get_scheduler),
    current_admin: SessionUser = Depends(get_current_admin)
):
    """
    Run the weekly check-in reminder job now.

    - Returns `skipped` when a run is already in flight
    - A failed run is reported in the result, not as an HTTP error
    """
    log_event("Weekly check-in run requested", {"admin_id": current_admin.id})
    return await scheduler.run_weekly_checkin()
