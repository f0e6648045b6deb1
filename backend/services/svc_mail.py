import asyncio
import smtplib
import socket
import uuid
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from azure.cosmos import ContainerProxy
from backend.configuration.config import Config
from backend.configuration.database import get_container
from backend.configuration.monitor import log_event, log_exception, start_span
from backend.models.mod_mail import (
    DeliveryInfo,
    LogLevel,
    MailConfig,
    MailLog,
    MailMessage,
    MailMeta,
)
from backend.services.svc_email_templates import EmailTemplate, EmailTemplates, ProgramType
from backend.services.svc_mail_settings import MailSettingsService
from typing import Optional, List, Dict, Any, Union
from datetime import datetime, timezone

MAIL_DEFAULT_SOURCE = "mail"
MAIL_DEFAULT_TYPE = "E-posta"
MAIL_SUCCESS_LEVEL = LogLevel.AUDIT

class MailConfigurationError(Exception):
    """Raised when neither a stored mail setting nor SMTP_HOST is available"""

def env_mail_config() -> Optional[MailConfig]:
    """Mail configuration from environment variables, or None without SMTP_HOST"""
    if not Config.SMTP_HOST:
        return None
    has_auth = bool(Config.SMTP_USER and Config.SMTP_PASS)
    return MailConfig(
        host=Config.SMTP_HOST,
        port=Config.SMTP_PORT,
        secure=Config.SMTP_SECURE,
        username=Config.SMTP_USER if has_auth else None,
        password=Config.SMTP_PASS if has_auth else None,
        from_name=Config.MAIL_FROM_NAME,
        from_email=Config.MAIL_FROM_EMAIL,
        reply_to=Config.MAIL_REPLY_TO,
    )

def merge_meta(defaults: MailMeta, meta: Optional[MailMeta] = None) -> MailMeta:
    """Caller meta wins over defaults; context dictionaries are merged key by key"""
    if meta is None:
        return defaults
    merged = defaults.model_copy(update=meta.model_dump(exclude_unset=True, exclude={"context"}))
    merged.context = {**defaults.context, **meta.context}
    return merged

def _open_connection(config: MailConfig) -> smtplib.SMTP:
    if config.secure:
        server = smtplib.SMTP_SSL(config.host, config.port, timeout=Config.SMTP_TIMEOUT_SECONDS)
    else:
        server = smtplib.SMTP(config.host, config.port, timeout=Config.SMTP_TIMEOUT_SECONDS)
        server.ehlo()
        if server.has_extn("starttls"):
            server.starttls()
            server.ehlo()
    if config.username and config.password:
        server.login(config.username, config.password)
    return server

def _deliver(config: MailConfig, message: EmailMessage, recipients: List[str]) -> DeliveryInfo:
    with _open_connection(config) as server:
        refused = server.send_message(message, to_addrs=recipients)
    return DeliveryInfo(
        message_id=message["Message-ID"],
        accepted=[r for r in recipients if r not in refused],
        rejected=list(refused),
    )

def _verify(config: MailConfig) -> None:
    with _open_connection(config) as server:
        server.noop()

class MailService:
    """Sends notification mails over SMTP and records every attempt in the admin log."""

    def __init__(self, settings_db: ContainerProxy, logs_db: ContainerProxy):
        self.settings_db = settings_db
        self.logs_db = logs_db

    def load_mail_config(self) -> Optional[MailConfig]:
        setting = MailSettingsService.get_active_setting(self.settings_db)
        if setting:
            has_auth = bool(setting.username and setting.password)
            return MailConfig(
                host=setting.host,
                port=setting.port,
                secure=setting.secure,
                username=setting.username if has_auth else None,
                password=setting.password if has_auth else None,
                from_name=setting.from_name,
                from_email=setting.from_email,
                reply_to=setting.reply_to,
            )
        return env_mail_config()

    @staticmethod
    def build_message(config: MailConfig, mail: MailMessage) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((config.from_name, config.from_email))
        message["To"] = ", ".join(mail.recipients)
        message["Subject"] = mail.subject
        message["Message-ID"] = make_msgid(domain=config.from_email.rpartition("@")[2] or None)
        if config.reply_to:
            message["Reply-To"] = config.reply_to
        if mail.text:
            message.set_content(mail.text)
            message.add_alternative(mail.html, subtype="html")
        else:
            message.set_content(mail.html, subtype="html")
        return message

    async def send_mail(self, mail: MailMessage) -> DeliveryInfo:
        """Send a mail, raising on configuration or SMTP errors"""
        config = await asyncio.to_thread(self.load_mail_config)
        if not config:
            raise MailConfigurationError("SMTP yapılandırması bulunamadı")
        message = self.build_message(config, mail)
        with start_span("send_mail", attributes={"host": config.host, "subject": mail.subject}):
            return await asyncio.to_thread(_deliver, config, message, mail.recipients)

    def record_mail_log(
        self,
        level: LogLevel,
        message: str,
        actor_id: Optional[str] = None,
        actor_email: Optional[str] = None,
        source: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write an admin log entry; a failed write is logged and never raised"""
        try:
            entry = MailLog(
                id=str(uuid.uuid4()),
                level=level,
                message=message,
                actor_id=actor_id,
                actor_email=actor_email,
                source=source or MAIL_DEFAULT_SOURCE,
                context=context or {},
                created_at=datetime.now(timezone.utc),
            )
            self.logs_db.create_item(body=entry.model_dump(mode="json"))
        except Exception as e:
            log_exception(e, {"operation": "record_mail_log", "level": level}, message="Mail log yazılamadı:")

    async def safe_send(self, mail: MailMessage, meta: Optional[MailMeta] = None) -> Optional[DeliveryInfo]:
        """
        Send a mail and record the outcome in the admin log.

        Delivery errors are logged and recorded, never raised, so one failed
        recipient cannot stop the caller. Returns the delivery info or None.
        """
        meta = meta or MailMeta()
        label = meta.type or MAIL_DEFAULT_TYPE
        context_base = {
            **meta.context,
            "recipients": mail.recipients,
            "subject": mail.subject,
        }

        try:
            info = await self.send_mail(mail)
            await asyncio.to_thread(
                self.record_mail_log,
                level=meta.level or MAIL_SUCCESS_LEVEL,
                message=f"{label} bildirimi gönderildi",
                actor_id=meta.actor_id,
                actor_email=meta.actor_email,
                source=meta.source,
                context={**context_base, "delivery": info.model_dump()},
            )
            log_event("Mail sent", {"type": label, "recipients": len(mail.recipients)})
            return info
        except Exception as e:
            log_exception(e, {"operation": "safe_send", "type": label}, message="Mail gönderilemedi:")
            await asyncio.to_thread(
                self.record_mail_log,
                level=LogLevel.ERROR,
                message=f"{label} bildirimi gönderilemedi",
                actor_id=meta.actor_id,
                actor_email=meta.actor_email,
                source=meta.source,
                context={**context_base, "error": {"name": type(e).__name__, "message": str(e)}},
            )
            return None

    async def _send_template(
        self,
        to: Union[str, List[str]],
        template: EmailTemplate,
        defaults: MailMeta,
        meta: Optional[MailMeta],
    ) -> Optional[DeliveryInfo]:
        mail = MailMessage(to=to, subject=template.subject, html=template.html, text=template.text)
        return await self.safe_send(mail, merge_meta(defaults, meta))

    async def send_verification_email(self, to: str, name: Optional[str], verification_url: str, meta: Optional[MailMeta] = None):
        return await self._send_template(
            to,
            EmailTemplates.verification_email(name, verification_url),
            MailMeta(type="Kayıt doğrulaması", source="auth", context={"verification_url": verification_url}),
            meta,
        )

    async def send_login_notification_email(self, to: str, name: Optional[str], ip: Optional[str] = None, meta: Optional[MailMeta] = None):
        return await self._send_template(
            to,
            EmailTemplates.login_notification_email(name, ip, datetime.now()),
            MailMeta(type="Giriş bildirimi", source="auth", context={"ip": ip}),
            meta,
        )

    async def send_support_ticket_notification(self, to: Union[str, List[str]], name: Optional[str], subject: str, meta: Optional[MailMeta] = None):
        return await self._send_template(
            to,
            EmailTemplates.support_ticket_created_email(name, subject),
            MailMeta(type="Destek talebi bildirimi", source="support", context={"subject": subject}),
            meta,
        )

    async def send_question_answered_email(self, to: str, name: Optional[str], question: str, answer: str, meta: Optional[MailMeta] = None):
        return await self._send_template(
            to,
            EmailTemplates.question_answered_email(name, question, answer),
            MailMeta(type="Soru yanıt bildirimi", source="support", context={"question": question}),
            meta,
        )

    async def send_program_assigned_email(
        self,
        to: str,
        name: Optional[str],
        program_type: ProgramType,
        trainer_name: Optional[str] = None,
        meta: Optional[MailMeta] = None,
    ):
        program_type = ProgramType(program_type)
        return await self._send_template(
            to,
            EmailTemplates.program_assigned_email(name, program_type, trainer_name),
            MailMeta(
                type=f"{program_type.value} program bildirimi",
                source="trainer",
                context={"program_type": program_type.value, "trainer_name": trainer_name},
            ),
            meta,
        )

    async def send_weekly_checkin_email(self, to: str, name: Optional[str], meta: Optional[MailMeta] = None):
        return await self._send_template(
            to,
            EmailTemplates.weekly_checkin_email(name),
            MailMeta(type="Haftalık takip hatırlatması", source="scheduler"),
            meta,
        )

    async def send_package_assigned_email(
        self,
        to: str,
        name: Optional[str],
        package_name: str,
        duration_in_days: int,
        price: float,
        currency: str,
        starts_at: datetime,
        trainer_name: Optional[str] = None,
        meta: Optional[MailMeta] = None,
    ):
        return await self._send_template(
            to,
            EmailTemplates.package_assigned_email(
                name, package_name, duration_in_days, price, currency, starts_at, trainer_name
            ),
            MailMeta(
                type="Paket ataması",
                source="subscription",
                context={
                    "package_name": package_name,
                    "duration_in_days": duration_in_days,
                    "price": price,
                    "currency": currency,
                    "starts_at": starts_at.isoformat(),
                },
            ),
            meta,
        )

    async def verify_connection(self, config: Optional[MailConfig] = None) -> None:
        """Connect (and log in, when configured) to the SMTP server; raises on failure"""
        config = config or await asyncio.to_thread(self.load_mail_config)
        if not config:
            raise MailConfigurationError("SMTP yapılandırması bulunamadı")
        await asyncio.to_thread(_verify, config)

    async def test_mail_connection(self, config: Optional[MailConfig] = None) -> bool:
        try:
            await self.verify_connection(config)
            return True
        except Exception as e:
            log_exception(e, {"operation": "test_mail_connection"}, message="SMTP doğrulama hatası:")
            return False

def describe_smtp_error(error: Exception) -> str:
    """User-facing explanation of a failed SMTP connection"""
    if isinstance(error, MailConfigurationError):
        return str(error)
    if isinstance(error, smtplib.SMTPAuthenticationError):
        return "Kullanıcı adı veya şifre hatalı. Lütfen SMTP kimlik bilgilerinizi kontrol edin."
    if isinstance(error, socket.gaierror):
        return "SMTP host adresi bulunamadı. Host adresini kontrol edin."
    if isinstance(error, (TimeoutError, ConnectionRefusedError, smtplib.SMTPConnectError)):
        return "SMTP sunucusuna bağlanılamadı. Host ve port bilgilerini kontrol edin."
    return str(error)

def get_mail_service() -> MailService:
    return MailService(get_container("mailsettings"), get_container("adminlogs"))
