from azure.cosmos import ContainerProxy
from backend.models.mod_mail import MailSetting
from backend.schemas.sch_mail import MailSettingsUpdate, MailSettingView, PASSWORD_MASK
from backend.configuration.monitor import log_event, log_exception, start_span
from typing import Optional
from datetime import datetime, timezone
import uuid

class MailSettingsService:
    @staticmethod
    def get_active_setting(db: ContainerProxy) -> Optional[MailSetting]:
        """Return the most recently updated active mail setting, if any"""
        try:
            with start_span("get_active_mail_setting"):
                query = "SELECT * FROM c WHERE c.is_active = true ORDER BY c.updated_at DESC"
                items = list(db.query_items(query=query, enable_cross_partition_query=True))
                if not items:
                    return None
                # Cosmos system fields (_rid, _etag, ...) are ignored by the model
                return MailSetting(**items[0])
        except Exception as e:
            log_exception(e, {"operation": "get_active_mail_setting"})
            raise

    @staticmethod
    def to_view(setting: MailSetting) -> MailSettingView:
        """Public view of a setting; the stored password never leaves the service"""
        return MailSettingView(
            host=setting.host,
            port=setting.port,
            secure=setting.secure,
            username=setting.username,
            password=PASSWORD_MASK if setting.password else None,
            from_name=setting.from_name,
            from_email=setting.from_email,
            reply_to=setting.reply_to,
            last_tested=setting.last_tested,
            updated_at=setting.updated_at,
        )

    @staticmethod
    def save_setting(db: ContainerProxy, settings: MailSettingsUpdate) -> MailSetting:
        """
        Store a new active mail setting.

        Expects settings already normalised by MailValidator. An empty or masked
        password keeps the password of the current active setting.
        """
        try:
            with start_span("save_mail_setting", attributes={"host": settings.host}):
                log_event("Save mail setting started", {
                    "host": settings.host,
                    "port": settings.port,
                    "secure": settings.secure,
                    "from_email": settings.from_email
                })

                password = settings.password
                if not password or password == PASSWORD_MASK:
                    latest = MailSettingsService.get_active_setting(db)
                    password = latest.password if latest else None

                setting = MailSetting(
                    id=str(uuid.uuid4()),
                    host=settings.host,
                    port=settings.port,
                    secure=settings.secure,
                    username=settings.username,
                    password=password,
                    from_name=settings.from_name,
                    from_email=settings.from_email,
                    reply_to=settings.reply_to,
                    is_active=True,
                    updated_at=datetime.now(timezone.utc),
                )
                db.create_item(body=setting.model_dump(mode="json"))

                log_event("Mail setting saved", {"setting_id": setting.id})
                return setting
        except Exception as e:
            log_exception(e, {"operation": "save_mail_setting", "host": settings.host})
            raise

    @staticmethod
    def mark_tested(db: ContainerProxy, setting: MailSetting, tested_at: datetime) -> MailSetting:
        try:
            setting.last_tested = tested_at
            db.upsert_item(body=setting.model_dump(mode="json"))
            log_event("Mail setting connection tested", {"setting_id": setting.id})
            return setting
        except Exception as e:
            log_exception(e, {"operation": "mark_mail_setting_tested", "setting_id": setting.id})
            raise
