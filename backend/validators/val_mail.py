import re
from typing import Any, Optional
from fastapi import HTTPException
from backend.schemas.sch_mail import MailSettingsUpdate

class MailValidationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class MailValidator:
    _SCHEME_PREFIX = re.compile(r"^(ssl|tls)://", re.IGNORECASE)

    @staticmethod
    def clean_host(host: str) -> str:
        """Strip ssl:// and tls:// prefixes; TLS is chosen with the secure flag instead"""
        host = (host or "").strip()
        host = MailValidator._SCHEME_PREFIX.sub("", host)
        if host.startswith("//"):
            host = host[2:]
        return host

    @staticmethod
    def parse_port(port: Any) -> Optional[int]:
        """Port as a positive int, or None when missing or not a number"""
        if isinstance(port, bool):
            return None
        try:
            value = int(str(port).strip())
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    @staticmethod
    def validate_recipient(email: str) -> str:
        """Validate a single recipient address and return it trimmed"""
        email = (email or "").strip()
        if not email or "@" not in email:
            raise MailValidationError("Geçerli bir e-posta adresi giriniz")
        return email

    @staticmethod
    def validate_settings(settings: MailSettingsUpdate) -> MailSettingsUpdate:
        """Validate all rules for saving mail settings and return a normalised copy"""
        host = MailValidator.clean_host(settings.host)
        port = MailValidator.parse_port(settings.port)
        from_name = settings.from_name.strip()
        from_email = settings.from_email.strip()
        if not host or port is None or not from_name or not from_email:
            raise MailValidationError("Host, port, gönderen adı ve e-posta zorunludur")

        username = (settings.username or "").strip() or None
        reply_to = (settings.reply_to or "").strip() or None
        password = (settings.password or "").strip()

        return settings.model_copy(update={
            "host": host,
            "port": port,
            "from_name": from_name,
            "from_email": from_email,
            "username": username,
            "reply_to": reply_to,
            "password": password,
        })
