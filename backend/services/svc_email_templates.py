from enum import Enum
from pathlib import Path
from datetime import datetime, timedelta
from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel
from backend.configuration.config import Config

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"

TURKISH_MONTHS = [
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık"
]

class ProgramType(str, Enum):
    WORKOUT = "Antrenman"
    DIET = "Diyet"
    SUPPLEMENT = "Supplement"

class EmailTemplate(BaseModel):
    subject: str
    html: str
    text: Optional[str] = None

def format_date_tr(value: datetime) -> str:
    """19 Ekim 2026"""
    return f"{value.day:02d} {TURKISH_MONTHS[value.month - 1]} {value.year}"

def format_datetime_tr(value: datetime) -> str:
    """19.10.2026 09:00:00"""
    return value.strftime("%d.%m.%Y %H:%M:%S")

def format_long_datetime_tr(value: datetime) -> str:
    """19 Ekim 2026 09:00"""
    return f"{value.day} {TURKISH_MONTHS[value.month - 1]} {value.year} {value:%H:%M}"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

class EmailTemplates:
    @staticmethod
    def _render(template: str, title: Optional[str], subject: str, with_text: bool = False, **context) -> EmailTemplate:
        context["app_name"] = Config.APP_NAME
        context["title"] = title
        html = env.get_template(f"{template}.html").render(**context)
        text = env.get_template(f"{template}.txt").render(**context) if with_text else None
        return EmailTemplate(subject=f"{Config.APP_NAME} | {subject}", html=html, text=text)

    @staticmethod
    def verification_email(name: Optional[str], verification_url: str) -> EmailTemplate:
        return EmailTemplates._render(
            "verification",
            "Hesabınızı doğrulayın",
            "E-posta Doğrulaması",
            with_text=True,
            greeting=name or "Merhaba",
            verification_url=verification_url,
        )

    @staticmethod
    def login_notification_email(name: Optional[str], ip: Optional[str], date: datetime) -> EmailTemplate:
        return EmailTemplates._render(
            "login_notification",
            "Hesabınıza giriş yapıldı",
            "Yeni oturum açma bildirimi",
            name=name,
            ip=ip,
            formatted_date=format_datetime_tr(date),
        )

    @staticmethod
    def support_ticket_created_email(name: Optional[str], subject: str) -> EmailTemplate:
        return EmailTemplates._render(
            "support_ticket",
            "Yeni destek talebi",
            f"Yeni destek talebi: {subject}",
            name=name,
            ticket_subject=subject,
        )

    @staticmethod
    def question_answered_email(name: Optional[str], question: str, answer: str) -> EmailTemplate:
        return EmailTemplates._render(
            "question_answered",
            "Sorunuz yanıtlandı",
            "Sorunuz yanıtlandı",
            name=name,
            question=question,
            answer=answer,
        )

    @staticmethod
    def program_assigned_email(name: Optional[str], program_type: ProgramType, trainer_name: Optional[str] = None) -> EmailTemplate:
        program_type = ProgramType(program_type).value
        return EmailTemplates._render(
            "program_assigned",
            f"{program_type} programınız hazır",
            f"Yeni {program_type} programınız hazır",
            name=name,
            program_type=program_type,
            trainer_name=trainer_name,
        )

    @staticmethod
    def package_assigned_email(
        name: Optional[str],
        package_name: str,
        duration_in_days: int,
        price: float,
        currency: str,
        starts_at: datetime,
        trainer_name: Optional[str] = None,
    ) -> EmailTemplate:
        ends_at = starts_at + timedelta(days=max(duration_in_days, 0))
        return EmailTemplates._render(
            "package_assigned",
            "Yeni paketiniz hazır",
            f"{package_name} paketiniz aktive edildi",
            with_text=True,
            name=name,
            package_name=package_name,
            duration_in_days=duration_in_days,
            price=price,
            currency=currency,
            trainer_name=trainer_name,
            start_date=format_date_tr(starts_at),
            end_date=format_date_tr(ends_at),
        )

    @staticmethod
    def weekly_checkin_email(name: Optional[str]) -> EmailTemplate:
        return EmailTemplates._render(
            "weekly_checkin",
            "Haftalık kontrol zamanı",
            "Haftalık kontrol hatırlatması",
            name=name,
        )

    @staticmethod
    def smtp_test_email(sent_at: datetime) -> EmailTemplate:
        template = EmailTemplates._render(
            "smtp_test",
            None,
            "",
            with_text=True,
            sent_at=format_long_datetime_tr(sent_at),
        )
        template.subject = "Test E-postası - SMTP Ayarları"
        return template
