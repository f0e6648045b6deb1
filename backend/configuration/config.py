import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_CRON_TIMEZONE = "Europe/Istanbul"

class Config:
    # Azure CosmosDB Configuration
    COSMOSDB_ENDPOINT = os.getenv("COSMOS_DB_ENDPOINT")
    COSMOSDB_DATABASE_NAME = os.getenv("COSMOS_DB_DATABASE")
    COSMOSDB_CONTAINER_NAME = {
        "users": os.getenv("COSMOS_CONTAINERS_USERS", "users"),
        "purchases": os.getenv("COSMOS_CONTAINERS_PURCHASES", "packagePurchases"),
        "mailsettings": os.getenv("COSMOS_CONTAINERS_MAILSETTINGS", "mailSettings"),
        "adminlogs": os.getenv("COSMOS_CONTAINERS_ADMINLOGS", "adminLogs")
    }

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv("AUTH_SECRET_KEY")
    JWT_ALGORITHM = os.getenv("AUTH_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("AUTH_EXPIRATION", "30"))

    # SMTP fallback, used when no active mail setting is stored
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT") or "587")
    SMTP_SECURE = os.getenv("SMTP_SECURE") == "true"
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASS = os.getenv("SMTP_PASS")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME") or "Mehmetcan PT"
    MAIL_FROM_EMAIL = os.getenv("MAIL_FROM_EMAIL") or os.getenv("SMTP_USER") or "noreply@example.com"
    MAIL_REPLY_TO = os.getenv("MAIL_REPLY_TO") or None
    SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT", "30"))

    APP_NAME = os.getenv("APP_NAME") or "Mehmetcanpt Uzaktan Eğitim"

    # Application Insights
    APPLICATIONINSIGHTS_CONNECTION_STRING = os.getenv("APPINSIGHTS_INSTRUMENTATIONKEY")

    # Scheduler flags are read on every call so they can change between calls
    @staticmethod
    def cron_disabled() -> bool:
        return os.getenv("DISABLE_CRON") == "true"

    @staticmethod
    def cron_timezone() -> str:
        return os.getenv("CRON_TIMEZONE") or DEFAULT_CRON_TIMEZONE
