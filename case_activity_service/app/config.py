# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import Optional

class AppSettings(BaseSettings):
    # MongoDB
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "case_activity_db"
    MONGO_USE_TRANSACTIONS: bool = False # Requires a replica set

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "case-activity-api"

    DEFAULT_HTTP_TIMEOUT: float = 10.0

    # Inactivity scanning
    INACTIVITY_DAYS_THRESHOLD: int = 21
    NOTIFICATION_THROTTLE_DAYS: int = 7

    # Email retry policy
    EMAIL_RETRY_MAX_RETRIES: int = 3
    EMAIL_RETRY_BASE_DELAY_MS: int = 1000
    EMAIL_RETRY_MAX_DELAY_MS: int = 10000

    # Scheduled jobs (cron expressions)
    SCHEDULER_ENABLED: bool = True
    WEEKLY_DIGEST_SCHEDULE: str = "0 8 * * 1"
    INACTIVITY_SCAN_SCHEDULE: str = "0 9 * * *"
    SCHEDULER_TIMEZONE: str = "America/New_York"

    # Notification dispatch
    NOTIFICATION_WORKERS: int = 4
    NOTIFICATION_QUEUE_SIZE: int = 1000

    # Links and branding embedded in emails
    FRONTEND_URL: str = "http://localhost:5173"
    FIRM_NAME: str = "Law Firm Case Management"

    # Mail transport: "resend", "smtp" or "log"
    MAIL_TRANSPORT: str = "resend"
    MAIL_FROM_EMAIL: str = "onboarding@resend.dev"
    MAIL_FROM_NAME: str = "Law Firm Case Management"
    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
# Avoid logging secrets such as RESEND_API_KEY or SMTP_PASSWORD.
logger.info("Application settings module initialized.")
