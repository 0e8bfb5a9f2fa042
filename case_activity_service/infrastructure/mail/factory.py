import logging

import httpx

from case_activity_service.app.config import settings
from case_activity_service.app.service.exceptions import ConfigurationError
from case_activity_service.app.service.interfaces.mail_transport import MailTransport
from case_activity_service.infrastructure.mail.logging_transport import LoggingMailTransport
from case_activity_service.infrastructure.mail.resend_transport import ResendMailTransport
from case_activity_service.infrastructure.mail.smtp_transport import SmtpMailTransport

logger = logging.getLogger(__name__)


def get_mail_transport(http_client: httpx.AsyncClient) -> MailTransport:
    transport_name = settings.MAIL_TRANSPORT.lower()
    if transport_name == "resend":
        transport = ResendMailTransport(
            http_client=http_client,
            api_key=settings.RESEND_API_KEY,
            api_url=settings.RESEND_API_URL,
            from_email=settings.MAIL_FROM_EMAIL,
            from_name=settings.MAIL_FROM_NAME,
        )
    elif transport_name == "smtp":
        transport = SmtpMailTransport(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            from_email=settings.MAIL_FROM_EMAIL,
            from_name=settings.MAIL_FROM_NAME,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.DEFAULT_HTTP_TIMEOUT,
        )
    elif transport_name == "log":
        transport = LoggingMailTransport()
    else:
        raise ConfigurationError(f"Unknown MAIL_TRANSPORT '{settings.MAIL_TRANSPORT}'. Expected resend, smtp or log.")

    if not transport.is_configured():
        logger.warning(f"Mail transport '{transport.name}' selected but not configured. Emails will be skipped.")
    else:
        logger.info(f"Mail transport '{transport.name}' configured.")
    return transport
