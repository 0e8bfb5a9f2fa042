import logging
import uuid

from case_activity_service.app.service.interfaces.mail_transport import MailSendResult, MailTransport

logger = logging.getLogger(__name__)


class LoggingMailTransport(MailTransport):
    """Development transport: logs emails instead of sending them."""

    @property
    def name(self) -> str:
        return "log"

    def is_configured(self) -> bool:
        return True

    async def send(self, to: str, subject: str, html: str) -> MailSendResult:
        logger.info(f"[LOG TRANSPORT] Would send email to {to}: {subject}")
        return MailSendResult(success=True, message_id=f"log-{uuid.uuid4().hex}")
