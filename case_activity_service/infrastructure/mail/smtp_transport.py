"""
SMTP mail transport.

smtplib is blocking, so each send runs in a worker thread. SMTP reply codes are
mapped onto HTTP-style status codes so the delivery retry policy stays the same
whichever transport is configured: transient 4xx replies become 503 and
permanent 5xx replies become 422.
"""
import asyncio
import logging
import smtplib
import ssl
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from case_activity_service.app.service.interfaces.mail_transport import MailSendResult, MailTransport

logger = logging.getLogger(__name__)

TRANSIENT_STATUS = 503
PERMANENT_STATUS = 422


class SmtpMailTransport(MailTransport):
    def __init__(
        self,
        host: Optional[str],
        port: int,
        from_email: str,
        from_name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0
    ):
        self.host = host
        self.port = port
        self.from_email = from_email
        self.from_name = from_name
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "smtp"

    def is_configured(self) -> bool:
        return bool(self.host)

    def _build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.from_name, self.from_email))
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _send_blocking(self, to: str, subject: str, html: str) -> None:
        msg = self._build_message(to, subject, html)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.from_email, [to], msg.as_string())

    async def send(self, to: str, subject: str, html: str) -> MailSendResult:
        try:
            await asyncio.to_thread(self._send_blocking, to, subject, html)
        except smtplib.SMTPRecipientsRefused as e:
            logger.warning(f"SMTP recipients refused for {to}: {e.recipients}")
            return MailSendResult(success=False, status_code=PERMANENT_STATUS, error=f"Recipient refused: {to}")
        except smtplib.SMTPResponseException as e:
            status = TRANSIENT_STATUS if 400 <= e.smtp_code < 500 else PERMANENT_STATUS
            logger.warning(f"SMTP server replied {e.smtp_code} for {to}: {e.smtp_error!r}")
            return MailSendResult(success=False, status_code=status, error=f"SMTP {e.smtp_code}: {e.smtp_error!r}")
        except smtplib.SMTPServerDisconnected as e:
            logger.warning(f"SMTP server disconnected while sending to {to}: {e}")
            return MailSendResult(success=False, connection_error=True, error=f"{type(e).__name__}: {e}")
        except smtplib.SMTPException as e:
            # SMTPException subclasses OSError, so it must be handled before the socket errors below
            logger.warning(f"SMTP error sending to {to}: {e}")
            return MailSendResult(success=False, status_code=PERMANENT_STATUS, error=f"{type(e).__name__}: {e}")
        except OSError as e:
            logger.warning(f"SMTP connection error sending to {to}: {e}")
            return MailSendResult(success=False, connection_error=True, error=f"{type(e).__name__}: {e}")

        logger.debug(f"SMTP: email sent to {to}")
        return MailSendResult(success=True, message_id=f"smtp-{uuid.uuid4()}")
