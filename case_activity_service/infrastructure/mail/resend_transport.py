# Mail transport backed by the Resend HTTP API
import logging
from typing import Optional

import httpx

from case_activity_service.app.service.interfaces.mail_transport import MailSendResult, MailTransport

logger = logging.getLogger(__name__)


class ResendMailTransport(MailTransport):
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str],
        api_url: str,
        from_email: str,
        from_name: str
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.api_url = api_url
        self.from_email = from_email
        self.from_name = from_name

    @property
    def name(self) -> str:
        return "resend"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, to: str, subject: str, html: str) -> MailSendResult:
        payload = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = await self.http_client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
            message_id = response.json().get("id")
            logger.debug(f"Resend accepted email to {to} (id: {message_id})")
            return MailSendResult(success=True, status_code=response.status_code, message_id=message_id)
        except httpx.HTTPStatusError as e:
            logger.warning(f"Resend rejected email to {to}: {e.response.status_code} - {e.response.text}")
            return MailSendResult(
                success=False,
                status_code=e.response.status_code,
                error=f"HTTP {e.response.status_code}: {e.response.text}"
            )
        except httpx.RequestError as e:
            logger.warning(f"Request error calling Resend for {to}: {e}")
            return MailSendResult(success=False, connection_error=True, error=f"{type(e).__name__}: {e}")
