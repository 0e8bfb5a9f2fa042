from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class MailSendResult(BaseModel):
    """Outcome of a single send attempt, in terms the retry policy understands."""
    success: bool
    status_code: Optional[int] = None # Provider HTTP status, when there is one
    connection_error: bool = False # Reset, timeout, DNS failure
    error: Optional[str] = None
    message_id: Optional[str] = None


class MailTransport(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """False when credentials are missing. Delivery is then skipped without attempts."""
        pass

    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> MailSendResult:
        pass
