"""
Outbound email delivery with bounded retry and exponential backoff.

The engine never raises into its caller: every outcome, including a missing
transport configuration, is reported as a DeliveryReport (or a bool from send()).
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from case_activity_service.app.config import settings
from case_activity_service.app.models import DeliveryOutcome, OutboundEmailDB
from case_activity_service.app.observability import (
    tracer, email_delivery_attempts_counter, email_delivery_outcomes_counter
)
from case_activity_service.app.service.interfaces.mail_transport import MailSendResult, MailTransport
from case_activity_service.app.service.interfaces.outbound_email_log import AbstractOutboundEmailLog
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    jitter_ms: int = 1000

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.EMAIL_RETRY_MAX_RETRIES,
            base_delay_ms=settings.EMAIL_RETRY_BASE_DELAY_MS,
            max_delay_ms=settings.EMAIL_RETRY_MAX_DELAY_MS,
        )

    def delay_seconds(self, retry_index: int, uniform: Callable[[float, float], float] = random.uniform) -> float:
        """Delay before retry number retry_index (0-based)."""
        delay_ms = min(self.max_delay_ms, self.base_delay_ms * (2 ** retry_index) + uniform(0, self.jitter_ms))
        return delay_ms / 1000.0


class DeliveryReport(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    outcome: DeliveryOutcome
    attempts: int
    error: Optional[str] = None
    message_id: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome == DeliveryOutcome.SENT


def is_retryable(result: MailSendResult) -> bool:
    if result.connection_error:
        return True
    if result.status_code is None:
        return False
    return result.status_code == 429 or result.status_code >= 500


class DeliveryEngine:
    def __init__(
        self,
        transport: MailTransport,
        retry_policy: Optional[RetryPolicy] = None,
        outbound_log: Optional[AbstractOutboundEmailLog] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ):
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy()
        self.outbound_log = outbound_log
        self._sleep = sleep
        self._uniform = uniform

    async def _attempt(self, to: str, subject: str, html: str) -> MailSendResult:
        email_delivery_attempts_counter.add(1, {"transport": self.transport.name})
        try:
            return await self.transport.send(to, subject, html)
        except (OSError, httpx.TransportError) as e:
            # Covers ConnectionError, TimeoutError and socket/DNS failures
            return MailSendResult(success=False, connection_error=True, error=f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error from mail transport '{self.transport.name}': {e}", exc_info=True)
            return MailSendResult(success=False, error=f"{type(e).__name__}: {e}")

    async def _deliver_with_retry(self, to: str, subject: str, html: str) -> DeliveryReport:
        max_attempts = self.retry_policy.max_retries + 1
        retry_index = 0
        while True:
            result = await self._attempt(to, subject, html)
            attempts = retry_index + 1
            if result.success:
                if attempts > 1:
                    logger.info(f"Email to {to} sent after {attempts} attempts.")
                return DeliveryReport(outcome=DeliveryOutcome.SENT, attempts=attempts, message_id=result.message_id)

            if not is_retryable(result):
                logger.error(f"Email to {to} failed with a non-retryable error (status {result.status_code}): {result.error}")
                return DeliveryReport(outcome=DeliveryOutcome.FAILED, attempts=attempts, error=result.error)

            if attempts >= max_attempts:
                logger.error(f"Email to {to} failed after {attempts} attempts: {result.error}")
                return DeliveryReport(outcome=DeliveryOutcome.FAILED, attempts=attempts, error=result.error)

            delay = self.retry_policy.delay_seconds(retry_index, self._uniform)
            logger.warning(
                f"Email to {to} failed (attempt {attempts}/{max_attempts}, status {result.status_code}). "
                f"Retrying in {delay:.2f}s: {result.error}"
            )
            await self._sleep(delay)
            retry_index += 1

    async def deliver(
        self,
        to: str,
        subject: str,
        html: str,
        case_id: Optional[str] = None,
        template_key: Optional[str] = None
    ) -> DeliveryReport:
        with tracer.start_as_current_span("DeliveryEngine.deliver") as span:
            span.set_attribute("email.transport", self.transport.name)
            if template_key:
                span.set_attribute("email.template_key", template_key)

            if not self.transport.is_configured():
                logger.warning(f"Mail transport '{self.transport.name}' is not configured. Skipping email to {to}: {subject}")
                report = DeliveryReport(outcome=DeliveryOutcome.NOT_CONFIGURED, attempts=0, error="Mail transport not configured")
            else:
                report = await self._deliver_with_retry(to, subject, html)
                if report.delivered:
                    logger.info(f"Email sent to {to}: {subject}")

            span.set_attribute("email.outcome", report.outcome)
            span.set_attribute("email.attempts", report.attempts)
            if report.outcome == DeliveryOutcome.FAILED:
                span.set_status(Status(StatusCode.ERROR, report.error or "delivery failed"))
            email_delivery_outcomes_counter.add(1, {"outcome": report.outcome, "transport": self.transport.name})

            await self._record(to, subject, html, report, case_id, template_key)
            return report

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        case_id: Optional[str] = None,
        template_key: Optional[str] = None
    ) -> bool:
        report = await self.deliver(to, subject, html, case_id=case_id, template_key=template_key)
        return report.delivered

    async def _record(
        self,
        to: str,
        subject: str,
        html: str,
        report: DeliveryReport,
        case_id: Optional[str],
        template_key: Optional[str]
    ) -> None:
        if self.outbound_log is None:
            return
        try:
            await self.outbound_log.record(OutboundEmailDB(
                recipient=to,
                subject=subject,
                body=html,
                outcome=report.outcome,
                attempts=report.attempts,
                case_id=case_id,
                template_key=template_key,
                error=report.error,
            ))
        except Exception as e:
            logger.error(f"Failed to record outbound email to {to}: {e}", exc_info=True)
