"""
Daily inactivity scan.

A case is nudged when it is open, has been idle for more than the threshold and
has not been nudged within the throttle window. Each case is handled on its own:
a failure is logged and counted and the scan moves on.
"""
import datetime
import logging
from typing import Callable

from pydantic import BaseModel

from case_activity_service.app.models import CaseDB, CaseEventType
from case_activity_service.app.models.case_db import INACTIVE_STATUSES
from case_activity_service.app.observability import tracer, scheduled_job_duration_histogram
from case_activity_service.app.service.exceptions import NotFoundError, NotificationDeliveryError
from case_activity_service.app.service.interfaces.case_repository import (
    AbstractCaseRepository, AbstractCaseEventRepository
)
from case_activity_service.app.service.interfaces.user_directory import AbstractUserDirectory
from case_activity_service.app.service.notifications.pipeline import NotificationPipeline, NotificationRequest
from case_activity_service.app.service.notifications.router import ActivityType

logger = logging.getLogger(__name__)


class ScanReport(BaseModel):
    selected: int = 0
    notified: int = 0
    failed: int = 0


def is_inactivity_candidate(
    case: CaseDB,
    threshold_days: int,
    throttle_days: int,
    now: datetime.datetime
) -> bool:
    if case.status in INACTIVE_STATUSES:
        return False
    if now - case.last_activity_at <= datetime.timedelta(days=threshold_days):
        return False
    if case.last_inactivity_notification is None:
        return True
    return now - case.last_inactivity_notification > datetime.timedelta(days=throttle_days)


class InactivityScanner:
    def __init__(
        self,
        cases: AbstractCaseRepository,
        events: AbstractCaseEventRepository,
        directory: AbstractUserDirectory,
        pipeline: NotificationPipeline,
        threshold_days: int = 21,
        throttle_days: int = 7,
        clock: Callable[[], datetime.datetime] = lambda: datetime.datetime.now(datetime.UTC)
    ):
        self.cases = cases
        self.events = events
        self.directory = directory
        self.pipeline = pipeline
        self.threshold_days = threshold_days
        self.throttle_days = throttle_days
        self._now = clock

    async def run(self) -> ScanReport:
        report = ScanReport()
        started = datetime.datetime.now(datetime.UTC)
        with tracer.start_as_current_span("InactivityScanner.run") as span:
            now = self._now()
            logger.info(f"Starting inactivity scan (threshold: {self.threshold_days} days, throttle: {self.throttle_days} days)...")
            candidates = await self.cases.list_inactive(self.threshold_days, self.throttle_days, now)
            report.selected = len(candidates)
            logger.info(f"Found {report.selected} inactive cases to notify.")

            for case in candidates:
                try:
                    await self._remind(case, now)
                    report.notified += 1
                except Exception as e:
                    report.failed += 1
                    logger.error(f"Failed to process inactivity reminder for case {case.case_number}: {e}", exc_info=True)

            span.set_attribute("scan.selected", report.selected)
            span.set_attribute("scan.notified", report.notified)
            span.set_attribute("scan.failed", report.failed)
            logger.info(f"Inactivity scan completed: {report.notified} succeeded, {report.failed} failed.")

        elapsed = (datetime.datetime.now(datetime.UTC) - started).total_seconds()
        scheduled_job_duration_histogram.record(elapsed, {"job": "inactivity_scan"})
        return report

    async def _remind(self, case: CaseDB, now: datetime.datetime) -> None:
        client = await self.directory.find_client_by_id(case.client_id)
        if client is None:
            raise NotFoundError("Client", case.client_id)

        days_inactive = (now - case.last_activity_at).days
        summary = await self.pipeline.dispatch(NotificationRequest(
            activity=ActivityType.INACTIVITY_DETECTED,
            case_id=case.id,
            details={"days_inactive": days_inactive},
        ))
        if summary.in_app_created == 0:
            raise NotificationDeliveryError(case.id, ActivityType.INACTIVITY_DETECTED.value)

        await self.cases.update(case.id, {"last_inactivity_notification": now})
        await self.events.append(
            case.id,
            CaseEventType.DEADLINE_REMINDER,
            f"Inactivity reminder sent to client after {days_inactive} days without activity",
            metadata={
                "days_inactive": days_inactive,
                "notification_type": "inactivity_reminder",
                "client_email": client.email,
            },
        )
        logger.info(f"Sent inactivity reminder for case {case.case_number} ({days_inactive} days inactive).")
