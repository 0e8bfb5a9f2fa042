"""
Weekly per-lawyer digest of assigned cases, delivered by email.
"""
import datetime
import html
import logging
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from case_activity_service.app.models import CaseDB, Contact
from case_activity_service.app.models.case_db import INACTIVE_STATUSES, format_label
from case_activity_service.app.observability import tracer, scheduled_job_duration_histogram
from case_activity_service.app.service.delivery.engine import DeliveryEngine
from case_activity_service.app.service.delivery.template_service import TemplateService
from case_activity_service.app.service.interfaces.case_repository import AbstractCaseRepository
from case_activity_service.app.service.interfaces.user_directory import AbstractUserDirectory

logger = logging.getLogger(__name__)

DIGEST_TEMPLATE_KEY = "weekly_summary"
ATTENTION_IDLE_DAYS = 7
ATTENTION_LIST_LIMIT = 10
ACTIVE_LIST_LIMIT = 15


class DigestCaseItem(BaseModel):
    case_id: str
    case_number: str
    title: str
    status: str
    client_name: str
    days_since_activity: int


class LawyerDigest(BaseModel):
    lawyer: Contact
    total_cases: int = 0
    active_cases: int = 0
    new_this_week: int = 0
    closed_this_week: int = 0
    needing_attention: int = 0
    attention_cases: List[DigestCaseItem] = Field(default_factory=list)
    active_case_items: List[DigestCaseItem] = Field(default_factory=list)


class DigestReport(BaseModel):
    lawyers: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def _render_items(items: List[DigestCaseItem], show_idle: bool) -> str:
    rows = []
    for item in items:
        suffix = f"{item.days_since_activity} days idle" if show_idle else format_label(item.status)
        rows.append(
            f"<li>{html.escape(item.case_number)} - {html.escape(item.title)} "
            f"({html.escape(item.client_name)}, {suffix})</li>"
        )
    return "".join(rows)


class DigestBuilder:
    def __init__(
        self,
        cases: AbstractCaseRepository,
        directory: AbstractUserDirectory,
        delivery: DeliveryEngine,
        templates: TemplateService,
        frontend_url: str,
        firm_name: str,
        clock: Callable[[], datetime.datetime] = lambda: datetime.datetime.now(datetime.UTC)
    ):
        self.cases = cases
        self.directory = directory
        self.delivery = delivery
        self.templates = templates
        self.frontend_url = frontend_url
        self.firm_name = firm_name
        self._now = clock

    async def _client_name(self, client_id: str, cache: Dict[str, str]) -> str:
        if client_id not in cache:
            client = await self.directory.find_client_by_id(client_id)
            cache[client_id] = client.name if client else "Unknown client"
        return cache[client_id]

    async def build_for_lawyer(
        self,
        lawyer: Contact,
        now: datetime.datetime,
        client_names: Optional[Dict[str, str]] = None
    ) -> LawyerDigest:
        client_names = client_names if client_names is not None else {}
        week_ago = now - datetime.timedelta(days=7)
        cases: List[CaseDB] = await self.cases.list_for_lawyer(lawyer.profile_id)

        digest = LawyerDigest(lawyer=lawyer, total_cases=len(cases))
        active_items: List[DigestCaseItem] = []
        for case in cases:
            if case.created_at >= week_ago:
                digest.new_this_week += 1
            if case.closed_at and case.closed_at >= week_ago:
                digest.closed_this_week += 1
            if case.status in INACTIVE_STATUSES:
                continue

            digest.active_cases += 1
            active_items.append(DigestCaseItem(
                case_id=case.id,
                case_number=case.case_number,
                title=case.title,
                status=case.status,
                client_name=await self._client_name(case.client_id, client_names),
                days_since_activity=(now - case.last_activity_at).days,
            ))

        attention = [item for item in active_items if item.days_since_activity > ATTENTION_IDLE_DAYS]
        attention.sort(key=lambda item: item.days_since_activity, reverse=True)
        digest.needing_attention = len(attention)
        digest.attention_cases = attention[:ATTENTION_LIST_LIMIT]
        active_items.sort(key=lambda item: item.days_since_activity)
        digest.active_case_items = active_items[:ACTIVE_LIST_LIMIT]
        return digest

    def template_variables(self, digest: LawyerDigest, now: datetime.datetime) -> Dict[str, str]:
        return {
            "firmName": html.escape(self.firm_name),
            "portalUrl": self.frontend_url.rstrip("/") + "/lawyer/dashboard",
            "lawyerName": html.escape(digest.lawyer.name),
            "summaryDate": f"{now:%B} {now.day}, {now.year}",
            "totalCases": str(digest.total_cases),
            "activeCases": str(digest.active_cases),
            "newCasesThisWeek": str(digest.new_this_week),
            "closedCasesThisWeek": str(digest.closed_this_week),
            "casesNeedingAttention": str(digest.needing_attention),
            "attentionCasesHtml": _render_items(digest.attention_cases, show_idle=True),
            "activeCasesHtml": _render_items(digest.active_case_items, show_idle=False),
        }

    async def run(self) -> DigestReport:
        report = DigestReport()
        started = datetime.datetime.now(datetime.UTC)
        with tracer.start_as_current_span("DigestBuilder.run") as span:
            now = self._now()
            logger.info("Starting weekly summary job...")
            lawyers = await self.directory.find_active_available_lawyers()
            report.lawyers = len(lawyers)
            logger.info(f"Found {report.lawyers} active lawyers")

            client_names: Dict[str, str] = {}
            for lawyer in lawyers:
                try:
                    digest = await self.build_for_lawyer(lawyer, now, client_names)
                    if digest.total_cases == 0:
                        report.skipped += 1
                        logger.info(f"Skipping {lawyer.email} - no assigned cases")
                        continue

                    rendered = await self.templates.render_template(
                        DIGEST_TEMPLATE_KEY, self.template_variables(digest, now)
                    )
                    delivered = await self.delivery.send(
                        lawyer.email, rendered.subject, rendered.html, template_key=DIGEST_TEMPLATE_KEY
                    )
                    if delivered:
                        report.sent += 1
                        logger.info(f"Weekly summary sent to {lawyer.email}")
                    else:
                        report.failed += 1
                        logger.warning(f"Weekly summary to {lawyer.email} was not delivered")
                except Exception as e:
                    report.failed += 1
                    logger.error(f"Failed to send weekly summary to {lawyer.email}: {e}", exc_info=True)

            span.set_attribute("digest.sent", report.sent)
            span.set_attribute("digest.failed", report.failed)
            logger.info(f"Weekly summary job completed: {report.sent} sent, {report.skipped} skipped, {report.failed} failed")

        elapsed = (datetime.datetime.now(datetime.UTC) - started).total_seconds()
        scheduled_job_duration_histogram.record(elapsed, {"job": "weekly_digest"})
        return report
