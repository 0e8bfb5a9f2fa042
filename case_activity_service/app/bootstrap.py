# Builds the object graph shared by the API and the scheduled jobs
import logging

import httpx
from motor.motor_asyncio import AsyncIOMotorDatabase

from case_activity_service.app.config import settings
from case_activity_service.app.service.cases.state_machine import CaseStateMachine
from case_activity_service.app.service.delivery.engine import DeliveryEngine, RetryPolicy
from case_activity_service.app.service.delivery.template_service import TemplateService
from case_activity_service.app.service.jobs.digest_builder import DigestBuilder
from case_activity_service.app.service.jobs.inactivity_scanner import InactivityScanner
from case_activity_service.app.service.jobs.scheduler import INACTIVITY_SCAN_JOB, WEEKLY_DIGEST_JOB, JobScheduler
from case_activity_service.app.service.notifications.dispatcher import NotificationDispatcher
from case_activity_service.app.service.notifications.pipeline import NotificationPipeline
from case_activity_service.infrastructure.database.case_store import MongoCaseEventRepository, MongoCaseRepository
from case_activity_service.infrastructure.database.notification_store import MongoNotificationStore
from case_activity_service.infrastructure.database.outbound_email_log import MongoOutboundEmailLog
from case_activity_service.infrastructure.database.template_store import MongoTemplateStore
from case_activity_service.infrastructure.database.user_directory import MongoUserDirectory
from case_activity_service.infrastructure.mail.factory import get_mail_transport

logger = logging.getLogger(__name__)


class ServiceRegistry:
    def __init__(self, db: AsyncIOMotorDatabase, http_client: httpx.AsyncClient):
        self.cases = MongoCaseRepository(db, use_transactions=settings.MONGO_USE_TRANSACTIONS)
        self.events = MongoCaseEventRepository(db)
        self.directory = MongoUserDirectory(db)
        self.notifications = MongoNotificationStore(db)
        self.templates = TemplateService(MongoTemplateStore(db))

        self.delivery = DeliveryEngine(
            transport=get_mail_transport(http_client),
            retry_policy=RetryPolicy.from_settings(),
            outbound_log=MongoOutboundEmailLog(db),
        )
        self.pipeline = NotificationPipeline(
            cases=self.cases,
            directory=self.directory,
            store=self.notifications,
            delivery=self.delivery,
            templates=self.templates,
            frontend_url=settings.FRONTEND_URL,
            firm_name=settings.FIRM_NAME,
        )
        self.dispatcher = NotificationDispatcher(
            self.pipeline,
            workers=settings.NOTIFICATION_WORKERS,
            queue_size=settings.NOTIFICATION_QUEUE_SIZE,
        )
        self.state_machine = CaseStateMachine(self.cases, self.events, self.directory, self.dispatcher)

        self.inactivity_scanner = InactivityScanner(
            cases=self.cases,
            events=self.events,
            directory=self.directory,
            pipeline=self.pipeline,
            threshold_days=settings.INACTIVITY_DAYS_THRESHOLD,
            throttle_days=settings.NOTIFICATION_THROTTLE_DAYS,
        )
        self.digest_builder = DigestBuilder(
            cases=self.cases,
            directory=self.directory,
            delivery=self.delivery,
            templates=self.templates,
            frontend_url=settings.FRONTEND_URL,
            firm_name=settings.FIRM_NAME,
        )
        self.scheduler = JobScheduler(timezone=settings.SCHEDULER_TIMEZONE)
        self.scheduler.register(INACTIVITY_SCAN_JOB, settings.INACTIVITY_SCAN_SCHEDULE, self.inactivity_scanner.run)
        self.scheduler.register(WEEKLY_DIGEST_JOB, settings.WEEKLY_DIGEST_SCHEDULE, self.digest_builder.run)
        logger.info("Service registry built.")

    async def start(self):
        await self.dispatcher.start()
        if settings.SCHEDULER_ENABLED:
            await self.scheduler.start()
        else:
            logger.info("Scheduler disabled by configuration. Jobs can still be triggered manually.")

    async def stop(self):
        await self.scheduler.stop()
        await self.dispatcher.stop()
