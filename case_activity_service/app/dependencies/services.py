from fastapi import Request

from case_activity_service.app.bootstrap import ServiceRegistry
from case_activity_service.app.service.cases.state_machine import CaseStateMachine
from case_activity_service.app.service.delivery.template_service import TemplateService
from case_activity_service.app.service.interfaces.notification_store import AbstractNotificationStore
from case_activity_service.app.service.jobs.scheduler import JobScheduler


def get_services(request: Request) -> ServiceRegistry:
    """
    FastAPI dependency provider for the shared ServiceRegistry.
    Retrieves it from the application state (`request.app.state.services`).
    """
    return request.app.state.services

def get_state_machine(request: Request) -> CaseStateMachine:
    return get_services(request).state_machine

def get_notification_store(request: Request) -> AbstractNotificationStore:
    return get_services(request).notifications

def get_template_service(request: Request) -> TemplateService:
    return get_services(request).templates

def get_scheduler(request: Request) -> JobScheduler:
    return get_services(request).scheduler
