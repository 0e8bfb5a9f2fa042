import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from case_activity_service.app.models import EmailTemplateDB
from case_activity_service.app.service.delivery.templates import (
    BUILTIN_TEMPLATES, BuiltinTemplate, EmailTemplateContent, get_sample_data, render
)
from case_activity_service.app.service.exceptions import TemplateNotFoundError, ValidationError
from case_activity_service.app.service.interfaces.template_store import AbstractTemplateStore

logger = logging.getLogger(__name__)


class TemplateView(BaseModel):
    """A template as administrators see it: the built-in merged with any stored override."""
    template_key: str
    name: str
    description: Optional[str] = None
    subject: str
    html_content: str
    variables: List[str]
    is_active: bool = True
    is_customized: bool = False
    updated_at: Optional[datetime.datetime] = None


class TemplateService:
    def __init__(self, store: AbstractTemplateStore):
        self.store = store

    def _builtin(self, template_key: str) -> BuiltinTemplate:
        builtin = BUILTIN_TEMPLATES.get(template_key)
        if builtin is None:
            raise TemplateNotFoundError(template_key)
        return builtin

    def get_default(self, template_key: str) -> EmailTemplateContent:
        builtin = self._builtin(template_key)
        return EmailTemplateContent(subject=builtin.subject, html=builtin.html)

    async def resolve(self, template_key: str) -> EmailTemplateContent:
        """Active stored override if there is one, otherwise the built-in default."""
        default = self.get_default(template_key)
        try:
            override = await self.store.get_by_key(template_key)
        except Exception as e:
            logger.warning(f"Could not load email template override '{template_key}', using built-in default: {e}")
            return default
        if override and override.is_active:
            return EmailTemplateContent(subject=override.subject, html=override.html_content)
        return default

    async def render_template(self, template_key: str, variables: Mapping[str, Any]) -> EmailTemplateContent:
        template = await self.resolve(template_key)
        return EmailTemplateContent(
            subject=render(template.subject, variables),
            html=render(template.html, variables),
        )

    def _view(self, builtin: BuiltinTemplate, override: Optional[EmailTemplateDB]) -> TemplateView:
        if override is None:
            return TemplateView(
                template_key=builtin.template_key,
                name=builtin.name,
                description=builtin.description,
                subject=builtin.subject,
                html_content=builtin.html,
                variables=builtin.variables,
            )
        return TemplateView(
            template_key=builtin.template_key,
            name=override.name,
            description=override.description,
            subject=override.subject,
            html_content=override.html_content,
            variables=override.variables or builtin.variables,
            is_active=override.is_active,
            is_customized=True,
            updated_at=override.updated_at,
        )

    async def list_templates(self) -> List[TemplateView]:
        overrides = {t.template_key: t for t in await self.store.list()}
        return [self._view(builtin, overrides.get(key)) for key, builtin in sorted(BUILTIN_TEMPLATES.items())]

    async def get_template(self, template_key: str) -> TemplateView:
        builtin = self._builtin(template_key)
        return self._view(builtin, await self.store.get_by_key(template_key))

    async def update_template(
        self,
        template_key: str,
        subject: Optional[str] = None,
        html_content: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> TemplateView:
        builtin = self._builtin(template_key)
        if subject is not None and not subject.strip():
            raise ValidationError("subject", "must not be empty")
        if html_content is not None and not html_content.strip():
            raise ValidationError("html_content", "must not be empty")

        current = await self.store.get_by_key(template_key)
        if current is None:
            current = EmailTemplateDB(
                template_key=template_key,
                name=builtin.name,
                description=builtin.description,
                subject=builtin.subject,
                html_content=builtin.html,
                variables=builtin.variables,
            )
        updates: Dict[str, Any] = {"updated_at": datetime.datetime.now(datetime.UTC)}
        if subject is not None:
            updates["subject"] = subject
        if html_content is not None:
            updates["html_content"] = html_content
        if is_active is not None:
            updates["is_active"] = is_active

        saved = await self.store.upsert(current.model_copy(update=updates))
        logger.info(f"Email template updated: {template_key}")
        return self._view(builtin, saved)

    async def reset_template(self, template_key: str) -> TemplateView:
        builtin = self._builtin(template_key)
        await self.store.delete(template_key)
        logger.info(f"Email template reset to default: {template_key}")
        return self._view(builtin, None)

    async def preview(self, template_key: str, sample_data: Optional[Mapping[str, Any]] = None) -> EmailTemplateContent:
        data = sample_data if sample_data is not None else get_sample_data(template_key)
        return await self.render_template(template_key, data)
