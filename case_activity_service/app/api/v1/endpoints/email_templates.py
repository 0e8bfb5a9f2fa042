# API Router for administrator-editable email templates
from fastapi import APIRouter, Depends, HTTPException, Body
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from case_activity_service.app.dependencies.services import get_template_service
from case_activity_service.app.service.delivery.template_service import TemplateService, TemplateView
from case_activity_service.app.service.delivery.templates import EmailTemplateContent
from case_activity_service.app.service.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)
router = APIRouter()

class UpdateTemplateRequest(BaseModel):
    subject: Optional[str] = None
    html_content: Optional[str] = None
    is_active: Optional[bool] = None

class PreviewTemplateRequest(BaseModel):
    sample_data: Optional[Dict[str, str]] = None


@router.get("/email-templates", response_model=List[TemplateView], tags=["Email Templates"])
async def list_templates(templates: TemplateService = Depends(get_template_service)):
    try:
        return await templates.list_templates()
    except Exception as e:
        logger.error(f"Error listing email templates: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list email templates")


@router.get("/email-templates/{template_key}", response_model=TemplateView, tags=["Email Templates"])
async def get_template(template_key: str, templates: TemplateService = Depends(get_template_service)):
    try:
        return await templates.get_template(template_key)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error retrieving email template {template_key}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve email template")


@router.put("/email-templates/{template_key}", response_model=TemplateView, tags=["Email Templates"])
async def update_template(
    template_key: str,
    request_data: UpdateTemplateRequest = Body(...),
    templates: TemplateService = Depends(get_template_service)
):
    try:
        return await templates.update_template(
            template_key,
            subject=request_data.subject,
            html_content=request_data.html_content,
            is_active=request_data.is_active,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating email template {template_key}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update email template")


@router.post("/email-templates/{template_key}/reset", response_model=TemplateView, tags=["Email Templates"])
async def reset_template(template_key: str, templates: TemplateService = Depends(get_template_service)):
    try:
        return await templates.reset_template(template_key)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error resetting email template {template_key}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to reset email template")


@router.post("/email-templates/{template_key}/preview", response_model=EmailTemplateContent, tags=["Email Templates"])
async def preview_template(
    template_key: str,
    request_data: Optional[PreviewTemplateRequest] = Body(default=None),
    templates: TemplateService = Depends(get_template_service)
):
    try:
        sample_data = request_data.sample_data if request_data else None
        return await templates.preview(template_key, sample_data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error previewing email template {template_key}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to preview email template")
