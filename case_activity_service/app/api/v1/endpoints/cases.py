# API Router for Cases and their activity (status, assignment, documents, messages)
from fastapi import APIRouter, Depends, HTTPException, Body
import logging
from typing import List, Optional

from pydantic import BaseModel

from case_activity_service.app.dependencies.services import get_state_machine
from case_activity_service.app.models import CaseDB, CaseEventDB, CaseStatus, UserRole
from case_activity_service.app.service.cases.state_machine import CaseStateMachine, CreateCaseInput
from case_activity_service.app.service.exceptions import CaseNumberConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)
router = APIRouter()

# --- Request models ---
class CreateCaseRequest(CreateCaseInput):
    actor_id: Optional[str] = None

class UpdateStatusRequest(BaseModel):
    status: CaseStatus
    actor_id: Optional[str] = None

class AssignLawyerRequest(BaseModel):
    lawyer_id: str
    actor_id: Optional[str] = None

class DocumentUploadedRequest(BaseModel):
    uploader_user_id: str
    document_name: str
    document_id: Optional[str] = None

class MessageSentRequest(BaseModel):
    sender_user_id: str
    content: str
    message_id: Optional[str] = None


def _raise_http(e: Exception, action: str):
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(e, CaseNumberConflictError):
        raise HTTPException(status_code=409, detail=str(e))
    logger.error(f"Unexpected error while trying to {action}: {e}", exc_info=True)
    raise HTTPException(status_code=500, detail=f"Failed to {action}.")


@router.post("/cases", response_model=CaseDB, status_code=201, tags=["Cases"])
async def create_case(
    request_data: CreateCaseRequest = Body(...),
    state_machine: CaseStateMachine = Depends(get_state_machine)
):
    try:
        case_input = CreateCaseInput(**request_data.model_dump(exclude={"actor_id"}))
        return await state_machine.create(case_input, actor_id=request_data.actor_id)
    except Exception as e:
        _raise_http(e, "create case")


@router.get("/cases/{case_id}", response_model=CaseDB, tags=["Cases"])
async def get_case(case_id: str, state_machine: CaseStateMachine = Depends(get_state_machine)):
    try:
        return await state_machine.get_case(case_id)
    except Exception as e:
        _raise_http(e, f"retrieve case {case_id}")


@router.patch("/cases/{case_id}/status", response_model=CaseDB, tags=["Cases"])
async def update_case_status(
    case_id: str,
    request_data: UpdateStatusRequest = Body(...),
    state_machine: CaseStateMachine = Depends(get_state_machine)
):
    try:
        return await state_machine.update_status(case_id, request_data.status, actor_id=request_data.actor_id)
    except Exception as e:
        _raise_http(e, f"update status of case {case_id}")


@router.post("/cases/{case_id}/lawyer", response_model=CaseDB, tags=["Cases"])
async def assign_lawyer(
    case_id: str,
    request_data: AssignLawyerRequest = Body(...),
    state_machine: CaseStateMachine = Depends(get_state_machine)
):
    try:
        return await state_machine.assign_lawyer(case_id, request_data.lawyer_id, actor_id=request_data.actor_id)
    except Exception as e:
        _raise_http(e, f"assign lawyer to case {case_id}")


@router.get("/cases/{case_id}/timeline", response_model=List[CaseEventDB], tags=["Cases"])
async def get_case_timeline(case_id: str, state_machine: CaseStateMachine = Depends(get_state_machine)):
    try:
        return await state_machine.timeline(case_id)
    except Exception as e:
        _raise_http(e, f"retrieve timeline of case {case_id}")


@router.post("/cases/{case_id}/documents", response_model=CaseEventDB, status_code=201, tags=["Case Activity"])
async def record_document_uploaded(
    case_id: str,
    request_data: DocumentUploadedRequest = Body(...),
    state_machine: CaseStateMachine = Depends(get_state_machine)
):
    try:
        return await state_machine.record_document_uploaded(
            case_id, request_data.uploader_user_id, request_data.document_name, request_data.document_id
        )
    except Exception as e:
        _raise_http(e, f"record document upload on case {case_id}")


@router.post("/cases/{case_id}/messages", response_model=CaseEventDB, status_code=201, tags=["Case Activity"])
async def record_message_sent(
    case_id: str,
    request_data: MessageSentRequest = Body(...),
    state_machine: CaseStateMachine = Depends(get_state_machine)
):
    try:
        return await state_machine.record_message_sent(
            case_id, request_data.sender_user_id, request_data.content, request_data.message_id
        )
    except Exception as e:
        _raise_http(e, f"record message on case {case_id}")
