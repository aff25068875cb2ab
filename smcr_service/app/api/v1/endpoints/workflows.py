# API Router for workflow templates, launched workflows and their evidence
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from smcr_service.app.api.v1.errors import to_http_exception
from smcr_service.app.catalogs.workflow_templates import WORKFLOW_TEMPLATES, WorkflowTemplate
from smcr_service.app.dependencies.workspace import get_store
from smcr_service.app.models.documents import DocumentUpload, WorkflowDocument
from smcr_service.app.models.workflow import FieldValue, WorkflowInstance, WorkflowStepStatus
from smcr_service.app.models.workflow_drafts import StepDraft
from smcr_service.app.service.commands.models import (
    WorkflowChecklistUpdateInput,
    WorkflowFieldUpdateInput,
    WorkflowLaunchInput,
    WorkflowStepUpdateInput,
)
from smcr_service.app.service.store import SmcrDataStore

logger = logging.getLogger(__name__)
router = APIRouter()


class StepUpdateRequest(BaseModel):
    status: Optional[WorkflowStepStatus] = None
    notes: Optional[str] = None

class FieldUpdateRequest(BaseModel):
    value: FieldValue = None

class ChecklistUpdateRequest(BaseModel):
    completed: bool

class DraftUpdateRequest(BaseModel):
    draft: StepDraft


def _require_workflow(workflow: Optional[WorkflowInstance], workflow_id: str) -> WorkflowInstance:
    if workflow is None:
        raise HTTPException(status_code=404, detail=f"Workflow {workflow_id} not found")
    return workflow


@router.get("/workflow-templates", response_model=List[WorkflowTemplate], tags=["Workflows"])
async def list_workflow_templates_api():
    return WORKFLOW_TEMPLATES


@router.get("/workflows", response_model=List[WorkflowInstance], tags=["Workflows"])
async def list_workflows_api(store: SmcrDataStore = Depends(get_store)):
    return store.state.workflows


@router.post("/workflows", response_model=WorkflowInstance, status_code=201, tags=["Workflows"])
async def launch_workflow_api(request_data: WorkflowLaunchInput = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.launch_workflow(request_data)
    except Exception as e:
        raise to_http_exception(e, f"launching workflow from template {request_data.template_id}") from e


@router.patch("/workflows/{workflow_id}/steps/{step_id}", response_model=WorkflowInstance, tags=["Workflows"])
async def update_step_api(
    workflow_id: str, step_id: str, request_data: StepUpdateRequest = Body(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        workflow = await store.update_workflow_step(WorkflowStepUpdateInput(
            workflow_id=workflow_id, step_id=step_id, status=request_data.status, notes=request_data.notes
        ))
    except Exception as e:
        raise to_http_exception(e, f"updating step {step_id} of workflow {workflow_id}") from e
    return _require_workflow(workflow, workflow_id)


@router.patch(
    "/workflows/{workflow_id}/steps/{step_id}/fields/{field_id}", response_model=WorkflowInstance, tags=["Workflows"]
)
async def update_field_api(
    workflow_id: str,
    step_id: str,
    field_id: str,
    request_data: FieldUpdateRequest = Body(...),
    store: SmcrDataStore = Depends(get_store),
):
    try:
        workflow = await store.update_workflow_field(WorkflowFieldUpdateInput(
            workflow_id=workflow_id, step_id=step_id, field_id=field_id, value=request_data.value
        ))
    except Exception as e:
        raise to_http_exception(e, f"updating field {field_id} of workflow {workflow_id}") from e
    return _require_workflow(workflow, workflow_id)


@router.patch(
    "/workflows/{workflow_id}/steps/{step_id}/checklist/{checklist_id}",
    response_model=WorkflowInstance,
    tags=["Workflows"],
)
async def update_checklist_api(
    workflow_id: str,
    step_id: str,
    checklist_id: str,
    request_data: ChecklistUpdateRequest = Body(...),
    store: SmcrDataStore = Depends(get_store),
):
    try:
        workflow = await store.update_workflow_checklist(WorkflowChecklistUpdateInput(
            workflow_id=workflow_id, step_id=step_id, checklist_id=checklist_id, completed=request_data.completed
        ))
    except Exception as e:
        raise to_http_exception(e, f"updating checklist item {checklist_id} of workflow {workflow_id}") from e
    return _require_workflow(workflow, workflow_id)


@router.put("/workflows/{workflow_id}/steps/{step_id}/draft", response_model=WorkflowInstance, tags=["Workflows"])
async def replace_step_draft_api(
    workflow_id: str, step_id: str, request_data: DraftUpdateRequest = Body(...), store: SmcrDataStore = Depends(get_store)
):
    draft = request_data.draft
    try:
        workflow = await store.update_step_draft(workflow_id, step_id, draft.kind, lambda _current: draft)
    except Exception as e:
        raise to_http_exception(e, f"saving the {draft.kind} draft on workflow {workflow_id}") from e
    return _require_workflow(workflow, workflow_id)


@router.delete("/workflows/{workflow_id}", status_code=204, tags=["Workflows"])
async def delete_workflow_api(workflow_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_workflow(workflow_id)
    except Exception as e:
        raise to_http_exception(e, f"removing workflow {workflow_id}") from e


@router.post(
    "/workflows/{workflow_id}/steps/{step_id}/evidence",
    response_model=WorkflowDocument,
    status_code=201,
    tags=["Workflows"],
)
async def upload_evidence_api(
    workflow_id: str, step_id: str, file: UploadFile = File(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        upload = DocumentUpload(
            filename=file.filename or "evidence",
            content=await file.read(),
            content_type=file.content_type or "application/octet-stream",
        )
        return await store.attach_workflow_evidence(workflow_id, step_id, upload)
    except Exception as e:
        raise to_http_exception(e, f"attaching evidence to workflow {workflow_id}") from e


@router.delete("/workflow-documents/{document_id}", status_code=204, tags=["Workflows"])
async def delete_evidence_api(document_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_workflow_evidence(document_id)
    except Exception as e:
        raise to_http_exception(e, f"removing workflow document {document_id}") from e
