# API Router for people, their documents and training, and role assignments
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from smcr_service.app.api.v1.errors import to_http_exception
from smcr_service.app.dependencies.workspace import get_store
from smcr_service.app.models.documents import DocumentCategory, DocumentMetadata, DocumentUpload
from smcr_service.app.models.person import PersonRecord, TrainingStatus
from smcr_service.app.models.role import RoleAssignment
from smcr_service.app.service.commands.models import NewPersonInput, NewRoleInput
from smcr_service.app.service.store import SmcrDataStore

logger = logging.getLogger(__name__)
router = APIRouter()


class TrainingStatusRequest(BaseModel):
    status: TrainingStatus


@router.get("/people", response_model=List[PersonRecord], tags=["People"])
async def list_people_api(store: SmcrDataStore = Depends(get_store)):
    return store.people_for_firm()


@router.post("/people", response_model=PersonRecord, status_code=201, tags=["People"])
async def create_person_api(request_data: NewPersonInput = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.add_person(request_data)
    except Exception as e:
        raise to_http_exception(e, "adding a person") from e


@router.patch("/people/{person_id}", response_model=PersonRecord, tags=["People"])
async def update_person_api(
    person_id: str, updates: Dict[str, Any] = Body(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        return await store.update_person(person_id, updates)
    except Exception as e:
        raise to_http_exception(e, f"updating person {person_id}") from e


@router.delete("/people/{person_id}", status_code=204, tags=["People"])
async def delete_person_api(person_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_person(person_id)
    except Exception as e:
        raise to_http_exception(e, f"removing person {person_id}") from e


@router.post("/people/{person_id}/documents", response_model=List[DocumentMetadata], status_code=201, tags=["People"])
async def upload_person_documents_api(
    person_id: str,
    files: List[UploadFile] = File(...),
    category: DocumentCategory = Form("other"),
    notes: Optional[str] = Form(None),
    store: SmcrDataStore = Depends(get_store),
):
    try:
        uploads = [
            DocumentUpload(
                filename=upload.filename or "document",
                content=await upload.read(),
                content_type=upload.content_type or "application/octet-stream",
                category=category,
                notes=notes,
            )
            for upload in files
        ]
        return await store.attach_documents(person_id, uploads)
    except Exception as e:
        raise to_http_exception(e, f"uploading documents for person {person_id}") from e


@router.delete("/documents/{document_id}", status_code=204, tags=["People"])
async def delete_document_api(document_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_document(document_id)
    except Exception as e:
        raise to_http_exception(e, f"removing document {document_id}") from e


@router.patch("/people/{person_id}/training/{item_id}", response_model=PersonRecord, tags=["People"])
async def update_training_status_api(
    person_id: str,
    item_id: str,
    request_data: TrainingStatusRequest = Body(...),
    store: SmcrDataStore = Depends(get_store),
):
    try:
        await store.update_training_item_status(person_id, item_id, request_data.status)
    except Exception as e:
        raise to_http_exception(e, f"updating training item {item_id}") from e
    person = next((p for p in store.state.people if p.id == person_id), None)
    if person is None:
        raise HTTPException(status_code=404, detail=f"Person with id {person_id} not found")
    return person


@router.get("/people/{person_id}/roles", response_model=List[RoleAssignment], tags=["Roles"])
async def list_person_roles_api(person_id: str, store: SmcrDataStore = Depends(get_store)):
    return store.roles_for_person(person_id)


@router.post("/roles", response_model=RoleAssignment, status_code=201, tags=["Roles"])
async def assign_role_api(request_data: NewRoleInput = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.assign_role(request_data)
    except Exception as e:
        raise to_http_exception(e, "assigning a role") from e


@router.patch("/roles/{role_id}", response_model=RoleAssignment, tags=["Roles"])
async def update_role_api(role_id: str, updates: Dict[str, Any] = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        role = await store.update_role(role_id, updates)
    except Exception as e:
        raise to_http_exception(e, f"updating role {role_id}") from e
    if role is None:
        raise HTTPException(status_code=404, detail=f"Role with id {role_id} not found")
    return role


@router.delete("/roles/{role_id}", status_code=204, tags=["Roles"])
async def delete_role_api(role_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_role(role_id)
    except Exception as e:
        raise to_http_exception(e, f"removing role {role_id}") from e
