# API Router for firms and the active-firm workspace
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from smcr_service.app.api.v1.errors import to_http_exception
from smcr_service.app.dependencies.workspace import get_store
from smcr_service.app.models.firm import Firm
from smcr_service.app.models.state import SmcrDataState, SmcrSettings
from smcr_service.app.service.store import SmcrDataStore

logger = logging.getLogger(__name__)
router = APIRouter()


class FirmListResponse(BaseModel):
    firms: List[Firm]
    active_firm_id: Optional[str] = None

class CreateFirmRequest(BaseModel):
    name: str

class SelectFirmRequest(BaseModel):
    firm_id: str

class LinkProjectRequest(BaseModel):
    project_id: str
    project_name: str

class SettingsUpdateRequest(BaseModel):
    verification_stale_threshold_days: int = Field(ge=1)

class WorkspaceSnapshot(BaseModel):
    active_firm_id: Optional[str] = None
    is_ready: bool
    load_error: Optional[str] = None
    state: SmcrDataState


def _snapshot(store: SmcrDataStore) -> WorkspaceSnapshot:
    return WorkspaceSnapshot(
        active_firm_id=store.active_firm_id,
        is_ready=store.is_ready,
        load_error=store.load_error,
        state=store.state,
    )


@router.get("/firms", response_model=FirmListResponse, tags=["Firms"])
async def list_firms_api(store: SmcrDataStore = Depends(get_store)):
    return FirmListResponse(firms=store.firms, active_firm_id=store.active_firm_id)


@router.post("/firms/refresh", response_model=FirmListResponse, tags=["Firms"])
async def refresh_firms_api(store: SmcrDataStore = Depends(get_store)):
    await store.load_firms()
    return FirmListResponse(firms=store.firms, active_firm_id=store.active_firm_id)


@router.post("/firms", response_model=Firm, status_code=201, tags=["Firms"])
async def create_firm_api(request_data: CreateFirmRequest = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.add_firm(request_data.name)
    except Exception as e:
        raise to_http_exception(e, "creating a firm") from e


@router.put("/firms/active", response_model=WorkspaceSnapshot, tags=["Firms"])
async def select_firm_api(request_data: SelectFirmRequest = Body(...), store: SmcrDataStore = Depends(get_store)):
    if not any(firm.id == request_data.firm_id for firm in store.firms):
        raise HTTPException(status_code=400, detail=f"Unknown firm {request_data.firm_id}")
    await store.set_active_firm(request_data.firm_id)
    return _snapshot(store)


@router.put("/firms/{firm_id}/authorization-project", status_code=204, tags=["Firms"])
async def link_project_api(
    firm_id: str, request_data: LinkProjectRequest = Body(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        await store.link_authorization_project(firm_id, request_data.project_id, request_data.project_name)
    except Exception as e:
        raise to_http_exception(e, f"linking a project to firm {firm_id}") from e


@router.delete("/firms/{firm_id}/authorization-project", status_code=204, tags=["Firms"])
async def unlink_project_api(firm_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.unlink_authorization_project(firm_id)
    except Exception as e:
        raise to_http_exception(e, f"unlinking the project from firm {firm_id}") from e


@router.get("/workspace", response_model=WorkspaceSnapshot, tags=["Workspace"])
async def get_workspace_api(store: SmcrDataStore = Depends(get_store)):
    return _snapshot(store)


@router.post("/workspace/reload", response_model=WorkspaceSnapshot, tags=["Workspace"])
async def reload_workspace_api(store: SmcrDataStore = Depends(get_store)):
    await store.load_firm_data()
    return _snapshot(store)


@router.patch("/workspace/settings", response_model=SmcrSettings, tags=["Workspace"])
async def update_settings_api(request_data: SettingsUpdateRequest = Body(...), store: SmcrDataStore = Depends(get_store)):
    return store.update_settings(**request_data.model_dump())
