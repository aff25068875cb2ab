# API Router for Health Checks
from fastapi import APIRouter, Depends
import logging

from smcr_service.app.config import settings
from smcr_service.app.dependencies.workspace import get_store
from smcr_service.app.service.store import SmcrDataStore

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check(store: SmcrDataStore = Depends(get_store)):
    if store.load_error:
        workspace_status = "error"
    elif store.is_ready:
        workspace_status = "ready"
    else:
        workspace_status = "loading"
    if workspace_status != "ready":
        logger.warning(f"Health check: workspace is {workspace_status} ({store.load_error or 'no error'})")
    return {
        "status": "ok",
        "components": {"workspace": workspace_status},
        "active_firm_id": store.active_firm_id,
        "service_name": settings.SERVICE_NAME_API,
    }
