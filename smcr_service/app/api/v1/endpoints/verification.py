# API Router for bulk re-verification against the FCA register
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from smcr_service.app.api.v1.errors import to_http_exception
from smcr_service.app.dependencies.workspace import get_store, get_verification_runner
from smcr_service.app.models.person import PersonRecord
from smcr_service.app.service.interfaces.register_lookup_client import AbstractRegisterLookupClient
from smcr_service.app.service.store import SmcrDataStore
from smcr_service.app.service.verification import VerificationRunner, VerificationRunResult
from smcr_service.infrastructure.fca_register_client import get_register_lookup_client

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/verification/stale", response_model=List[PersonRecord], tags=["Verification"])
async def list_stale_verifications_api(store: SmcrDataStore = Depends(get_store)):
    return store.find_stale_verifications()


@router.post("/verification/runs", response_model=VerificationRunResult, tags=["Verification"])
async def start_reverification_api(
    store: SmcrDataStore = Depends(get_store),
    runner: VerificationRunner = Depends(get_verification_runner),
):
    if runner.is_running:
        raise HTTPException(status_code=409, detail="A re-verification run is already in progress")
    try:
        return await runner.run(store)
    except Exception as e:
        raise to_http_exception(e, "re-verifying stale people") from e


@router.post("/verification/runs/cancel", tags=["Verification"])
async def cancel_reverification_api(runner: VerificationRunner = Depends(get_verification_runner)):
    cancelled = runner.cancel()
    if cancelled:
        logger.info("Re-verification cancellation requested")
    return {"cancelled": cancelled}


@router.post("/people/{person_id}/verification", response_model=PersonRecord, tags=["Verification"])
async def verify_person_api(
    person_id: str,
    store: SmcrDataStore = Depends(get_store),
    register_client: AbstractRegisterLookupClient = Depends(get_register_lookup_client),
):
    person = next((p for p in store.state.people if p.id == person_id), None)
    if person is None:
        raise HTTPException(status_code=404, detail=f"Person with id {person_id} not found")
    if not person.irn:
        raise HTTPException(status_code=400, detail=f"Person {person_id} has no IRN to verify")
    try:
        verification = await register_client.lookup_individual(person.irn)
        if verification is None:
            raise HTTPException(status_code=404, detail=f"IRN {person.irn} not found on the FCA register")
        return await store.update_person(person_id, {"fca_verification": verification})
    except Exception as e:
        raise to_http_exception(e, f"verifying person {person_id}") from e
