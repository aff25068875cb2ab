# API Router for F&P assessments, conduct breaches and group entities
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from smcr_service.app.api.v1.errors import to_http_exception
from smcr_service.app.catalogs.core_functions import ALL_CONDUCT_RULES, ConductRule
from smcr_service.app.catalogs.fitness_framework import FITNESS_QUESTION_GROUPS, FitnessQuestionGroup
from smcr_service.app.dependencies.workspace import get_store
from smcr_service.app.models.assessment import FitnessAssessmentRecord, FitnessAssessmentStatus, OverallDetermination
from smcr_service.app.models.breach import BreachTimelineEntry, ConductBreach
from smcr_service.app.models.group_entity import GroupEntity
from smcr_service.app.service.commands.models import (
    AssessmentResponseUpdate,
    AssessmentStatusUpdate,
    NewAssessmentInput,
    NewBreachInput,
    NewGroupEntityInput,
    NewTimelineEntryInput,
)
from smcr_service.app.service.store import SmcrDataStore

logger = logging.getLogger(__name__)
router = APIRouter()


class ResponseUpdateRequest(BaseModel):
    value: Optional[str] = None
    notes: Optional[str] = None

class StatusUpdateRequest(BaseModel):
    status: FitnessAssessmentStatus
    overall_determination: Optional[OverallDetermination] = None
    conditions: Optional[List[str]] = None
    assessment_date: Optional[str] = None
    next_due_date: Optional[str] = None
    reviewer: Optional[str] = None


def _not_found(kind: str, item_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} with id {item_id} not found")


# --- Catalogs ---

@router.get("/catalogs/conduct-rules", response_model=List[ConductRule], tags=["Catalogs"])
async def list_conduct_rules_api():
    return ALL_CONDUCT_RULES


@router.get("/catalogs/fitness-questions", response_model=List[FitnessQuestionGroup], tags=["Catalogs"])
async def list_fitness_questions_api():
    return FITNESS_QUESTION_GROUPS


# --- Fitness & propriety assessments ---

@router.get("/assessments", response_model=List[FitnessAssessmentRecord], tags=["Assessments"])
async def list_assessments_api(store: SmcrDataStore = Depends(get_store)):
    return store.state.assessments


@router.post("/assessments", response_model=FitnessAssessmentRecord, status_code=201, tags=["Assessments"])
async def start_assessment_api(request_data: NewAssessmentInput = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.start_assessment(request_data)
    except Exception as e:
        raise to_http_exception(e, f"starting an assessment for person {request_data.person_id}") from e


@router.patch(
    "/assessments/{assessment_id}/responses/{question_id}",
    response_model=FitnessAssessmentRecord,
    tags=["Assessments"],
)
async def update_assessment_response_api(
    assessment_id: str,
    question_id: str,
    request_data: ResponseUpdateRequest = Body(...),
    store: SmcrDataStore = Depends(get_store),
):
    try:
        record = await store.update_assessment_response(AssessmentResponseUpdate(
            assessment_id=assessment_id, question_id=question_id, value=request_data.value, notes=request_data.notes
        ))
    except Exception as e:
        raise to_http_exception(e, f"answering {question_id} on assessment {assessment_id}") from e
    if record is None:
        raise _not_found("Assessment", assessment_id)
    return record


@router.patch("/assessments/{assessment_id}/status", response_model=FitnessAssessmentRecord, tags=["Assessments"])
async def update_assessment_status_api(
    assessment_id: str, request_data: StatusUpdateRequest = Body(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        record = await store.update_assessment_status(
            AssessmentStatusUpdate(assessment_id=assessment_id, **request_data.model_dump())
        )
    except Exception as e:
        raise to_http_exception(e, f"updating the status of assessment {assessment_id}") from e
    if record is None:
        raise _not_found("Assessment", assessment_id)
    return record


@router.delete("/assessments/{assessment_id}", status_code=204, tags=["Assessments"])
async def delete_assessment_api(assessment_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_assessment(assessment_id)
    except Exception as e:
        raise to_http_exception(e, f"removing assessment {assessment_id}") from e


# --- Conduct breaches ---

@router.get("/breaches", response_model=List[ConductBreach], tags=["Breaches"])
async def list_breaches_api(store: SmcrDataStore = Depends(get_store)):
    return store.state.breaches


@router.post("/breaches", response_model=ConductBreach, status_code=201, tags=["Breaches"])
async def log_breach_api(request_data: NewBreachInput = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.add_breach(request_data)
    except Exception as e:
        raise to_http_exception(e, "logging a breach") from e


@router.patch("/breaches/{breach_id}", response_model=ConductBreach, tags=["Breaches"])
async def update_breach_api(breach_id: str, updates: Dict[str, Any] = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        breach = await store.update_breach(breach_id, updates)
    except Exception as e:
        raise to_http_exception(e, f"updating breach {breach_id}") from e
    if breach is None:
        raise _not_found("Breach", breach_id)
    return breach


@router.post("/breaches/{breach_id}/timeline", response_model=BreachTimelineEntry, status_code=201, tags=["Breaches"])
async def add_timeline_entry_api(
    breach_id: str, request_data: NewTimelineEntryInput = Body(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        return await store.add_breach_timeline_entry(breach_id, request_data)
    except Exception as e:
        raise to_http_exception(e, f"adding a timeline entry to breach {breach_id}") from e


@router.delete("/breaches/{breach_id}", status_code=204, tags=["Breaches"])
async def delete_breach_api(breach_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_breach(breach_id)
    except Exception as e:
        raise to_http_exception(e, f"removing breach {breach_id}") from e


# --- Group entities ---

@router.get("/group-entities", response_model=List[GroupEntity], tags=["Group Entities"])
async def list_group_entities_api(store: SmcrDataStore = Depends(get_store)):
    return store.state.group_entities


@router.post("/group-entities", response_model=GroupEntity, status_code=201, tags=["Group Entities"])
async def create_group_entity_api(request_data: NewGroupEntityInput = Body(...), store: SmcrDataStore = Depends(get_store)):
    try:
        return await store.add_group_entity(request_data)
    except Exception as e:
        raise to_http_exception(e, "adding a group entity") from e


@router.patch("/group-entities/{entity_id}", response_model=GroupEntity, tags=["Group Entities"])
async def update_group_entity_api(
    entity_id: str, updates: Dict[str, Any] = Body(...), store: SmcrDataStore = Depends(get_store)
):
    try:
        entity = await store.update_group_entity(entity_id, updates)
    except Exception as e:
        raise to_http_exception(e, f"updating group entity {entity_id}") from e
    if entity is None:
        raise _not_found("Group entity", entity_id)
    return entity


@router.delete("/group-entities/{entity_id}", status_code=204, tags=["Group Entities"])
async def delete_group_entity_api(entity_id: str, store: SmcrDataStore = Depends(get_store)):
    try:
        await store.remove_group_entity(entity_id)
    except Exception as e:
        raise to_http_exception(e, f"removing group entity {entity_id}") from e
