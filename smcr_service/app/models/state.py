from typing import List

from pydantic import BaseModel, ConfigDict, Field

from smcr_service.app.config import settings as app_settings

from .assessment import FitnessAssessmentRecord
from .breach import ConductBreach
from .documents import DocumentMetadata, WorkflowDocument
from .group_entity import GroupEntity
from .person import PersonRecord
from .role import RoleAssignment
from .workflow import WorkflowInstance


class SmcrSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    verification_stale_threshold_days: int = Field(
        default_factory=lambda: app_settings.VERIFICATION_STALE_THRESHOLD_DAYS
    )


class SmcrDataState(BaseModel):
    """Everything loaded for the active firm. Replaced wholesale, never edited in place."""
    model_config = ConfigDict(frozen=True)

    people: List[PersonRecord] = Field(default_factory=list)
    documents: List[DocumentMetadata] = Field(default_factory=list)
    roles: List[RoleAssignment] = Field(default_factory=list)
    workflows: List[WorkflowInstance] = Field(default_factory=list)
    workflow_documents: List[WorkflowDocument] = Field(default_factory=list)
    assessments: List[FitnessAssessmentRecord] = Field(default_factory=list)
    breaches: List[ConductBreach] = Field(default_factory=list)
    group_entities: List[GroupEntity] = Field(default_factory=list)
    settings: SmcrSettings = Field(default_factory=SmcrSettings)
