from .firm import Firm
from .person import PersonRecord, PersonAssessment, FcaVerification, FcaControlFunction, TrainingPlanItem
from .documents import DocumentMetadata, WorkflowDocument, DocumentUpload
from .role import RoleAssignment
from .workflow import WorkflowInstance, WorkflowStepInstance, WorkflowStepField, WorkflowChecklistItem, WorkflowFieldOption
from .workflow_drafts import (
    FpChecklistDraft,
    ReferenceRequestDraft,
    CriminalCheckDraft,
    TrainingPlanDraft,
    StatementOfResponsibilitiesDraft,
    StepDraft,
)
from .assessment import FitnessAssessmentRecord, FitnessAssessmentResponse
from .breach import ConductBreach, BreachTimelineEntry
from .group_entity import GroupEntity
from .state import SmcrDataState, SmcrSettings

__all__ = [
    "Firm",
    "PersonRecord",
    "PersonAssessment",
    "FcaVerification",
    "FcaControlFunction",
    "TrainingPlanItem",
    "DocumentMetadata",
    "WorkflowDocument",
    "DocumentUpload",
    "RoleAssignment",
    "WorkflowInstance",
    "WorkflowStepInstance",
    "WorkflowStepField",
    "WorkflowChecklistItem",
    "WorkflowFieldOption",
    "FpChecklistDraft",
    "ReferenceRequestDraft",
    "CriminalCheckDraft",
    "TrainingPlanDraft",
    "StatementOfResponsibilitiesDraft",
    "StepDraft",
    "FitnessAssessmentRecord",
    "FitnessAssessmentResponse",
    "ConductBreach",
    "BreachTimelineEntry",
    "GroupEntity",
    "SmcrDataState",
    "SmcrSettings",
]
