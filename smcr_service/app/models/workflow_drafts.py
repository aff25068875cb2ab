"""
Specialised payloads carried by individual workflow steps.

A step carries at most one draft. The ``kind`` field tags which variant it is,
so a step can never hold, say, both a criminal check and a training plan.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .firm import utc_now_iso

RiskRating = Literal["low", "medium", "high", "critical"]
ReferenceResponseStatus = Literal[
    "pending", "requested", "received_clean", "received_concerns", "refused", "no_response"
]
CriminalCheckStatus = Literal["not_requested", "requested", "in_progress", "clear", "adverse"]
TrainingPlanDraftItemStatus = Literal["not_started", "scheduled", "in_progress", "completed"]
SorApprovalStatus = Literal["draft", "submitted", "approved"]


class _DraftBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject_person_id: Optional[str] = None
    last_updated: str = Field(default_factory=utc_now_iso)


class FpSmfMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    function_id: str
    assigned: bool = False
    owner_id: Optional[str] = None
    notes: Optional[str] = None


class FpPrescribedMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    responsibility_id: str
    assigned: bool = False
    owner_id: Optional[str] = None
    notes: Optional[str] = None


class FpChecklistDraft(_DraftBase):
    kind: Literal["fp_checklist"] = "fp_checklist"
    subject_role_ids: List[str] = Field(default_factory=list)
    risk_rating: Optional[RiskRating] = None
    key_considerations: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list)
    smf_mappings: List[FpSmfMapping] = Field(default_factory=list)
    prescribed_mappings: List[FpPrescribedMapping] = Field(default_factory=list)


class ReferenceRequestEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    firm_name: str
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    request_date: Optional[str] = None
    response_date: Optional[str] = None
    status: ReferenceResponseStatus = "pending"
    follow_up_date: Optional[str] = None
    notes: Optional[str] = None


class ReferenceRequestDraft(_DraftBase):
    kind: Literal["reference_request"] = "reference_request"
    entries: List[ReferenceRequestEntry] = Field(default_factory=list)
    reminder_date: Optional[str] = None
    summary_notes: Optional[str] = None


class CriminalCheckDraft(_DraftBase):
    kind: Literal["criminal_check"] = "criminal_check"
    provider: Optional[str] = None
    request_date: Optional[str] = None
    reference_number: Optional[str] = None
    status: CriminalCheckStatus = "not_requested"
    reviewer: Optional[str] = None
    completion_date: Optional[str] = None
    adverse_details: Optional[str] = None
    follow_up_actions: Optional[str] = None


class TrainingPlanDraftItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    module_id: Optional[str] = None
    title: str
    owner_id: Optional[str] = None
    due_date: Optional[str] = None
    status: TrainingPlanDraftItemStatus = "not_started"
    delivery_method: Optional[str] = None
    notes: Optional[str] = None


class TrainingPlanDraft(_DraftBase):
    kind: Literal["training_plan"] = "training_plan"
    items: List[TrainingPlanDraftItem] = Field(default_factory=list)
    summary: Optional[str] = None
    review_date: Optional[str] = None


class SorResponsibilityDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    reference: str
    description: str
    owner_id: Optional[str] = None
    confirmed: bool = False
    notes: Optional[str] = None


class StatementOfResponsibilitiesDraft(_DraftBase):
    kind: Literal["statement_of_responsibilities"] = "statement_of_responsibilities"
    effective_date: Optional[str] = None
    responsibilities: List[SorResponsibilityDraft] = Field(default_factory=list)
    approval_status: SorApprovalStatus = "draft"
    approval_notes: Optional[str] = None


StepDraft = Annotated[
    Union[
        FpChecklistDraft,
        ReferenceRequestDraft,
        CriminalCheckDraft,
        TrainingPlanDraft,
        StatementOfResponsibilitiesDraft,
    ],
    Field(discriminator="kind"),
]
