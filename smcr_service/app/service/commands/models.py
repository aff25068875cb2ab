# Pydantic models for store commands and the request bodies that carry them
import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from smcr_service.app.models.assessment import FitnessAssessmentStatus, OverallDetermination
from smcr_service.app.models.breach import BreachSeverity
from smcr_service.app.models.group_entity import GroupEntityType
from smcr_service.app.models.person import AssessmentStatus, PsdStatus
from smcr_service.app.models.role import RoleApprovalStatus, RoleType
from smcr_service.app.models.workflow import FieldValue, WorkflowStepStatus


class PersonAssessmentInput(BaseModel):
    status: Optional[AssessmentStatus] = None
    last_assessment: Optional[str] = None
    next_assessment: Optional[str] = None
    training_completion: Optional[int] = None


class NewPersonInput(BaseModel):
    name: str
    email: str
    department: str = ""
    title: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    line_manager: Optional[str] = None
    irn: Optional[str] = None
    start_date: Optional[str] = None
    hire_date: Optional[str] = None # defaults to start_date
    end_date: Optional[str] = None
    is_psd_individual: bool = False
    psd_status: Optional[PsdStatus] = None
    assessment: Optional[PersonAssessmentInput] = None


class NewRoleInput(BaseModel):
    person_id: str
    function_id: str
    function_type: RoleType
    entity: Optional[str] = None
    start_date: datetime.date
    end_date: Optional[datetime.date] = None
    assessment_date: Optional[datetime.date] = None
    approval_status: RoleApprovalStatus = "draft"
    notes: Optional[str] = None


class WorkflowLaunchInput(BaseModel):
    template_id: str
    owner_person_id: Optional[str] = None
    due_date: Optional[str] = None
    custom_name: Optional[str] = None


class WorkflowStepUpdateInput(BaseModel):
    workflow_id: str
    step_id: str
    status: Optional[WorkflowStepStatus] = None
    notes: Optional[str] = None


class WorkflowFieldUpdateInput(BaseModel):
    workflow_id: str
    step_id: str
    field_id: str
    value: FieldValue = None


class WorkflowChecklistUpdateInput(BaseModel):
    workflow_id: str
    step_id: str
    checklist_id: str
    completed: bool


class NewAssessmentInput(BaseModel):
    person_id: str
    assessment_date: Optional[str] = None
    next_due_date: Optional[str] = None
    reviewer: Optional[str] = None


class AssessmentResponseUpdate(BaseModel):
    assessment_id: str
    question_id: str
    value: Optional[str] = None
    notes: Optional[str] = None


class AssessmentStatusUpdate(BaseModel):
    assessment_id: str
    status: FitnessAssessmentStatus
    overall_determination: Optional[OverallDetermination] = None
    conditions: Optional[List[str]] = None
    assessment_date: Optional[str] = None
    next_due_date: Optional[str] = None
    reviewer: Optional[str] = None


class NewBreachInput(BaseModel):
    person_id: str
    person_name: str
    rule_id: str
    rule_name: str
    date_identified: str
    date_occurred: Optional[str] = None
    description: str = ""
    severity: BreachSeverity = "minor"


class NewTimelineEntryInput(BaseModel):
    date: Optional[str] = None
    action: str
    description: str = ""
    performed_by: Optional[str] = None


class NewGroupEntityInput(BaseModel):
    name: str
    type: GroupEntityType = "subsidiary"
    linked_firm_id: Optional[str] = None
    linked_project_id: Optional[str] = None
    linked_project_name: Optional[str] = None
    parent_id: Optional[str] = None
    ownership_percent: Optional[float] = Field(default=None, ge=0, le=100)
    country: Optional[str] = None
    regulatory_status: Optional[str] = None
    is_external: Optional[bool] = None
