from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id, utc_now_iso
from .workflow_drafts import StepDraft

WorkflowStatus = Literal["not_started", "in_progress", "completed"]
WorkflowStepStatus = Literal["pending", "completed"]
WorkflowFieldType = Literal["text", "textarea", "select", "date", "boolean"]
FieldValue = Union[bool, str, None]


class WorkflowFieldOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class WorkflowStepField(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: WorkflowFieldType = "text"
    required: bool = False
    helper_text: Optional[str] = None
    options: Optional[List[WorkflowFieldOption]] = None
    value: FieldValue = None


class WorkflowChecklistItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    completed: bool = False


class WorkflowStepInstance(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("wfstep"))
    template_step_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    status: WorkflowStepStatus = "pending"
    assigned_to: Optional[str] = None
    completed_at: Optional[str] = None
    notes: Optional[str] = None
    expected_evidence: Optional[List[str]] = None
    form: Optional[List[WorkflowStepField]] = None
    checklist: Optional[List[WorkflowChecklistItem]] = None
    draft: Optional[StepDraft] = None


class WorkflowInstance(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("workflow"))
    firm_id: str
    template_id: str
    name: str
    summary: str = ""
    owner_person_id: Optional[str] = None
    owner_name: Optional[str] = None
    launched_at: str = Field(default_factory=utc_now_iso)
    due_date: Optional[str] = None
    status: WorkflowStatus = "not_started"
    steps: List[WorkflowStepInstance] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list)
    trigger: Optional[str] = None
