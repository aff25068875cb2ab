from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id, utc_now_iso

AssessmentStatus = Literal["current", "due", "overdue", "not_required"]
TrainingStatus = Literal["not_started", "in_progress", "completed"]
PsdStatus = Literal["active", "inactive", "pending"]


class PersonAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: AssessmentStatus = "not_required"
    last_assessment: Optional[str] = None
    next_assessment: Optional[str] = None
    training_completion: int = 0


class FcaControlFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    function: str
    firm_name: str = ""
    frn: str = ""
    status: str = ""
    effective_from: str = ""
    effective_to: Optional[str] = None


class FcaVerification(BaseModel):
    """Cached snapshot of what the FCA register returned for an individual."""
    model_config = ConfigDict(frozen=True)

    status: str
    last_checked: str
    name: Optional[str] = None
    control_functions: List[FcaControlFunction] = Field(default_factory=list)
    has_enforcement_history: bool = False


class TrainingPlanItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    module_id: str
    title: str
    required: bool = False
    # Id of the role assignment that introduced this item
    role_context: str
    status: TrainingStatus = "not_started"
    due_date: Optional[str] = None


class PersonRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("person"))
    firm_id: str
    employee_id: str
    name: str
    email: str = ""
    department: str = ""
    title: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    line_manager: Optional[str] = None
    start_date: Optional[str] = None
    hire_date: Optional[str] = None
    end_date: Optional[str] = None
    irn: Optional[str] = None # FCA individual reference number
    fca_verification: Optional[FcaVerification] = None
    is_psd_individual: bool = False
    psd_status: Optional[PsdStatus] = None
    assessment: PersonAssessment = Field(default_factory=PersonAssessment)
    training_plan: List[TrainingPlanItem] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
