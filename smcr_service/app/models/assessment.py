from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id, utc_now_iso

FitnessAssessmentStatus = Literal["draft", "in_review", "completed"]
OverallDetermination = Literal["Fit and Proper", "Conditional", "Not Fit and Proper"]


class FitnessAssessmentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    # "yes" / "no" / "not_applicable" for boolean questions, free text otherwise
    value: Union[str, None] = None
    notes: Optional[str] = None


class FitnessAssessmentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("assessment"))
    firm_id: str
    person_id: str
    person_name: str
    person_role: Optional[str] = None
    status: FitnessAssessmentStatus = "draft"
    assessment_date: Optional[str] = None
    next_due_date: Optional[str] = None
    reviewer: Optional[str] = None
    overall_determination: Optional[OverallDetermination] = None
    conditions: List[str] = Field(default_factory=list)
    responses: List[FitnessAssessmentResponse] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
