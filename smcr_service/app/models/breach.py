from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id, utc_now_iso

BreachSeverity = Literal["minor", "serious", "severe"]
BreachStatus = Literal["open", "investigating", "resolved", "escalated"]


class BreachTimelineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("timeline"))
    date: str = Field(default_factory=utc_now_iso)
    action: str
    description: str = ""
    performed_by: Optional[str] = None


class ConductBreach(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("breach"))
    firm_id: str
    person_id: str
    person_name: str
    rule_id: str
    rule_name: str
    date_identified: str
    date_occurred: Optional[str] = None
    description: str = ""
    severity: BreachSeverity = "minor"
    status: BreachStatus = "open"
    investigator: Optional[str] = None
    findings: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    disciplinary_action: Optional[str] = None
    training_required: Optional[bool] = None
    fca_notification: Optional[bool] = None
    fca_notification_date: Optional[str] = None
    resolution_date: Optional[str] = None
    lessons_learned: Optional[str] = None
    # Append-only; see SmcrDataStore.add_breach_timeline_entry
    timeline: List[BreachTimelineEntry] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
