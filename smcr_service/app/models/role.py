from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id, utc_now_iso

RoleType = Literal["SMF", "CF"]
RoleApprovalStatus = Literal["draft", "pending", "approved", "rejected"]


class RoleAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("role"))
    firm_id: str
    person_id: str
    function_id: str
    function_type: RoleType
    function_label: str
    entity: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None # open-ended when unset
    assessment_date: Optional[str] = None
    approval_status: RoleApprovalStatus = "draft"
    notes: Optional[str] = None
    assigned_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
