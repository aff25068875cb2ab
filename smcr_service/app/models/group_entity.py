from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id

GroupEntityType = Literal["holding", "subsidiary", "parent", "associate", "branch"]


class GroupEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("entity"))
    name: str
    type: GroupEntityType = "subsidiary"
    linked_firm_id: Optional[str] = None
    linked_project_id: Optional[str] = None
    linked_project_name: Optional[str] = None
    parent_id: Optional[str] = None
    ownership_percent: Optional[float] = None
    country: Optional[str] = None
    regulatory_status: Optional[str] = None
    is_external: Optional[bool] = None
