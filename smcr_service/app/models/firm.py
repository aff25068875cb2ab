import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


class Firm(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("firm"))
    name: str
    created_at: str = Field(default_factory=utc_now_iso)
    # Loose reference to an authorization-pack project; not checked for existence
    authorization_project_id: Optional[str] = None
    authorization_project_name: Optional[str] = None
