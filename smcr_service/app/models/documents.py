from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .firm import new_id, utc_now_iso

DocumentCategory = Literal["cv", "dbs", "reference", "qualification", "id", "other"]
WorkflowDocumentStatus = Literal["pending", "reviewed"]


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("doc"))
    person_id: str
    category: DocumentCategory = "other"
    name: str
    type: str = "application/octet-stream"
    size: int = 0
    uploaded_at: str = Field(default_factory=utc_now_iso)
    notes: Optional[str] = None


class WorkflowDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("wdoc"))
    firm_id: str
    workflow_id: str
    step_id: str
    name: str
    type: str = "application/octet-stream"
    size: int = 0
    uploaded_at: str = Field(default_factory=utc_now_iso)
    summary: Optional[str] = None
    status: WorkflowDocumentStatus = "pending"


class DocumentUpload(BaseModel):
    """An uploaded file held in memory until it is forwarded to the backend."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"
    category: DocumentCategory = "other"
    notes: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)
