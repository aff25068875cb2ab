"""
Custom exceptions for the SM&CR workspace service.
"""
from typing import Optional

class BaseSmcrError(Exception):
    """Base class for exceptions in this module."""
    pass

class FirmNotSelectedError(BaseSmcrError):
    """Raised when a firm-scoped operation is attempted with no active firm."""
    def __init__(self, action: str, message: Optional[str] = None):
        self.action = action
        super().__init__(message or f"Select a firm before {action}")

class RoleOverlapError(BaseSmcrError):
    """Raised when a role assignment collides with an existing assignment of the same function."""
    ALREADY_ASSIGNED = "This role is already assigned to this person"
    PERIOD_OVERLAP = "This role assignment overlaps with an existing assignment period"

    def __init__(self, conflicting_role_id: str, open_ended: bool):
        self.conflicting_role_id = conflicting_role_id
        self.open_ended = open_ended
        super().__init__(self.ALREADY_ASSIGNED if open_ended else self.PERIOD_OVERLAP)

class WorkflowTemplateNotFoundError(BaseSmcrError):
    """Raised when a workflow is launched from a template id that is not in the catalog."""
    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Workflow template {template_id} not found")

class PersonNotFoundError(BaseSmcrError):
    def __init__(self, person_id: str):
        self.person_id = person_id
        super().__init__(f"Person with id {person_id} not found")

class WorkflowNotFoundError(BaseSmcrError):
    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__("Workflow not found")

class ImmutableTimelineError(BaseSmcrError):
    """Raised when an update tries to rewrite a breach timeline instead of appending to it."""
    def __init__(self, breach_id: str):
        self.breach_id = breach_id
        super().__init__("Breach timeline entries can only be appended")

class SmcrApiError(BaseSmcrError):
    """Raised when the remote SM&CR backend answers with a non-2xx status."""
    def __init__(self, status: int, message: str, details: Optional[str] = None):
        self.status = status
        self.message = message
        self.details = details
        super().__init__(message)

class ConfigurationError(BaseSmcrError):
    """Raised when a configuration issue is detected."""
    pass
