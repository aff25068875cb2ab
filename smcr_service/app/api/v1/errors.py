# Translation of store exceptions into HTTP responses, shared by the v1 routers
import logging

from fastapi import HTTPException
from pydantic import ValidationError

from smcr_service.app.service.exceptions import (
    ConfigurationError,
    FirmNotSelectedError,
    ImmutableTimelineError,
    PersonNotFoundError,
    RoleOverlapError,
    SmcrApiError,
    WorkflowNotFoundError,
    WorkflowTemplateNotFoundError,
)

logger = logging.getLogger(__name__)

_BAD_REQUEST = (FirmNotSelectedError, RoleOverlapError, ImmutableTimelineError, ValidationError)
_NOT_FOUND = (PersonNotFoundError, WorkflowNotFoundError, WorkflowTemplateNotFoundError)


def to_http_exception(e: Exception, action: str) -> HTTPException:
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, _NOT_FOUND):
        logger.warning(f"Not found while {action}: {e}")
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, _BAD_REQUEST):
        logger.warning(f"Rejected request while {action}: {e}")
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SmcrApiError):
        logger.warning(f"SM&CR backend returned {e.status} while {action}: {e.message}")
        detail = {"message": e.message, "status": e.status}
        if e.details:
            detail["details"] = e.details
        return HTTPException(status_code=502, detail=detail)
    if isinstance(e, ConfigurationError):
        logger.error(f"Configuration problem while {action}: {e}")
        return HTTPException(status_code=503, detail=str(e))
    logger.error(f"Unexpected error while {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"An unexpected error occurred while {action}.")
