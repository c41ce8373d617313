"""
Standardized error handling for the ReportDesk occurrence service
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

ERROR_REGISTRY = {
    400: ("OCC-400", "Bad Request: General validation error", False),
    401: ("OCC-401", "Unauthorized: Invalid or expired JWT", False),
    403: ("OCC-403", "Forbidden: Operation not permitted", False),
    404: ("OCC-404", "Not Found: Resource does not exist", False),
    409: ("OCC-409", "Conflict: Resource already exists", False),
    422: ("OCC-422", "Unprocessable Entity: Semantic validation error", False),
    500: ("OCC-500", "Internal Server Error: Generic server failure", True),
    503: ("OCC-503", "Service Unavailable: Storage or downstream failure", True),
}


class ReportDeskError(Exception):
    """Base class for errors raised by the service layer"""
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)
        self.message = message

    def extra(self) -> Dict[str, Any]:
        return {}


class ValidationError(ReportDeskError):
    """Field-level input errors, reported all at once"""
    status_code = 422

    def __init__(self, errors: Dict[str, List[str]], message: str = "The given data was invalid."):
        super().__init__(message)
        self.errors = errors

    def extra(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class NotFound(ReportDeskError):
    status_code = 404

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class PermissionDenied(ReportDeskError):
    """
    Precondition failure on a user action.

    The message is the same whatever failed; ``reasons`` lists every
    precondition that did not hold.
    """
    status_code = 403

    def __init__(self, message: str, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.reasons = reasons or []

    def extra(self) -> Dict[str, Any]:
        return {"reasons": self.reasons}


class InvalidStatusTransition(ReportDeskError):
    status_code = 422

    def __init__(self, current: str, requested: str):
        super().__init__(f"Invalid status transition from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class AttachmentStorageError(ReportDeskError):
    status_code = 503


def error_body(status_code: int, message: Optional[str], **extra: Any) -> Dict[str, Any]:
    error_code, default_message, retryable = ERROR_REGISTRY.get(
        status_code,
        ("OCC-500", "Internal Server Error", True)
    )
    return {
        "transaction_id": str(uuid.uuid4()),
        "error_code": error_code,
        "message": message or default_message,
        "retryable": retryable,
        **extra,
    }


async def error_handler(request: Request, exc: StarletteHTTPException):
    """Standardized error handler for all HTTP exceptions, unknown routes included"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def domain_error_handler(request: Request, exc: ReportDeskError):
    """Render service-layer errors in the same envelope as HTTP errors"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, **exc.extra()),
    )


def request_field_errors(errors) -> Dict[str, List[str]]:
    """Group FastAPI request errors by field, dropping the path/query/body prefix"""
    grouped: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "__root__")
        grouped.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return grouped


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Render malformed path, query and body input in the standard envelope"""
    return JSONResponse(
        status_code=422,
        content=error_body(422, "The given data was invalid.", errors=request_field_errors(exc.errors())),
    )
