"""
Centralized error handling and response management.

This module provides the standardized error response body, the HTTP exception
types the routes raise, and the translation of maintenance-engine failures
into responses the admin tooling can tell apart.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from labtrack.core.logging import app_logger


class StandardErrorResponse(BaseModel):
    """Standardized error response schema."""
    model_config = ConfigDict(ser_json_timedelta='iso8601')

    success: bool = False
    error: str
    detail: Optional[str] = None  # Alias for 'error' for FastAPI compatibility
    error_code: Optional[str] = None
    details: Optional[Union[str, Dict[str, Any]]] = None
    field_errors: Optional[Dict[str, List[str]]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: Optional[str] = None

    def __init__(self, **data):
        super().__init__(**data)
        # Ensure detail mirrors error for FastAPI compatibility
        if self.detail is None:
            object.__setattr__(self, 'detail', self.error)


def create_error_response(
    request: Request,
    status_code: int,
    error: str,
    error_code: Optional[str] = None,
    details: Optional[Union[str, Dict[str, Any]]] = None,
    field_errors: Optional[Dict[str, List[str]]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Create standardized error response."""

    request_id = getattr(request.state, "request_id", None)

    response_data = StandardErrorResponse(
        error=error,
        error_code=error_code,
        details=details,
        field_errors=field_errors,
        request_id=request_id
    )

    app_logger.error(
        f"API Error: {error}",
        extra={
            "status_code": status_code,
            "error_code": error_code,
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "client_ip": getattr(request.client, "host", "unknown")
        }
    )

    return JSONResponse(
        status_code=status_code,
        content=response_data.model_dump(mode='json'),
        headers=headers
    )


def handle_validation_error(
    request: Request,
    validation_errors: List[Dict[str, Any]]
) -> JSONResponse:
    """Handle Pydantic validation errors with detailed field information."""

    field_errors = {}
    for error in validation_errors:
        field = ".".join(str(loc) for loc in error.get("loc", []))
        message = error.get("msg", "Invalid value")

        if field not in field_errors:
            field_errors[field] = []
        field_errors[field].append(message)

    return create_error_response(
        request=request,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        error="Validation failed",
        error_code="VALIDATION_ERROR",
        field_errors=field_errors
    )


class APIException(HTTPException):
    """Base API exception with enhanced error handling."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.context = context or {}


class NotFoundError(APIException):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
            error_code="RESOURCE_NOT_FOUND",
            context={"resource": resource, "identifier": identifier}
        )


class UnauthenticatedError(APIException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHENTICATED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class UnprocessableTransactionError(APIException):
    def __init__(self, transaction_id: str, reason: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Transaction cannot be evaluated: {reason}",
            error_code="INVALID_TRANSACTION_DATA",
            context={"transaction_id": transaction_id}
        )


def handle_maintenance_pass_error(request: Request, pass_name: str, cause: Exception) -> JSONResponse:
    """A pass could not commit; report which one so the operator can re-run."""

    return create_error_response(
        request=request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error=f"Maintenance failed during {pass_name}",
        error_code="MAINTENANCE_PASS_FAILED",
        details={"pass": pass_name, "cause": cause.__class__.__name__}
    )
