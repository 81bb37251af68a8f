"""
FastAPI middleware for request logging and error handling.

Every request gets an ID that is logged, echoed in the X-Request-ID header
and included in error bodies; exception handlers turn API and maintenance
errors into the standard error response.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from labtrack.core.error_handling import (
    APIException,
    create_error_response,
    handle_maintenance_pass_error,
    handle_validation_error,
)
from labtrack.core.logging import app_logger, generate_request_id, get_client_ip
from labtrack.src.services.exceptions import MaintenancePassError


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = generate_request_id()
        request.state.request_id = request_id

        client_ip = get_client_ip(request)
        method = request.method
        path = request.url.path
        start_time = time.time()

        app_logger.info(
            f"Request started: {method} {path}",
            extra={
                "event_type": "request_start",
                "request_id": request_id,
                "method": method,
                "endpoint": path,
                "client_ip": client_ip,
            }
        )

        response = await call_next(request)
        response_time = time.time() - start_time

        app_logger.info(
            f"{method} {path} - {response.status_code} - {response_time:.3f}s",
            extra={
                "event_type": "api_request",
                "request_id": request_id,
                "method": method,
                "endpoint": path,
                "status_code": response.status_code,
                "response_time": response_time,
                "client_ip": client_ip,
            }
        )

        response.headers["X-Request-ID"] = request_id
        return response


def register_exception_handlers(app: FastAPI):
    """Register all exception handlers."""

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        return create_error_response(
            request=request,
            status_code=exc.status_code,
            error=exc.detail,
            error_code=exc.error_code,
            details=exc.context or None,
            headers=exc.headers
        )

    @app.exception_handler(MaintenancePassError)
    async def maintenance_pass_error_handler(request: Request, exc: MaintenancePassError):
        return handle_maintenance_pass_error(request, exc.pass_name, exc.cause)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        return handle_validation_error(request, exc.errors())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return create_error_response(
            request=request,
            status_code=exc.status_code,
            error=exc.detail or "HTTP error occurred",
            error_code="HTTP_ERROR"
        )


def setup_middleware(app: FastAPI):
    """Setup all middleware for the application."""
    register_exception_handlers(app)
    app.add_middleware(RequestLoggingMiddleware)
