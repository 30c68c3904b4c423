"""Error normalization and handlers.

Services raise AppError subclasses; handlers render every failure as
{"error": {"code", "message", "request_id"}, "detail"} with an x-request-id header.
The scoring engine raises none of these.
"""

from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from missionboard.core.logging import get_request_id, log_event


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    """Bad input or configuration (weights, dates, log payloads)."""
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    """Write refused because of current state (duplicate join, full challenge, started challenge)."""
    code = "conflict"
    status_code = 409


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_response(status_code: int, code: str, message: str, request_id: str) -> JSONResponse:
    payload = {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }
    response = JSONResponse(status_code=status_code, content=payload)
    response.headers["x-request-id"] = request_id
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    log_event(
        "error" if exc.status_code >= 500 else "warning",
        "app.error",
        request_id=rid,
        error_code=exc.code,
        extra={"error_message": exc.message, "status": exc.status_code, "path": request.url.path},
    )
    return _error_response(exc.status_code, exc.code, exc.message, rid)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
    log_event("warning", "request.invalid", request_id=rid, error_code="validation_error", extra={"path": request.url.path})
    return _error_response(422, "validation_error", message, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    log_event("warning", "http.error", request_id=rid, error_code=code, extra={"status": exc.status_code})
    return _error_response(exc.status_code, code, message, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    log_event(
        "error",
        "unhandled.exception",
        request_id=rid,
        error_code="internal_error",
        extra={"exception": repr(exc), "path": request.url.path},
    )
    return _error_response(500, "internal_error", "Unexpected error", rid)
