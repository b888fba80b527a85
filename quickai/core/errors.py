"""Error taxonomy and boundary handlers.

Every failure leaves the API in the same envelope:
``{"success": false, "message": ..., "error": {"code", "message", "request_id"}}``.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.requests import Request

from quickai.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    """Base for failures with a stable public code and HTTP status."""

    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class SizeLimitError(ValidationError):
    code = "size_limit_exceeded"


class AuthError(AppError):
    code = "unauthorized"
    status_code = 401


class PremiumRequiredError(AppError):
    code = "premium_required"
    status_code = 403


class QuotaExceededError(AppError):
    code = "quota_exceeded"
    status_code = 403


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class PersistenceError(AppError):
    code = "persistence_error"
    status_code = 500


class ProviderError(AppError):
    """Upstream generation/identity failure.

    ``message`` is safe to show to clients. ``detail`` keeps the upstream
    text for logs and is never serialized into a response.
    """
    code = "provider_error"
    status_code = 502

    def __init__(self, message: str, *, provider: Optional[str] = None, detail: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.provider = provider
        self.detail = detail


def _request_id_for(request: Request, explicit: Optional[str] = None) -> str:
    return explicit or getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def error_response(status_code: int, code: str, message: str, request_id: str) -> JSONResponse:
    body = {
        "success": False,
        "message": message,
        "error": {"code": code, "message": message, "request_id": request_id},
    }
    return JSONResponse(status_code=status_code, content=body, headers={"x-request-id": request_id})


async def app_error_handler(request: Request, exc: AppError):
    rid = _request_id_for(request, exc.request_id)
    fields = {"request_id": rid, "error_code": exc.code, "status": exc.status_code, "path": request.url.path}
    if isinstance(exc, ProviderError):
        fields.update(provider=exc.provider, upstream_detail=exc.detail)
    logger.log(logging.ERROR if exc.status_code >= 500 else logging.WARNING, exc.message, extra=fields)
    return error_response(exc.status_code, exc.code, exc.message, rid)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema failures (wrong types, unparseable JSON) become 400 validation_error."""
    rid = _request_id_for(request)
    message = "Invalid request"
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "form", "path", "query"))
        message = f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))
    logger.warning("request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 400})
    return error_response(400, "validation_error", message, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _request_id_for(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "HTTP error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return error_response(exc.status_code, code, message, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _request_id_for(request)
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    return error_response(500, "internal_error", "Unexpected error", rid)
