"""
Error Handlers

Every failure leaves the API as {"error": {"code", "message", "details"}}
with the request's correlation id echoed in X-Correlation-Id.
"""
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ...domain.errors import DomainError, ValidationError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _error_response(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Correlation-Id": get_correlation_id() or ""}
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Render a DomainError with its own status code.

    Client errors (bad transitions, stale versions, unknown statuses) are
    logged at WARNING; storage failures at ERROR.
    """
    level = "error" if exc.http_status >= 500 else "warning"
    getattr(logger, level)(
        f"{request.method} {request.url.path} failed: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code}
    )
    return _error_response(exc.http_status, exc.to_dict())


def _field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "Invalid value"),
        })
    return errors


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters map to VALIDATION_ERROR (400)"""
    errors = _field_errors(exc)
    logger.warning(
        f"Request validation failed: {request.method} {request.url.path} {errors}",
        extra={"error_code": ValidationError.error_code}
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ValidationError("Request validation failed", details={"errors": errors}).to_dict()
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled exceptions; full stack trace goes to the error log"""
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {"correlation_id": get_correlation_id()}
            }
        }
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
