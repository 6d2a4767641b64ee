from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from geo_gateway.errors import (
    AppError,
    ConflictError,
    InvalidInputError,
    IpDeniedError,
    IpProviderError,
    NotFoundError,
    UpstreamServiceError,
    error_code,
)
from geo_gateway.logger import logger

# Checked in order; ProviderLookupError is both an IpProviderError and a
# NotFoundError and must map to 404, so NotFoundError comes first.
ERROR_STATUS_CODES: list[tuple[type[AppError], int]] = [
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (IpDeniedError, status.HTTP_403_FORBIDDEN),
    (UpstreamServiceError, status.HTTP_502_BAD_GATEWAY),
    (IpProviderError, status.HTTP_502_BAD_GATEWAY),
]


def _status_for(exc: AppError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_cls):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _normalize_pydantic_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Make sure Pydantic error dicts are JSON-serializable."""
    normalized: list[dict[str, Any]] = []
    for error in errors:
        e = dict(error)
        ctx = e.get("ctx")
        if isinstance(ctx, dict):
            # Convert any non-serializable ctx values (e.g. exceptions) to strings.
            e["ctx"] = {k: str(v) for k, v in ctx.items()}
        normalized.append(e)
    return normalized


def _build_validation_error_payload() -> dict:
    """Consistent payload for request validation errors.

    Only `code` and `message` are exposed; field-level details stay in the logs.
    IP literals are checked by the services, so anything failing here is a
    malformed request body.
    """
    return {
        "code": "invalid_request",
        "message": "Invalid request parameters",
    }


async def app_error_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    """Translate a domain error into a `{code, message}` JSON response."""
    status_code = _status_for(exc)
    log_message = f"{type(exc).__name__} path={request.url.path} method={request.method} error={exc}"
    if isinstance(exc, UpstreamServiceError):
        logger.error(f"Upstream IP provider error {log_message}", exc_info=exc)
    else:
        logger.info(f"Request failed {log_message}")

    return JSONResponse(
        status_code=status_code,
        content={"code": error_code(exc), "message": str(exc)},
    )


async def pydantic_validation_exception_handler(
    request: Request, exc: ValidationError | RequestValidationError
) -> JSONResponse:
    """Handle validation errors raised while parsing the request."""
    logger.info(
        "Validation error during request handling "
        f"path={request.url.path} method={request.method} errors={_normalize_pydantic_errors(list(exc.errors()))}"
    )
    payload = _build_validation_error_payload()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    logger.exception(
        f"Unhandled exception while processing request: {repr(exc)} path={request.url.path} method={request.method}"
    )
    content: dict[str, Any] = {
        "code": "internal_error",
        "message": "An unexpected error occurred while processing the request.",
    }
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )
