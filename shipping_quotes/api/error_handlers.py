from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shipping_quotes.core.exceptions import APIException, IntegrationException
from shipping_quotes.core.logging import get_logger

logger = get_logger(__name__)

# Context keys never echoed back to a client
REDACTED_KEYS = ("client_secret", "access_token", "user_token", "secret_key")


def error_response(
    status_code: int,
    code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """Build the ``{"error": {...}}`` body shared by every failure."""
    error: Dict[str, Any] = {"code": code, "message": message, "status_code": status_code}
    if context is not None:
        error["context"] = context
    return JSONResponse(status_code=status_code, content={"error": error})


async def handle_api_exception(request: Request, exc: APIException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{request.method} {request.url.path} failed: {exc.detail}",
        extra={"data": {"status_code": exc.status_code, "error_code": exc.code}}
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_integration_exception(request: Request, exc: IntegrationException) -> JSONResponse:
    """
    Render a partner API failure.

    The full context goes to the log; credentials are masked in the response.
    """
    logger.error(
        f"{request.method} {request.url.path} partner call failed: {exc.detail}",
        extra={"data": {"error_code": exc.code, "context": exc.context}}
    )
    context = {
        key: "[REDACTED]" if key in REDACTED_KEYS else value
        for key, value in exc.context.items()
    }
    return error_response(exc.status_code, exc.code, exc.detail, context)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation error",
        {"errors": errors},
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_server_error",
        "An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error renderers; the most specific class wins."""
    app.add_exception_handler(IntegrationException, handle_integration_exception)
    app.add_exception_handler(APIException, handle_api_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_exception)
