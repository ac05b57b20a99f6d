from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.core import ErrorCategory, get_logger

from services.gateway.application.schemas import INTERNAL_ERROR, VALIDATION_ERROR, ErrorResponse

logger = get_logger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.UNAVAILABLE: 503,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.INTERNAL: 500,
}


def status_for(category: ErrorCategory) -> int:
    return STATUS_BY_CATEGORY.get(category, 500)


def error_response(request: Request, error_code: str, message: str,
                   category: ErrorCategory) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        category=category,
        timestamp=datetime.now(timezone.utc),
        path=request.url.path,
    )
    return JSONResponse(status_code=status_for(category), content=body.model_dump(mode="json"))


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        # Drop the leading "body" / "query" segment
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages)


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning(f"Validation error on {request.url.path}: {message}")
        return error_response(request, VALIDATION_ERROR, message, ErrorCategory.VALIDATION)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"Unexpected error on {request.url.path}: {exc}", exc_info=True)
        return error_response(request, INTERNAL_ERROR, "Internal server error", ErrorCategory.INTERNAL)
