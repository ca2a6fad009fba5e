"""Exception handlers. Every error body has the shape ``{"error": message}``."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()

DEFAULT_VALIDATION_MESSAGE = "Dữ liệu không hợp lệ"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def first_validation_message(errors: list[dict[str, Any]]) -> str:
    """The message of the first failing field, without pydantic's custom-validator prefix."""
    if not errors:
        return DEFAULT_VALIDATION_MESSAGE
    return str(errors[0].get("msg") or DEFAULT_VALIDATION_MESSAGE).removeprefix("Value error, ")


async def handle_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """400, not FastAPI's 422: the first message up front, every failure under ``details``."""
    errors = list(exc.errors())
    details = [{"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))} for err in errors]
    return JSONResponse({"error": first_validation_message(errors), "details": details}, status_code=400)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", method=request.method, path=request.url.path, exc_info=exc)
    return JSONResponse({"error": INTERNAL_ERROR_MESSAGE}, status_code=500)


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
