# sunnah_audio/core/responses.py
"""
JSON envelopes shared by every endpoint.

Success: {"success": true, "data": ..., "message": "...", "pagination"?: {...}}
Failure: {"success": false, "message": "..."}
"""
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from tortoise.exceptions import DoesNotExist, IntegrityError

from sunnah_audio.core.errors import AppError

logger = logging.getLogger("uvicorn.error")


def success(data: Any = None, message: str = "OK", pagination: dict | None = None) -> dict:
    body = {"success": True, "data": data, "message": message}
    if pagination is not None:
        body["pagination"] = pagination
    return body


def failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("[%s %s] %s: %s", request.method, request.url.path,
                         type(exc).__name__, exc.message, exc_info=exc.__cause__)
        return failure(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return failure(exc.status_code, message)

    @app.exception_handler(DoesNotExist)
    async def handle_does_not_exist(request: Request, exc: DoesNotExist):
        return failure(status.HTTP_404_NOT_FOUND, "The requested item was not found")

    # Unique-constraint races that slipped past an explicit check
    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        logger.warning("[%s %s] integrity error: %s", request.method, request.url.path, exc)
        return failure(status.HTTP_409_CONFLICT, "Resource already exists")

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return failure(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("[%s %s] unhandled error", request.method, request.url.path)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error has occurred")
