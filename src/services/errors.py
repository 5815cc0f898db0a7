# src/services/errors.py
"""
Обработчики исключений FastAPI: доменные ошибки -> ErrorResponse.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.logger import log_error, log_warning
from src.core.exceptions import PersistenceFailure, TrackingError
from src.shared.models.common import ErrorResponse


def error_response(error: TrackingError) -> JSONResponse:
    body = ErrorResponse(error_code=error.error_code, message=error.message, details=error.details or None)
    return JSONResponse(status_code=error.status_code, content=body.model_dump())


def install_exception_handlers(app: FastAPI) -> None:
    """Регистрирует обработчики доменных ошибок и ошибок валидации запроса."""

    @app.exception_handler(TrackingError)
    async def handle_tracking_error(request: Request, exc: TrackingError) -> JSONResponse:
        if isinstance(exc, PersistenceFailure):
            await log_error(f"{request.method} {request.url.path}: {exc.message}", extra={"details": exc.details})
        else:
            await log_warning(f"{request.method} {request.url.path}: {exc.message}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        body = ErrorResponse(
            error_code="validation_error",
            message="Некорректный запрос",
            details={"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
            ]},
        )
        return JSONResponse(status_code=400, content=body.model_dump())
