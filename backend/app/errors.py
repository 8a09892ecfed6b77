"""Unified JSON error envelope: ``{status, message, code, details}``."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)


def _title_from_status(status_code: int) -> str:
    mapping = {
        400: "Bad Request",
        401: "Unauthorized",
        402: "Payment Required",
        403: "Forbidden",
        404: "Not Found",
        409: "Conflict",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
    }
    return mapping.get(status_code, "Error")


def _envelope(
    *,
    status: int,
    message: Optional[str] = None,
    code: Optional[str] = None,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    return {
        "status": status,
        "message": message or _title_from_status(status),
        "code": code or _title_from_status(status).lower().replace(" ", "_"),
        "details": jsonable_encoder(details) if details is not None else {},
    }


def _parse_detail(detail: Any) -> tuple[Optional[str], Optional[str], Optional[Any]]:
    if isinstance(detail, dict):
        code = detail.get("code") if isinstance(detail.get("code"), str) else None
        message = detail.get("message") or detail.get("detail")
        message_text = message if isinstance(message, str) else None
        details = detail.get("details") or detail.get("errors")
        return message_text, code, details
    if isinstance(detail, str):
        return detail, None, None
    if detail is None:
        return None, None, None
    return str(detail), None, None


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        message, code, details = _parse_detail(exc.detail)
        return JSONResponse(
            _envelope(status=exc.status_code, message=message, code=code, details=details),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        message, code, details = _parse_detail(http_exc.detail)
        return JSONResponse(
            _envelope(status=http_exc.status_code, message=message, code=code, details=details),
            status_code=http_exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            _envelope(
                status=422,
                message="Request validation failed",
                code="validation_error",
                details=exc.errors(),
            ),
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            _envelope(status=500, code="internal_server_error"),
            status_code=500,
        )
