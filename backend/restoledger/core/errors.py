"""Error taxonomy for the financial services.

Services raise these; ``install_error_handlers`` maps them onto
``{"error": <message>}`` JSON bodies with the matching HTTP status.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "invalid_request"


class NotFoundError(AppError):
    status_code = 404
    default_message = "not_found"


class ConflictError(AppError):
    status_code = 409
    default_message = "conflict"


class ConstraintError(AppError):
    status_code = 500
    default_message = "operation blocked by linked records; remove the references first"


class IntegrityViolation(AppError):
    status_code = 500
    default_message = "ledger_update_failed"


def _error_body(message: str) -> dict:
    return {"error": message}


def _format_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = err.get("msg", "invalid value")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts) or "invalid_request"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            log.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        message = _format_validation(exc)
        log.warning("%s %s rejected (400): %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content=_error_body(message))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("%s %s crashed", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content=_error_body("internal_error"))
