import logging
from typing import Any, Dict, Optional

from fastapi.exceptions import RequestValidationError
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors the API reports to callers."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.error)
        self.message = message or self.error

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    """A required field is missing or invalid. Raised before anything is persisted."""

    status_code = 400
    error = "Validation error"


class NotFoundError(AppError):
    """Record missing or not owned by the caller; both look the same from outside."""

    status_code = 404
    error = "Not found"


class ConflictError(AppError):
    status_code = 409
    error = "Conflict"


class InvalidStateTransition(AppError):
    status_code = 409
    error = "Invalid inspection status transition"


class ExternalServiceError(AppError):
    """The AI vision call failed, timed out or returned something unparsable."""

    status_code = 502
    error = "External service error"


class PersistenceError(AppError):
    status_code = 500
    error = "Storage failure"

    def to_dict(self) -> Dict[str, Any]:
        # storage details stay in the logs
        return {"error": self.error}


class AnalysisFailedError(AppError):
    """Analysis of an inspection failed; the inspection has been marked failed."""

    status_code = 502
    error = "AI analysis failed"

    def __init__(self, inspection_id: int, message: str):
        super().__init__(message)
        self.inspection_id = inspection_id

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, "inspection_id": self.inspection_id}


def register_exception_handlers(app):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message, extra={"error_type": type(exc).__name__})
        else:
            logger.info("Request rejected", extra={"status_code": exc.status_code, "error_type": type(exc).__name__})
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.info("HTTP exception", extra={"status_code": exc.status_code})
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation error", extra={"errors": exc.errors()})
        return JSONResponse({"error": "Validation error", "details": _jsonable_errors(exc)}, status_code=422)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse({"error": "Internal server error"}, status_code=500)


def _jsonable_errors(exc: RequestValidationError):
    # pydantic may put exception instances in "ctx"
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors
