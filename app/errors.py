import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


class MailroomError(HTTPException):
    """HTTP error with a stable machine code and a user-facing message."""

    status_code = 500
    code = "mailroom_error"
    message = "Request failed"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.message
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": self.message, "details": details},
        )

    def __str__(self) -> str:
        return self.message


class QueueExhausted(MailroomError):
    status_code = 409
    code = "queue_exhausted"
    message = "No package numbers available"


class ResidentNotFound(MailroomError):
    status_code = 404
    code = "resident_not_found"
    message = "Resident not found in this mailroom"


class PackageNotFound(MailroomError):
    status_code = 404
    code = "package_not_found"
    message = "Package not found"


class InvalidTransition(MailroomError):
    status_code = 409
    code = "invalid_transition"
    message = "Package is no longer waiting"


class SlotNotFound(MailroomError):
    status_code = 500
    code = "slot_not_found"
    message = "Package number was never provisioned"


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
