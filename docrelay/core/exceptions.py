"""Application-level exceptions and FastAPI exception handlers."""


from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

class AppException(Exception):
    """Base application exception."""

    stage: str = "Received"

    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)

class ValidationError(AppException):
    """Client-correctable input problem: missing record id, missing file, bad extension, too large.

    *rejections* holds ``(document_type, reason)`` pairs for the file slots that failed.
    """

    stage = "Validated"

    def __init__(self, message: str, rejections: list[tuple[str, str]] | None = None):
        self.rejections = rejections or []
        too_large = bool(self.rejections) and all(
            reason == "TooLarge" for _, reason in self.rejections
        )
        if too_large:
            super().__init__(message, status_code=413, code="PAYLOAD_TOO_LARGE")
        else:
            super().__init__(message, status_code=400, code="VALIDATION_ERROR")

class PayloadTooLargeError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=413, code="PAYLOAD_TOO_LARGE")

class ConfigurationError(AppException):
    """Deployment-time problem; never client-correctable."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500, code="CONFIGURATION_ERROR")

class UploadError(AppException):
    """Raised when the backing store rejects (or never answers) a file upload."""

    stage = "Uploading"

    def __init__(self, message: str, backend_status: int | None = None, timed_out: bool = False):
        self.backend_status = backend_status
        self.timed_out = timed_out
        if timed_out:
            super().__init__(message, status_code=504, code="UPSTREAM_TIMEOUT")
        else:
            super().__init__(message, status_code=500, code="UPLOAD_FAILED")

class RecordUpdateError(AppException):
    """Raised when the record store rejects the status/attachment patch."""

    stage = "RecordUpdating"

    def __init__(
        self,
        message: str,
        backend_status: int | None = None,
        body: str = "",
        timed_out: bool = False,
    ):
        self.backend_status = backend_status
        self.body = body
        self.timed_out = timed_out
        if timed_out:
            super().__init__(message, status_code=504, code="UPSTREAM_TIMEOUT")
        else:
            super().__init__(message, status_code=500, code="RECORD_UPDATE_FAILED")

class NotificationWarning(UserWarning):
    """Webhook delivery failed. Absorbed by the orchestrator; never fails a submission."""

# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def error_body(stage: str, code: str, message: str) -> dict:
    return {"success": False, "stage": stage, "code": code, "message": message}

_HTTP_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
}

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.stage, exc.code, exc.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("Received", _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=error_body("Received", "INTERNAL_ERROR", "An unexpected error occurred"),
        )
