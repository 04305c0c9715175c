"""Document upload endpoints -- thin HTTP layer.

Pipeline logic lives in :mod:`docrelay.services.orchestrator`.  This router
handles HTTP concerns only: the request-size ceiling, multipart parsing into a
:class:`Submission`, CORS preflight, and mapping the outcome to a status code.
"""


import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import FormData, UploadFile

from docrelay.core.config import request_ceiling, settings
from docrelay.core.exceptions import PayloadTooLargeError
from docrelay.domain.documents import DocumentType, IncomingFile, Submission
from docrelay.schemas.submission import (
    DocumentsUploaded,
    EnvironmentCheck,
    SubmissionFailure,
    SubmissionSuccess,
)
from docrelay.services.factory import build_orchestrator
from docrelay.services.orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Documents"])

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}

_TEXT_FIELDS = {
    "record_id": "recordId",
    "candidate_email": "candidateEmail",
    "candidate_name": "candidateName",
    "candidate_phone": "candidatePhone",
    "position": "position",
    "department": "department",
    "start_date": "startDate",
    "buddy_name": "buddyName",
    "buddy_email": "buddyEmail",
    "hr_rep": "hrRep",
}


@lru_cache
def _configured_orchestrator() -> UploadOrchestrator:
    return build_orchestrator(settings)


def get_orchestrator() -> UploadOrchestrator:
    """FastAPI dependency. Raises ``ConfigurationError`` until the backend is configured."""
    return _configured_orchestrator()


# ---------------------------------------------------------------------------
# Form handling
# ---------------------------------------------------------------------------

def _check_content_length(request: Request, max_file_bytes: int) -> None:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > request_ceiling(max_file_bytes):
        limit_mb = max_file_bytes / (1024 * 1024)
        raise PayloadTooLargeError(
            f"Request body too large; each document may be at most {limit_mb:g}MB."
        )


def _text(form: FormData, name: str) -> str | None:
    value = form.get(name)
    if isinstance(value, str):
        return value.strip() or None
    return None


async def submission_from_form(form: FormData) -> Submission:
    submission = Submission(**{attr: _text(form, name) for attr, name in _TEXT_FIELDS.items()})
    for document_type in DocumentType:
        value = form.get(document_type.form_field)
        if isinstance(value, UploadFile):
            submission.files[document_type] = await IncomingFile.from_upload(value)
        else:
            submission.files[document_type] = None
    return submission


# ---------------------------------------------------------------------------
# POST /api/upload-documents
# ---------------------------------------------------------------------------

@router.post(
    "/upload-documents",
    response_model=SubmissionSuccess,
    responses={
        400: {"model": SubmissionFailure},
        413: {"model": SubmissionFailure},
        500: {"model": SubmissionFailure},
        504: {"model": SubmissionFailure},
    },
)
async def upload_documents(
    request: Request,
    orchestrator: UploadOrchestrator = Depends(get_orchestrator),
):
    """Accept identity proof, address proof and offer letter for one record,
    store them in the configured backend and mark the record as submitted."""
    _check_content_length(request, orchestrator.validator.max_bytes)

    async with request.form(max_files=len(DocumentType) + 2) as form:
        submission = await submission_from_form(form)
        outcome = await orchestrator.handle(submission)

    if outcome.success:
        return SubmissionSuccess(
            record_id=outcome.record_id,
            documents_uploaded=DocumentsUploaded(**outcome.documents_uploaded),
            message=outcome.message,
            warnings=outcome.warnings,
        )

    failure = SubmissionFailure(
        stage=outcome.stage.value,
        code=outcome.error.code,
        message=outcome.message,
    )
    return JSONResponse(status_code=outcome.status_code, content=failure.model_dump(by_alias=True))


@router.options("/upload-documents", include_in_schema=False)
async def upload_documents_preflight() -> Response:
    return Response(status_code=200, headers=_CORS_HEADERS)


# ---------------------------------------------------------------------------
# GET /api/check-env
# ---------------------------------------------------------------------------

@router.get("/check-env", response_model=EnvironmentCheck)
async def check_env():
    """Which settings are present (never their values)."""
    configured = {
        "AIRTABLE_API_TOKEN": bool(settings.airtable_api_token),
        "AIRTABLE_BASE_ID": bool(settings.airtable_base_id),
        "AIRTABLE_TABLE_ID": bool(settings.airtable_table_id),
        "AWS_ACCESS_KEY_ID": bool(settings.aws_access_key_id),
        "AWS_SECRET_ACCESS_KEY": bool(settings.aws_secret_access_key),
        "AWS_S3_BUCKET": bool(settings.aws_s3_bucket),
        "BLOB_READ_WRITE_TOKEN": bool(settings.blob_read_write_token),
        "NOTIFICATION_WEBHOOK_URL": bool(settings.notification_webhook_url),
    }
    return EnvironmentCheck(
        storage_backend=settings.storage_backend,
        configured=configured,
        missing=settings.missing_settings(),
        notifications_enabled=settings.notifications_enabled,
    )
