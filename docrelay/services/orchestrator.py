"""Upload orchestrator -- drives one submission through the relay pipeline.

    Received -> Validated -> Uploading -> RecordUpdating -> NotifyingBestEffort -> Completed

Any stage up to and including RecordUpdating can end in Failed(stage, reason).
Notification can only produce a logged warning.

Behaviour worth knowing when reading failures:
  - Validation failures happen before any I/O: nothing was uploaded.
  - An upload failure aborts the submission after all three uploads have
    settled. Files that did reach the backing store stay there; there is no
    compensating delete.
  - The record is patched exactly once, and only when all three uploads
    succeeded. A partial set of attachments never reaches the record.
"""


import asyncio
import logging
from dataclasses import dataclass, field

from docrelay.core.exceptions import (
    AppException,
    NotificationWarning,
    RecordUpdateError,
    UploadError,
    ValidationError,
)
from docrelay.domain.documents import (
    DocumentType,
    IncomingFile,
    RecordStatus,
    Stage,
    Submission,
    UploadedAttachment,
)
from docrelay.services.notifications import WebhookNotifier, build_summary
from docrelay.services.records import RecordUpdater
from docrelay.services.uploaders import AttachmentUploader
from docrelay.services.validator import FileValidator

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    success: bool
    record_id: str | None
    stage: Stage
    documents_uploaded: dict[str, bool] = field(default_factory=dict)
    message: str = ""
    error: AppException | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return 200 if self.success else self.error.status_code


class UploadOrchestrator:
    def __init__(
        self,
        uploader: AttachmentUploader,
        record_updater: RecordUpdater,
        validator: FileValidator | None = None,
        notifier: WebhookNotifier | None = None,
    ):
        self.uploader = uploader
        self.record_updater = record_updater
        self.validator = validator or FileValidator(uploader.max_file_bytes)
        self.notifier = notifier

    async def handle(self, submission: Submission) -> SubmissionOutcome:
        """Run the pipeline. Every incoming file is released before this returns."""
        try:
            return await self._run(submission)
        finally:
            await asyncio.gather(
                *(f.release() for f in submission.files.values() if f is not None)
            )

    async def _run(self, submission: Submission) -> SubmissionOutcome:
        record_id = (submission.record_id or "").strip()
        logger.info("Submission received for record %r", record_id or None)

        try:
            self._validate(record_id, submission)
        except ValidationError as exc:
            logger.info("Submission for record %r rejected: %s", record_id or None, exc.message)
            return self._failed(record_id, Stage.VALIDATED, exc)

        try:
            attachments = await self._upload_all(record_id, submission)
        except UploadError as exc:
            logger.error("Upload failed for record %s: %s", record_id, exc.message)
            return self._failed(record_id, Stage.UPLOADING, exc)

        try:
            await self.record_updater.update(
                record_id, attachments, RecordStatus.DOCUMENTS_SUBMITTED
            )
        except RecordUpdateError as exc:
            logger.error(
                "Record update failed for %s (backend status %s): %s %s",
                record_id,
                exc.backend_status,
                exc.message,
                exc.body,
            )
            return self._failed(record_id, Stage.RECORD_UPDATING, exc)

        warnings = await self._notify(submission, attachments)

        logger.info("Submission for record %s completed", record_id)
        return SubmissionOutcome(
            success=True,
            record_id=record_id,
            stage=Stage.COMPLETED,
            documents_uploaded={t.response_key: t in attachments for t in DocumentType},
            message="All documents uploaded successfully",
            warnings=warnings,
        )

    def _validate(self, record_id: str, submission: Submission) -> None:
        if not record_id:
            raise ValidationError("recordId is required")
        rejected = self.validator.check_all(submission.files)
        if rejected:
            raise ValidationError(
                "; ".join(verdict.detail for verdict in rejected.values()),
                rejections=[(t.value, v.reason.value) for t, v in rejected.items()],
            )

    async def _upload_all(
        self, record_id: str, submission: Submission
    ) -> dict[DocumentType, UploadedAttachment]:
        document_types = list(DocumentType)
        results = await asyncio.gather(
            *(
                self._upload_one(record_id, t, submission.file_for(t), submission)
                for t in document_types
            ),
            return_exceptions=True,
        )

        attachments: dict[DocumentType, UploadedAttachment] = {}
        first_error: UploadError | None = None
        for document_type, result in zip(document_types, results):
            if isinstance(result, UploadError):
                logger.warning(
                    "%s upload for record %s failed: %s", document_type.value, record_id, result.message
                )
                first_error = first_error or result
            elif isinstance(result, Exception):
                logger.error(
                    "%s upload for record %s raised", document_type.value, record_id, exc_info=result
                )
                error = UploadError(f"{document_type.value} upload failed: {result}")
                error.__cause__ = result
                first_error = first_error or error
            elif isinstance(result, BaseException):
                raise result
            else:
                attachments[document_type] = result

        if first_error is not None:
            if attachments:
                logger.warning(
                    "Record %s left with orphaned uploads: %s",
                    record_id,
                    [a.filename for a in attachments.values()],
                )
            raise first_error
        return attachments

    async def _upload_one(
        self,
        record_id: str,
        document_type: DocumentType,
        file: IncomingFile,
        submission: Submission,
    ) -> UploadedAttachment:
        metadata = {
            "candidate-email": submission.candidate_email or "",
            "candidate-name": submission.candidate_name or "",
            "document-type": document_type.value,
        }
        return await self.uploader.upload(file, record_id, document_type, metadata=metadata)

    async def _notify(
        self, submission: Submission, attachments: dict[DocumentType, UploadedAttachment]
    ) -> list[str]:
        if self.notifier is None:
            return []
        try:
            await self.notifier.notify(build_summary(submission, attachments))
        except NotificationWarning as exc:
            logger.warning("Notification for record %s not delivered: %s", submission.record_id, exc)
            return [str(exc)]
        except Exception as exc:
            logger.exception("Notification for record %s raised", submission.record_id)
            return [f"Notification error: {exc}"]
        return []

    @staticmethod
    def _failed(record_id: str, stage: Stage, exc: AppException) -> SubmissionOutcome:
        return SubmissionOutcome(
            success=False,
            record_id=record_id or None,
            stage=stage,
            message=exc.message,
            error=exc,
        )
