"""Builds the orchestrator and its collaborators from :class:`Settings`."""


import logging

from docrelay.core.config import Settings
from docrelay.services.notifications import WebhookNotifier
from docrelay.services.orchestrator import UploadOrchestrator
from docrelay.services.records import RecordUpdater
from docrelay.services.uploaders import (
    AttachmentApiUploader,
    AttachmentUploader,
    BlobStoreUploader,
    ObjectStoreUploader,
)
from docrelay.services.validator import FileValidator

logger = logging.getLogger(__name__)


def build_uploader(settings: Settings) -> AttachmentUploader:
    if settings.storage_backend == "s3":
        return ObjectStoreUploader(
            bucket=settings.aws_s3_bucket,
            region=settings.aws_region,
            max_file_bytes=settings.max_file_bytes,
            key_prefix=settings.s3_key_prefix,
            public_base_url=settings.s3_public_base_url,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    if settings.storage_backend == "airtable":
        return AttachmentApiUploader(
            token=settings.airtable_api_token,
            base_id=settings.airtable_base_id,
            max_file_bytes=settings.max_file_bytes,
            upload_url=settings.airtable_upload_url,
            timeout=settings.http_timeout_seconds,
        )
    return BlobStoreUploader(
        token=settings.blob_read_write_token,
        max_file_bytes=settings.max_file_bytes,
        api_url=settings.blob_api_url,
        timeout=settings.http_timeout_seconds,
    )


def build_orchestrator(settings: Settings) -> UploadOrchestrator:
    """Raises ``ConfigurationError`` when required settings are missing."""
    settings.require_complete()

    uploader = build_uploader(settings)
    notifier = None
    if settings.notifications_enabled:
        notifier = WebhookNotifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    else:
        logger.info("NOTIFICATION_WEBHOOK_URL not set; webhook notifications disabled")

    return UploadOrchestrator(
        uploader=uploader,
        record_updater=RecordUpdater(
            token=settings.airtable_api_token,
            base_id=settings.airtable_base_id,
            table_id=settings.airtable_table_id,
            api_url=settings.airtable_api_url,
            timeout=settings.http_timeout_seconds,
        ),
        validator=FileValidator(settings.max_file_bytes),
        notifier=notifier,
    )
