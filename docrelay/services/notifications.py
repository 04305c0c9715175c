import logging
from collections.abc import Mapping
from datetime import datetime, timezone

import httpx

from docrelay.core.exceptions import NotificationWarning
from docrelay.domain.documents import DocumentType, Submission, UploadedAttachment

logger = logging.getLogger(__name__)

_URL_KEYS = {
    DocumentType.IDENTITY: "identityProofUrl",
    DocumentType.ADDRESS: "addressProofUrl",
    DocumentType.OFFER: "offerLetterUrl",
}


def build_summary(
    submission: Submission,
    attachments: Mapping[DocumentType, UploadedAttachment],
    submitted_at: datetime | None = None,
) -> dict:
    """Flat JSON summary posted to the automation webhook."""
    summary: dict = {
        "candidateEmail": submission.candidate_email,
        "recordId": submission.record_id,
        "candidateName": submission.candidate_name,
    }
    for document_type, key in _URL_KEYS.items():
        attachment = attachments.get(document_type)
        summary[key] = attachment.url if attachment else None
    summary["submissionTime"] = (submitted_at or datetime.now(timezone.utc)).isoformat()
    summary["documentsUploaded"] = True
    summary.update(submission.profile())
    return summary


class WebhookNotifier:
    """Posts a submission summary to an automation webhook. Raises NotificationWarning on failure."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def notify(self, payload: dict) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise NotificationWarning(f"Webhook delivery failed: {exc!r}") from exc
        if response.is_error:
            raise NotificationWarning(f"Webhook returned {response.status_code}")
        logger.info("Webhook notified for record %s", payload.get("recordId"))
