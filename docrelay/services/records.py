"""Record-store updater: one merge patch per submission."""


import logging
from collections.abc import Mapping
from urllib.parse import quote

import httpx

from docrelay.core.exceptions import RecordUpdateError
from docrelay.domain.documents import (
    DocumentType,
    RecordStatus,
    RecordUpdateResult,
    UploadedAttachment,
)

logger = logging.getLogger(__name__)

STATUS_FIELD = "Status"
SUBMITTED_FLAG_FIELD = "Documents Submitted"


def build_fields(
    attachments: Mapping[DocumentType, UploadedAttachment],
    status: RecordStatus,
) -> dict:
    """The ``fields`` object of the patch: status, flag, and only the attachments produced."""
    fields: dict = {
        STATUS_FIELD: status.value,
        SUBMITTED_FLAG_FIELD: status is RecordStatus.DOCUMENTS_SUBMITTED,
    }
    for document_type in DocumentType:
        attachment = attachments.get(document_type)
        if attachment is not None:
            fields[document_type.record_field] = [attachment.as_record_value()]
    return fields


class RecordUpdater:
    """PATCHes ``{api}/{baseId}/{tableId}/{recordId}`` on the record store."""

    def __init__(
        self,
        token: str,
        base_id: str,
        table_id: str,
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = token
        self.base_id = base_id
        self.table_id = table_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def record_url(self, record_id: str) -> str:
        return "/".join(
            [
                self.api_url,
                quote(self.base_id, safe=""),
                quote(self.table_id, safe=""),
                quote(record_id, safe=""),
            ]
        )

    async def update(
        self,
        record_id: str,
        attachments: Mapping[DocumentType, UploadedAttachment],
        status: RecordStatus = RecordStatus.DOCUMENTS_SUBMITTED,
    ) -> RecordUpdateResult:
        fields = build_fields(attachments, status)
        url = self.record_url(record_id)
        logger.info(
            "Updating record %s: status=%s attachments=%s",
            record_id,
            status.value,
            sorted(t.value for t in attachments),
        )
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.patch(
                    url,
                    headers={"Authorization": f"Bearer {self._token}"},
                    json={"fields": fields},
                )
        except httpx.TimeoutException as exc:
            raise RecordUpdateError(
                f"Record store timed out updating {record_id}", timed_out=True
            ) from exc
        except httpx.HTTPError as exc:
            raise RecordUpdateError(f"Record store update of {record_id} failed: {exc}") from exc

        if response.is_error:
            raise RecordUpdateError(
                f"Record store rejected update of {record_id}: {response.status_code}",
                backend_status=response.status_code,
                body=response.text,
            )
        try:
            raw = response.json()
        except ValueError:
            raw = {}
        return RecordUpdateResult(record_id=record_id, fields=fields, raw=raw)
