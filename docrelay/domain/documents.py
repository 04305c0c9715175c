"""Submission-scoped domain types.

Nothing here is persisted: a :class:`Submission` and its :class:`IncomingFile`
objects live for one request, and the only durable state is the external record
the pipeline patches.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)


class DocumentType(str, enum.Enum):
    IDENTITY = "Identity"
    ADDRESS = "Address"
    OFFER = "Offer"

    @property
    def form_field(self) -> str:
        return _FORM_FIELDS[self]

    @property
    def record_field(self) -> str:
        return _RECORD_FIELDS[self]

    @property
    def response_key(self) -> str:
        return self.name.lower()


_FORM_FIELDS = {
    DocumentType.IDENTITY: "identityProof",
    DocumentType.ADDRESS: "addressProof",
    DocumentType.OFFER: "offerLetter",
}

_RECORD_FIELDS = {
    DocumentType.IDENTITY: "Identity Proof",
    DocumentType.ADDRESS: "Address Proof",
    DocumentType.OFFER: "Offer Letter",
}


class RecordStatus(str, enum.Enum):
    PENDING = "Pending"
    DOCUMENTS_SUBMITTED = "Documents Submitted"


class Stage(str, enum.Enum):
    RECEIVED = "Received"
    VALIDATED = "Validated"
    UPLOADING = "Uploading"
    RECORD_UPDATING = "RecordUpdating"
    NOTIFYING = "NotifyingBestEffort"
    COMPLETED = "Completed"


class IncomingFile:
    """One uploaded blob, readable once and released exactly once."""

    def __init__(
        self,
        filename: str | None,
        content_type: str | None,
        size: int,
        reader: Callable[[], Awaitable[bytes]],
        closer: Callable[[], Awaitable[None]] | None = None,
    ):
        self.filename = filename or ""
        self.content_type = content_type or ""
        self.size = size
        self._reader = reader
        self._closer = closer
        self.released = False

    @classmethod
    async def from_upload(cls, upload: UploadFile) -> IncomingFile:
        size = upload.size
        if size is None:
            upload.file.seek(0, 2)
            size = upload.file.tell()
            upload.file.seek(0)

        async def read() -> bytes:
            await upload.seek(0)
            return await upload.read()

        return cls(upload.filename, upload.content_type, size, read, upload.close)

    @classmethod
    def from_bytes(cls, filename: str, content: bytes, content_type: str = "") -> IncomingFile:
        async def read() -> bytes:
            return content

        return cls(filename, content_type, len(content), read)

    @property
    def is_empty(self) -> bool:
        return self.size == 0 or not self.filename

    async def read(self) -> bytes:
        if self.released:
            raise RuntimeError(f"{self.filename!r} was already released")
        return await self._reader()

    async def release(self) -> None:
        """Drop the temporary storage behind this file. Failures are logged, not raised."""
        if self.released:
            return
        self.released = True
        if self._closer is None:
            return
        try:
            await self._closer()
        except Exception as exc:
            logger.warning("Could not release temp file for %r: %s", self.filename, exc)

    def __repr__(self) -> str:
        return f"IncomingFile({self.filename!r}, {self.content_type!r}, size={self.size})"


@dataclass
class Submission:
    record_id: str | None
    candidate_email: str | None = None
    candidate_name: str | None = None
    candidate_phone: str | None = None
    position: str | None = None
    department: str | None = None
    start_date: str | None = None
    buddy_name: str | None = None
    buddy_email: str | None = None
    hr_rep: str | None = None
    files: dict[DocumentType, IncomingFile | None] = field(default_factory=dict)

    def file_for(self, document_type: DocumentType) -> IncomingFile | None:
        return self.files.get(document_type)

    def profile(self) -> dict[str, str]:
        """Optional candidate fields that were actually supplied, keyed by form name."""
        values = {
            "candidatePhone": self.candidate_phone,
            "position": self.position,
            "department": self.department,
            "startDate": self.start_date,
            "buddyName": self.buddy_name,
            "buddyEmail": self.buddy_email,
            "hrRep": self.hr_rep,
        }
        return {key: value for key, value in values.items() if value}


@dataclass(frozen=True)
class UploadedAttachment:
    document_type: DocumentType
    filename: str
    url: str

    def as_record_value(self) -> dict[str, str]:
        return {"filename": self.filename, "url": self.url}


@dataclass(frozen=True)
class RecordUpdateResult:
    record_id: str
    fields: dict
    raw: dict = field(default_factory=dict)
