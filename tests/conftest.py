from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from docrelay.core.exceptions import UploadError
from docrelay.domain.documents import (
    DocumentType,
    IncomingFile,
    RecordUpdateResult,
    Submission,
)
from docrelay.services.orchestrator import UploadOrchestrator
from docrelay.services.records import RecordUpdater
from docrelay.services.uploaders import AttachmentUploader

MAX_BYTES = 1024


def make_file(name: str = "doc.pdf", size: int = 10, content_type: str = "application/pdf") -> IncomingFile:
    return IncomingFile.from_bytes(name, b"x" * size, content_type)


def make_submission(record_id: str | None = "rec123", **files: IncomingFile | None) -> Submission:
    slots = {
        DocumentType.IDENTITY: make_file("passport.jpg", content_type="image/jpeg"),
        DocumentType.ADDRESS: make_file("utility-bill.pdf"),
        DocumentType.OFFER: make_file("contract.pdf.pdf"),
    }
    for key, value in files.items():
        slots[DocumentType[key.upper()]] = value
    return Submission(
        record_id=record_id,
        candidate_email="ada@example.com",
        candidate_name="Ada Lovelace",
        department="Engineering",
        files=slots,
    )


class FakeUploader(AttachmentUploader):
    """Records stored names; fails for the document types in *fail_on*."""

    backend = "fake"

    def __init__(self, max_file_bytes: int = MAX_BYTES, fail_on: tuple[DocumentType, ...] = ()):
        super().__init__(max_file_bytes)
        self.fail_on = set(fail_on)
        self.stored: list[str] = []
        self.metadata: list[dict[str, str]] = []

    async def _put(self, filename, content, content_type, metadata):
        for document_type in self.fail_on:
            if f"_{document_type.value}." in filename:
                raise UploadError(f"backend refused {filename}", backend_status=500)
        self.stored.append(filename)
        self.metadata.append(metadata)
        return f"https://files.test/{filename}", filename


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def record_updater() -> AsyncMock:
    updater = AsyncMock(spec=RecordUpdater)
    updater.update.side_effect = lambda record_id, attachments, status: RecordUpdateResult(
        record_id=record_id, fields={}
    )
    return updater


@pytest.fixture
def orchestrator(uploader, record_updater) -> UploadOrchestrator:
    return UploadOrchestrator(uploader=uploader, record_updater=record_updater)


@pytest.fixture
def file_factory():
    return make_file


@pytest.fixture
def submission_factory():
    return make_submission


@pytest.fixture
def uploader_factory():
    return FakeUploader
