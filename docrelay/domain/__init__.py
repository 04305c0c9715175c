"""Domain package — request-scoped types shared by services and routers.

Folder intent:
  documents.py  — DocumentType, Submission, IncomingFile, UploadedAttachment, stages
"""

from docrelay.domain.documents import (
    DocumentType,
    IncomingFile,
    RecordStatus,
    RecordUpdateResult,
    Stage,
    Submission,
    UploadedAttachment,
)

__all__ = [
    "DocumentType",
    "IncomingFile",
    "RecordStatus",
    "RecordUpdateResult",
    "Stage",
    "Submission",
    "UploadedAttachment",
]
