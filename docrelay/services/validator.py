"""Per-slot file validation. Pure: runs before any network call."""


import enum
from dataclasses import dataclass

from docrelay.core.filenames import document_extension
from docrelay.domain.documents import DocumentType, IncomingFile

PROOF_EXTENSIONS = frozenset({"pdf", "jpg", "jpeg", "png"})
OFFER_EXTENSIONS = frozenset({"pdf"})


class RejectReason(str, enum.Enum):
    MISSING_FILE = "MissingFile"
    UNSUPPORTED_EXTENSION = "UnsupportedExtension"
    TOO_LARGE = "TooLarge"


@dataclass(frozen=True)
class FilePolicy:
    allowed_extensions: frozenset[str]
    max_bytes: int


@dataclass(frozen=True)
class Verdict:
    reason: RejectReason | None = None
    detail: str = ""

    @property
    def accepted(self) -> bool:
        return self.reason is None


ACCEPT = Verdict()


class FileValidator:
    """Checks each slot against its extension set and the active backend's size ceiling."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        self.policies: dict[DocumentType, FilePolicy] = {
            DocumentType.IDENTITY: FilePolicy(PROOF_EXTENSIONS, max_bytes),
            DocumentType.ADDRESS: FilePolicy(PROOF_EXTENSIONS, max_bytes),
            DocumentType.OFFER: FilePolicy(OFFER_EXTENSIONS, max_bytes),
        }

    def check(self, document_type: DocumentType, file: IncomingFile | None) -> Verdict:
        policy = self.policies[document_type]
        if file is None or file.is_empty:
            return Verdict(RejectReason.MISSING_FILE, f"{document_type.form_field} is required")

        ext = document_extension(file.filename, file.content_type)
        if ext not in policy.allowed_extensions:
            accepted = ", ".join(sorted(policy.allowed_extensions))
            return Verdict(
                RejectReason.UNSUPPORTED_EXTENSION,
                f"{document_type.form_field} must be one of: {accepted}",
            )

        if file.size > policy.max_bytes:
            limit_mb = policy.max_bytes / (1024 * 1024)
            return Verdict(
                RejectReason.TOO_LARGE,
                f"{document_type.form_field} exceeds the {limit_mb:g}MB limit",
            )

        return ACCEPT

    def check_all(
        self, files: dict[DocumentType, IncomingFile | None]
    ) -> dict[DocumentType, Verdict]:
        """Verdicts for the slots that were rejected. Empty means every slot passed."""
        rejected = {}
        for document_type in DocumentType:
            verdict = self.check(document_type, files.get(document_type))
            if not verdict.accepted:
                rejected[document_type] = verdict
        return rejected
