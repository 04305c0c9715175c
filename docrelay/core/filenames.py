from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import quote

from docrelay.domain.documents import DocumentType

DEFAULT_EXTENSION = "bin"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._()\- ]+")
_DUPLICATE_EXT_RE = re.compile(r"(\.[A-Za-z0-9]+)\1$", re.IGNORECASE)

# Used only when the filename carries no extension.
_CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "application/pdf": "pdf",
    "application/x-pdf": "pdf",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/pjpeg": "jpg",
    "image/png": "png",
}


def sanitize_filename(raw: str | None) -> str:
    """Strip unsafe characters and collapse an accidental ``.pdf.pdf`` style suffix."""
    name = _UNSAFE_CHARS_RE.sub("", (raw or "").strip())
    while True:
        collapsed = _DUPLICATE_EXT_RE.sub(r"\1", name)
        if collapsed == name:
            return name
        name = collapsed


def file_extension(raw: str | None) -> str:
    """Lower-cased extension without the dot, or ``""``."""
    suffix = PurePosixPath(sanitize_filename(raw)).suffix
    return suffix[1:].lower()


def document_extension(filename: str | None, content_type: str | None) -> str:
    """Extension from the filename, else from the declared content type, else ``""``."""
    ext = file_extension(filename)
    if ext:
        return ext
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return _CONTENT_TYPE_EXTENSIONS.get(media_type, "")


def record_key(record_id: str) -> str:
    """Percent-encoded record id; distinct ids always give distinct keys."""
    return quote(record_id, safe="")


def stored_filename(
    record_id: str,
    document_type: DocumentType,
    original: str | None,
    content_type: str | None = None,
) -> str:
    """``{recordId}_{documentType}.{ext}`` -- one predictable key per record and slot."""
    ext = document_extension(original, content_type) or DEFAULT_EXTENSION
    return f"{record_key(record_id)}_{document_type.value}.{ext}"
