from __future__ import annotations

from dataclasses import dataclass

from ..errors import BadRequest

ALLOWED_DOCUMENT_TYPES: frozenset[str] = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "application/pdf"}
)

APPLICATION_DOCUMENT_MAX_BYTES = 10 * 1024 * 1024
ONBOARDING_DOCUMENT_MAX_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class UploadedDocument:
    content: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class DocumentPolicy:
    max_bytes: int
    type_error: str


APPLICATION_DOCUMENTS = DocumentPolicy(
    max_bytes=APPLICATION_DOCUMENT_MAX_BYTES,
    type_error="Invalid file type. Only JPEG, PNG, and PDF files are allowed.",
)
ONBOARDING_DOCUMENTS = DocumentPolicy(
    max_bytes=ONBOARDING_DOCUMENT_MAX_BYTES,
    type_error="Invalid file type. Only PDF and images are allowed.",
)


def check_document(doc: UploadedDocument, *, max_bytes: int, type_error: str) -> UploadedDocument:
    ctype = str(doc.content_type or "").split(";", 1)[0].strip().lower()
    if ctype not in ALLOWED_DOCUMENT_TYPES:
        raise BadRequest(type_error)
    if len(doc.content) > int(max_bytes):
        mb = int(max_bytes) // (1024 * 1024)
        raise BadRequest(f"File too large. Maximum size is {mb}MB.")
    return doc
