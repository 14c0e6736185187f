from __future__ import annotations

from typing import Any

from fastapi import UploadFile

from ..db.mongo import to_api
from ..domain import application as app_rules
from ..domain import user as user_rules
from ..services.uploads import DocumentPolicy, UploadedDocument, check_document


def application_out(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    return to_api(doc, drop=app_rules.PRIVATE_FIELDS)


def applications_out(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [application_out(d) for d in docs if d]  # type: ignore[misc]


def user_out(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    return to_api(doc, drop=user_rules.PRIVATE_FIELDS)


def read_document(upload: UploadFile | None, policy: DocumentPolicy) -> UploadedDocument | None:
    """
    Read at most one byte past the policy limit, so an oversized upload is
    rejected without holding the whole file in memory.
    """
    # Browsers send an empty part when no file was picked.
    if upload is None or not (upload.filename or "").strip():
        return None
    return check_document(
        UploadedDocument(
            content=upload.file.read(int(policy.max_bytes) + 1),
            filename=str(upload.filename),
            content_type=str(upload.content_type or ""),
        ),
        max_bytes=policy.max_bytes,
        type_error=policy.type_error,
    )
