from __future__ import annotations

import secrets
from typing import Any

from ..db.mongo import utcnow
from ..domain import application as rules
from ..domain.application import ApplicationData
from ..errors import BadRequest, Conflict, EmailDeliveryError, NotFound
from ..observability.logging import email_domain, get_logger
from ..repositories.applications_repo import ApplicationsRepo
from .content_store import PinataContentStore
from .email import EmailSender
from .uploads import APPLICATION_DOCUMENTS, UploadedDocument, check_document

log = get_logger("applications")


def new_verification_token() -> str:
    return secrets.token_hex(32)


class ApplicationService:
    """Student-facing side of the application lifecycle."""

    def __init__(
        self,
        *,
        applications: ApplicationsRepo,
        email: EmailSender,
        content_store: PinataContentStore,
    ):
        self._apps = applications
        self._email = email
        self._store = content_store

    def submit(
        self,
        *,
        wallet_address: str | None,
        email: str | None,
        pool_id: str | None,
        pool_address: str | None,
        application_data: ApplicationData | None = None,
        document: UploadedDocument | None = None,
    ) -> dict[str, Any]:
        wallet = str(wallet_address or "").strip()
        mail = str(email or "").strip()
        pid = str(pool_id or "").strip()
        pool = str(pool_address or "").strip()
        if not wallet or not mail or not pid or not pool:
            raise BadRequest("Missing required fields")
        if not rules.EMAIL_PATTERN.match(mail):
            raise BadRequest("Invalid email format")

        if self._apps.find_by_wallet_and_pool(wallet_address=wallet, pool_address=pool):
            raise BadRequest("You have already applied to this scholarship pool")

        data = application_data or ApplicationData()

        document_cid = ""
        if document is not None:
            check_document(
                document,
                max_bytes=APPLICATION_DOCUMENTS.max_bytes,
                type_error=APPLICATION_DOCUMENTS.type_error,
            )
            document_cid = self._store.upload_file(
                document.content, filename=document.filename, content_type=document.content_type
            )

        now = utcnow()
        metadata = {
            **data.model_dump(exclude_none=True),
            "timestamp": now.isoformat(),
            "ipfsDocumentHash": document_cid,
        }
        metadata_cid = self._store.upload_json(metadata, name=f"application-{wallet.lower()}-{pid}")

        token = new_verification_token()
        created = self._apps.create(
            rules.new_application(
                wallet_address=wallet,
                email=mail,
                pool_id=pid,
                pool_address=pool,
                application_data=data,
                ipfs_hash=metadata_cid,
                verification_token=token,
                now=now,
            )
        )
        log.info(
            "application_submitted",
            application_id=str(created["_id"]),
            pool_id=pid,
            has_document=bool(document_cid),
        )

        try:
            self._email.send_verification_email(
                to_email=created["email"], token=token, name=rules.applicant_name(created)
            )
        except EmailDeliveryError as e:
            log.warning(
                "verification_email_failed",
                application_id=str(created["_id"]),
                to_domain=email_domain(created["email"]),
                error=str(e),
            )

        return created

    def verify_email(self, token: str) -> dict[str, Any]:
        app = self._apps.find_by_token(token)
        if not app:
            raise BadRequest("Invalid or expired verification token")
        rules.check_can_verify(app)

        updated = self._apps.apply_transition(
            app["_id"],
            expected_version=int(app.get("version") or 0),
            transition=rules.verify(utcnow()),
        )
        if updated is None:
            raise Conflict("Application was modified concurrently")
        log.info("application_email_verified", application_id=str(updated["_id"]))
        return updated

    def get_for_wallet_and_pool(self, *, wallet_address: str, pool_address: str) -> dict[str, Any]:
        app = self._apps.find_by_wallet_and_pool(wallet_address=wallet_address, pool_address=pool_address)
        if not app:
            raise NotFound("Application not found")
        return app

    def metadata_url(self, app: dict[str, Any]) -> str | None:
        """Gateway URL of the pinned application metadata."""
        cid = str(app.get("ipfsHash") or "").strip()
        return self._store.gateway_url(cid) if cid else None

    def list_for_wallet(self, wallet_address: str) -> list[dict[str, Any]]:
        return self._apps.list_for_wallet(wallet_address)

    def list_for_pool(self, pool_address: str, *, status: str | None = None) -> list[dict[str, Any]]:
        return self._apps.list_for_pool(pool_address, status=status)

    def resend_verification(self, *, wallet_address: str | None, pool_address: str | None) -> None:
        """Issue a fresh token. Unlike submit, a failed send is reported to the caller."""
        wallet = str(wallet_address or "").strip()
        pool = str(pool_address or "").strip()
        if not wallet or not pool:
            raise BadRequest("Wallet address and pool address are required")

        app = self._apps.find_by_wallet_and_pool(wallet_address=wallet, pool_address=pool)
        if not app:
            raise NotFound("Application not found")
        if bool(app.get("emailVerified")):
            raise BadRequest("Email already verified")

        token = new_verification_token()
        if not self._apps.replace_verification_token(app["_id"], token):
            # Verified between the read and the write.
            raise BadRequest("Email already verified")

        try:
            self._email.send_verification_email(
                to_email=app["email"], token=token, name=rules.applicant_name(app)
            )
        except EmailDeliveryError as e:
            raise EmailDeliveryError("Failed to resend verification email") from e
        log.info("verification_email_resent", application_id=str(app["_id"]))
