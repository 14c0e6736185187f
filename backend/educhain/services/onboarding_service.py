from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..db.mongo import utcnow
from ..domain import user as user_rules
from ..errors import BadRequest, ContentStoreError, EmailDeliveryError, NotFound
from ..observability.logging import email_domain, get_logger
from ..repositories.users_repo import UsersRepo
from ..settings import Settings
from .applications_service import new_verification_token
from .content_store import PinataContentStore
from .email import EmailSender
from .uploads import ONBOARDING_DOCUMENTS, UploadedDocument, check_document

log = get_logger("onboarding")


@dataclass(frozen=True)
class StudentRegistration:
    wallet: str | None
    full_name: str | None
    email: str | None
    institute: str | None
    program: str | None
    graduation_year: str | int | None


@dataclass(frozen=True)
class ProviderRegistration:
    wallet: str | None
    organization_name: str | None
    email: str | None
    description: str | None
    contact_person: str | None
    website: str | None = None


def _required(*values: Any) -> bool:
    return all(str(v or "").strip() for v in values)


class OnboardingService:
    def __init__(
        self,
        *,
        users: UsersRepo,
        email: EmailSender,
        content_store: PinataContentStore,
        settings: Settings,
    ):
        self._users = users
        self._email = email
        self._store = content_store
        self._settings = settings

    def _check_unclaimed(self, *, wallet: str, email: str) -> None:
        if self._users.get_by_wallet(wallet):
            raise BadRequest("User with this wallet address already exists")
        if self._users.get_by_email(email):
            raise BadRequest("This email is already registered")

    def _upload_document(self, document: UploadedDocument | None) -> str | None:
        """Registration goes ahead without the document when pinning fails."""
        if document is None:
            return None
        check_document(
            document, max_bytes=ONBOARDING_DOCUMENTS.max_bytes, type_error=ONBOARDING_DOCUMENTS.type_error
        )
        try:
            return self._store.upload_file(
                document.content, filename=document.filename, content_type=document.content_type
            )
        except ContentStoreError as e:
            log.warning("onboarding_document_upload_failed", error=str(e))
            return None

    def _send_verification(self, user: dict[str, Any]) -> None:
        try:
            self._email.send_verification_email(
                to_email=user["email"],
                token=user["verificationToken"],
                name=str(user.get("fullName") or user.get("organizationName") or ""),
                purpose="account",
            )
        except EmailDeliveryError as e:
            log.warning(
                "verification_email_failed",
                wallet=user["walletAddress"],
                to_domain=email_domain(user["email"]),
                error=str(e),
            )

    def register_student(self, reg: StudentRegistration, *, document: UploadedDocument | None = None) -> dict[str, Any]:
        if not _required(reg.wallet, reg.full_name, reg.email, reg.institute, reg.program, reg.graduation_year):
            raise BadRequest("All required fields must be provided")
        try:
            graduation_year = int(str(reg.graduation_year).strip())
        except ValueError as e:
            raise BadRequest("Graduation year must be a number") from e

        wallet = str(reg.wallet).strip().lower()
        email = str(reg.email).strip().lower()
        self._check_unclaimed(wallet=wallet, email=email)

        user = self._users.create(
            user_rules.new_student(
                wallet_address=wallet,
                email=email,
                full_name=str(reg.full_name).strip(),
                institute=str(reg.institute).strip(),
                program=str(reg.program).strip(),
                graduation_year=graduation_year,
                document_cid=self._upload_document(document),
                token=new_verification_token(),
                now=utcnow(),
                token_ttl_hours=self._settings.verification_token_ttl_hours,
            )
        )
        log.info("student_registered", wallet=wallet, to_domain=email_domain(email))
        self._send_verification(user)
        return user

    def register_provider(self, reg: ProviderRegistration, *, document: UploadedDocument | None = None) -> dict[str, Any]:
        if not _required(reg.wallet, reg.organization_name, reg.email, reg.description, reg.contact_person):
            raise BadRequest("All required fields must be provided")

        wallet = str(reg.wallet).strip().lower()
        email = str(reg.email).strip().lower()
        self._check_unclaimed(wallet=wallet, email=email)

        user = self._users.create(
            user_rules.new_provider(
                wallet_address=wallet,
                email=email,
                organization_name=str(reg.organization_name).strip(),
                website=str(reg.website or "").strip() or None,
                description=str(reg.description).strip(),
                contact_person=str(reg.contact_person).strip(),
                document_cid=self._upload_document(document),
                token=new_verification_token(),
                now=utcnow(),
                token_ttl_hours=self._settings.verification_token_ttl_hours,
            )
        )
        log.info("provider_registered", wallet=wallet, to_domain=email_domain(email))
        self._send_verification(user)
        return user

    def verify_email(self, token: str) -> dict[str, Any]:
        user = self._users.find_by_valid_token(token, now=utcnow())
        if not user:
            raise BadRequest("Invalid or expired verification token")
        updated = self._users.mark_email_verified(user["walletAddress"]) or user
        log.info("user_email_verified", wallet=updated.get("walletAddress"))
        return updated

    def resend_verification(self, email: str | None) -> None:
        addr = str(email or "").strip().lower()
        if not addr:
            raise BadRequest("Email is required")
        user = self._users.get_by_email(addr)
        if not user:
            raise NotFound("User not found")
        if bool(user.get("emailVerified")):
            raise BadRequest("Email is already verified")

        now = utcnow()
        updated = self._users.update_by_wallet(
            user["walletAddress"],
            set_fields={
                "verificationToken": new_verification_token(),
                "verificationTokenExpiry": now
                + user_rules.token_ttl(self._settings.verification_token_ttl_hours),
            },
        )
        if not updated:
            raise NotFound("User not found")

        try:
            self._email.send_verification_email(
                to_email=addr,
                token=updated["verificationToken"],
                name=str(updated.get("fullName") or updated.get("organizationName") or ""),
                purpose="account",
            )
        except EmailDeliveryError as e:
            raise EmailDeliveryError("Failed to resend verification email") from e
        log.info("user_verification_resent", wallet=updated["walletAddress"])

    def profile(self, wallet_address: str) -> dict[str, Any]:
        user = self._users.get_by_wallet(wallet_address)
        if not user:
            raise NotFound("User not found")
        return user
