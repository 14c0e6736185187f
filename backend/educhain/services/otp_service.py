from __future__ import annotations

from typing import Any

from ..db.mongo import utcnow
from ..domain import otp as otp_rules
from ..errors import BadRequest, Conflict, EmailDeliveryError
from ..observability.logging import email_domain, get_logger
from ..repositories.otps_repo import OtpsRepo
from ..repositories.users_repo import UsersRepo
from ..settings import Settings
from .email import EmailSender

log = get_logger("otp")


class OtpService:
    def __init__(self, *, otps: OtpsRepo, users: UsersRepo, email: EmailSender, settings: Settings):
        self._otps = otps
        self._users = users
        self._email = email
        self._settings = settings

    def send(self, *, email: str | None, wallet_address: str | None) -> dict[str, Any]:
        addr = str(email or "").strip()
        wallet = str(wallet_address or "").strip()
        if not addr or not wallet:
            raise BadRequest("Email and wallet address are required")
        if self._users.get_by_email(addr):
            raise BadRequest("This email is already registered")

        code = otp_rules.generate_code()
        ttl = int(self._settings.otp_ttl_minutes)
        self._otps.replace_for(
            otp_rules.new_otp(email=addr, wallet_address=wallet, code=code, now=utcnow(), ttl_minutes=ttl)
        )

        try:
            self._email.send_otp_email(to_email=addr, code=code)
        except EmailDeliveryError as e:
            raise EmailDeliveryError("Failed to send OTP email. Please try again.") from e
        log.info("otp_sent", to_domain=email_domain(addr))

        data: dict[str, Any] = {"email": addr, "expiresIn": f"{ttl} minutes"}
        if self._settings.is_development:
            data["otp"] = code
        return data

    def verify(self, *, email: str | None, code: str | None, wallet_address: str | None) -> dict[str, Any]:
        addr = str(email or "").strip()
        wallet = str(wallet_address or "").strip()
        if not addr or not str(code or "").strip() or not wallet:
            raise BadRequest("Email, OTP, and wallet address are required")

        record = self._otps.latest_unverified(email=addr, wallet_address=wallet)
        if not record:
            raise BadRequest("No OTP found. Please request a new one.")

        previous = int(record.get("attempts") or 0)
        attempt = otp_rules.check_otp(
            record, str(code), now=utcnow(), max_attempts=int(self._settings.otp_max_attempts)
        )
        if not self._otps.record_attempt(
            record["_id"], previous_attempts=previous, attempts=attempt.attempts, verified=attempt.matched
        ):
            raise Conflict("Another verification attempt is in progress. Please try again.")

        if not attempt.matched:
            log.info("otp_mismatch", to_domain=email_domain(addr), attempts=attempt.attempts)
            raise BadRequest(f"Invalid OTP. {attempt.remaining} attempts remaining.")

        log.info("otp_verified", to_domain=email_domain(addr))
        return {"verified": True, "email": record["email"], "walletAddress": record["walletAddress"]}
