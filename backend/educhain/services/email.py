from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import EmailDeliveryError
from ..observability.logging import email_domain, get_logger
from ..settings import Settings
from . import email_templates

log = get_logger("email")


class EmailSender:
    """
    Transactional email over SES v2.

    The boto3 client is created on first use and owned by this object; the
    app lifespan builds one sender per process.
    """

    def __init__(self, settings: Settings, *, client: Any | None = None):
        self._settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self._settings.email_configured

    def _sesv2(self):
        if self._client is None:
            self._client = boto3.client(
                "sesv2",
                region_name=self._settings.aws_region,
                config=Config(connect_timeout=5, read_timeout=15, retries={"max_attempts": 3}),
            )
        return self._client

    def _from_address(self) -> str:
        frm = str(self._settings.email_from or "").strip()
        name = str(self._settings.email_from_name or "").strip()
        return f"{name} <{frm}>" if name else frm

    def send(self, *, to_email: str, message: email_templates.RenderedEmail) -> str | None:
        """
        Send one email. Returns the SES message id, or None when email is not
        configured outside production (the send is logged and skipped).
        Raises EmailDeliveryError on provider failure.
        """
        to_ = str(to_email or "").strip()
        if not to_:
            raise EmailDeliveryError("Recipient email is required")

        if not self.configured:
            if self._settings.is_production:
                raise EmailDeliveryError("Email is not configured")
            log.warning("email_skipped_not_configured", to_domain=email_domain(to_), subject=message.subject)
            return None

        try:
            resp = self._sesv2().send_email(
                FromEmailAddress=self._from_address(),
                Destination={"ToAddresses": [to_]},
                Content={
                    "Simple": {
                        "Subject": {"Data": message.subject[:200]},
                        "Body": {
                            "Html": {"Data": message.html},
                            "Text": {"Data": message.text or "(empty)"},
                        },
                    }
                },
            )
        except (BotoCoreError, ClientError) as e:
            log.warning("email_send_failed", to_domain=email_domain(to_), subject=message.subject, error=str(e))
            raise EmailDeliveryError("Failed to send email") from e

        msg_id = (resp or {}).get("MessageId") if isinstance(resp, dict) else None
        log.info("email_sent", to_domain=email_domain(to_), subject=message.subject, message_id=msg_id)
        return msg_id

    # --- templated sends ---

    def verification_link(self, token: str, *, purpose: str) -> str:
        base = str(self._settings.frontend_url or "").rstrip("/")
        if purpose == "account":
            return f"{base}/verify-account/{token}"
        return f"{base}/verify-email/{token}"

    def send_verification_email(self, *, to_email: str, token: str, name: str, purpose: str = "application") -> str | None:
        msg = email_templates.verification_email(
            name=name,
            link=self.verification_link(token, purpose=purpose),
            ttl_hours=self._settings.verification_token_ttl_hours,
            purpose=purpose,
        )
        return self.send(to_email=to_email, message=msg)

    def send_otp_email(self, *, to_email: str, code: str, name: str = "") -> str | None:
        msg = email_templates.otp_email(name=name, code=code, ttl_minutes=self._settings.otp_ttl_minutes)
        return self.send(to_email=to_email, message=msg)

    def send_status_update_email(self, *, to_email: str, status: str, pool: str, name: str) -> bool:
        """Status notifications never fail the review that triggered them."""
        try:
            self.send(
                to_email=to_email,
                message=email_templates.status_update_email(name=name, status=status, pool=pool),
            )
            return True
        except EmailDeliveryError:
            return False

    def send_payment_email(self, *, to_email: str, wallet: str, tx_hash: str | None, name: str) -> bool:
        try:
            self.send(
                to_email=to_email,
                message=email_templates.payment_email(
                    name=name,
                    wallet=wallet,
                    tx_hash=tx_hash,
                    explorer_url=self._settings.block_explorer_url,
                ),
            )
            return True
        except EmailDeliveryError:
            return False
