from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..container import Services
from ..deps import get_services
from ..errors import BadRequest
from ..responses import ok

# Mounted only when debug routes are enabled (never by default in production).
router = APIRouter(tags=["debug"])

TEST_OTP = "123456"


class TestEmailRequest(BaseModel):
    email: str | None = None


@router.post("/test-email")
def send_test_email(body: TestEmailRequest, services: Services = Depends(get_services)):
    to_email = str(body.email or "").strip()
    if not to_email:
        raise BadRequest("Email is required")
    message_id = services.email.send_otp_email(to_email=to_email, code=TEST_OTP, name="Test User")
    return ok(
        {
            "to": to_email,
            "otp": TEST_OTP,
            "delivered": message_id is not None,
            "messageId": message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        message="Test email sent successfully",
    )


@router.get("/email-config")
def email_config(services: Services = Depends(get_services)):
    s = services.settings
    return ok(
        {
            "configured": {
                "EMAIL_FROM": s.email_configured,
                "AWS_REGION": bool(str(s.aws_region or "").strip()),
                "FRONTEND_URL": bool(str(s.frontend_url or "").strip()),
            },
            "frontendUrl": s.frontend_url,
        }
    )
