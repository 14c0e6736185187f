from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import otp_service
from ..responses import ok
from ..services.otp_service import OtpService

router = APIRouter(tags=["otp"])


class SendOtpRequest(BaseModel):
    email: str | None = None
    walletAddress: str | None = None


class VerifyOtpRequest(BaseModel):
    email: str | None = None
    # Clients may post the code as a number.
    otp: str | int | None = None
    walletAddress: str | None = None


@router.post("/send")
def send_otp(body: SendOtpRequest, svc: OtpService = Depends(otp_service)):
    data = svc.send(email=body.email, wallet_address=body.walletAddress)
    return ok(data, message="OTP sent to your email")


@router.post("/verify")
def verify_otp(body: VerifyOtpRequest, svc: OtpService = Depends(otp_service)):
    code = None if body.otp is None else str(body.otp)
    data = svc.verify(email=body.email, code=code, wallet_address=body.walletAddress)
    return ok(data, message="OTP verified successfully")
