from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from ..deps import onboarding_service
from ..responses import ok
from ..services.onboarding_service import OnboardingService, ProviderRegistration, StudentRegistration
from ..services.uploads import ONBOARDING_DOCUMENTS
from ._shared import read_document, user_out

router = APIRouter(tags=["onboarding"])


class ResendRequest(BaseModel):
    email: str | None = None


def _registered(user: dict) -> dict:
    return {
        "walletAddress": user.get("walletAddress"),
        "role": user.get("role"),
        "email": user.get("email"),
        "emailVerified": bool(user.get("emailVerified")),
    }


@router.post("/student", status_code=201)
def register_student(
    wallet: str | None = Form(None),
    fullName: str | None = Form(None),
    email: str | None = Form(None),
    institute: str | None = Form(None),
    program: str | None = Form(None),
    graduationYear: str | None = Form(None),
    document: UploadFile | None = File(None),
    svc: OnboardingService = Depends(onboarding_service),
):
    user = svc.register_student(
        StudentRegistration(
            wallet=wallet,
            full_name=fullName,
            email=email,
            institute=institute,
            program=program,
            graduation_year=graduationYear,
        ),
        document=read_document(document, ONBOARDING_DOCUMENTS),
    )
    return ok(
        _registered(user),
        message="Student registration successful. Please check your email to verify your account.",
    )


@router.post("/provider", status_code=201)
def register_provider(
    wallet: str | None = Form(None),
    organizationName: str | None = Form(None),
    email: str | None = Form(None),
    website: str | None = Form(None),
    description: str | None = Form(None),
    contactPerson: str | None = Form(None),
    document: UploadFile | None = File(None),
    svc: OnboardingService = Depends(onboarding_service),
):
    user = svc.register_provider(
        ProviderRegistration(
            wallet=wallet,
            organization_name=organizationName,
            email=email,
            description=description,
            contact_person=contactPerson,
            website=website,
        ),
        document=read_document(document, ONBOARDING_DOCUMENTS),
    )
    data = _registered(user)
    data["providerVerified"] = bool((user.get("providerData") or {}).get("verified"))
    return ok(
        data,
        message="Provider registration successful. Please check your email to verify your account.",
    )


@router.get("/verify/{token}")
def verify_email(token: str, svc: OnboardingService = Depends(onboarding_service)):
    user = svc.verify_email(token)
    return ok(
        {
            "walletAddress": user.get("walletAddress"),
            "role": user.get("role"),
            "emailVerified": bool(user.get("emailVerified")),
        },
        message="Email verified successfully",
    )


@router.post("/resend-verification")
def resend_verification(body: ResendRequest, svc: OnboardingService = Depends(onboarding_service)):
    svc.resend_verification(body.email)
    return ok(message="Verification email sent successfully")


@router.get("/profile/{walletAddress}")
def profile(walletAddress: str, svc: OnboardingService = Depends(onboarding_service)):
    return ok(user_out(svc.profile(walletAddress)))
