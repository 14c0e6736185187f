from __future__ import annotations

import orjson
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, ValidationError

from ..deps import application_service
from ..domain.application import ApplicationData
from ..errors import BadRequest
from ..responses import ok
from ..services.applications_service import ApplicationService
from ..services.uploads import APPLICATION_DOCUMENTS
from ._shared import application_out, applications_out, read_document

router = APIRouter(tags=["applications"])


class ResendVerificationRequest(BaseModel):
    walletAddress: str | None = None
    poolAddress: str | None = None


def _application_data(raw: str | None, flat: dict[str, str | None]) -> ApplicationData:
    """
    The form carries applicant details either as one JSON `applicationData`
    field or as individual fields; the JSON field wins when both are sent.
    """
    payload: dict[str, object] = {k: v for k, v in flat.items() if v is not None}
    if raw and raw.strip():
        try:
            parsed = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise BadRequest("applicationData must be valid JSON") from e
        if not isinstance(parsed, dict):
            raise BadRequest("applicationData must be a JSON object")
        payload.update(parsed)
    try:
        return ApplicationData.model_validate(payload)
    except ValidationError as e:
        raise BadRequest("Invalid applicationData") from e


@router.post("/submit", status_code=201)
def submit_application(
    walletAddress: str | None = Form(None),
    email: str | None = Form(None),
    poolId: str | None = Form(None),
    poolAddress: str | None = Form(None),
    applicationData: str | None = Form(None),
    name: str | None = Form(None),
    studentId: str | None = Form(None),
    institution: str | None = Form(None),
    program: str | None = Form(None),
    year: str | None = Form(None),
    gpa: str | None = Form(None),
    additionalInfo: str | None = Form(None),
    document: UploadFile | None = File(None),
    svc: ApplicationService = Depends(application_service),
):
    data = _application_data(
        applicationData,
        {
            "name": name,
            "studentId": studentId,
            "institution": institution,
            "program": program,
            "year": year,
            "gpa": gpa,
            "additionalInfo": additionalInfo,
        },
    )
    created = svc.submit(
        wallet_address=walletAddress,
        email=email,
        pool_id=poolId,
        pool_address=poolAddress,
        application_data=data,
        document=read_document(document, APPLICATION_DOCUMENTS),
    )
    return ok(
        {
            "applicationId": str(created["_id"]),
            "ipfsHash": created.get("ipfsHash"),
            "ipfsUrl": svc.metadata_url(created),
            "status": created.get("status"),
        },
        message="Application submitted successfully. Please check your email to verify.",
    )


@router.get("/verify/{token}")
def verify_email(token: str, svc: ApplicationService = Depends(application_service)):
    app = svc.verify_email(token)
    return ok(
        {
            "applicationId": str(app["_id"]),
            "walletAddress": app.get("walletAddress"),
            "status": app.get("status"),
        },
        message="Email verified successfully!",
    )


@router.post("/resend-verification")
def resend_verification(
    body: ResendVerificationRequest,
    svc: ApplicationService = Depends(application_service),
):
    svc.resend_verification(wallet_address=body.walletAddress, pool_address=body.poolAddress)
    return ok(message="Verification email resent successfully")


@router.get("/wallet/{walletAddress}/pool/{poolAddress}")
def get_application(
    walletAddress: str,
    poolAddress: str,
    svc: ApplicationService = Depends(application_service),
):
    app = svc.get_for_wallet_and_pool(wallet_address=walletAddress, pool_address=poolAddress)
    data = application_out(app)
    data["ipfsUrl"] = svc.metadata_url(app)
    return ok(data)


@router.get("/wallet/{walletAddress}")
def wallet_applications(walletAddress: str, svc: ApplicationService = Depends(application_service)):
    items = applications_out(svc.list_for_wallet(walletAddress))
    return ok(items, count=len(items))


@router.get("/pool/{poolAddress}")
def pool_applications(
    poolAddress: str,
    status: str | None = None,
    svc: ApplicationService = Depends(application_service),
):
    items = applications_out(svc.list_for_pool(poolAddress, status=status))
    return ok(items, count=len(items))
