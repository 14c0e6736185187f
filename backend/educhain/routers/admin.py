from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import review_service
from ..responses import ok
from ..services.review_service import DEFAULT_PAGE_SIZE, ReviewService
from ._shared import application_out, applications_out

router = APIRouter(tags=["admin"])


class ReviewRequest(BaseModel):
    # Older clients send adminWallet.
    adminAddress: str | None = None
    adminWallet: str | None = None
    notes: str | None = None

    @property
    def admin(self) -> str | None:
        return self.adminAddress or self.adminWallet


class MarkPaidRequest(BaseModel):
    transactionHash: str | None = None


class BatchApproveRequest(ReviewRequest):
    applicationIds: Any = None


@router.get("/applications")
def list_applications(
    status: str | None = None,
    poolAddress: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    svc: ReviewService = Depends(review_service),
):
    result = svc.list_applications(status=status, pool_address=poolAddress, page=page, limit=limit)
    items = applications_out(result.items)
    return ok(
        items,
        count=len(items),
        total=result.total,
        page=result.page,
        totalPages=result.total_pages,
    )


@router.get("/statistics")
def statistics(poolAddress: str | None = None, svc: ReviewService = Depends(review_service)):
    return ok(svc.statistics(pool_address=poolAddress))


@router.post("/applications/batch-approve")
@router.post("/batch-approve")
def batch_approve(body: BatchApproveRequest, svc: ReviewService = Depends(review_service)):
    result = svc.batch_approve(body.applicationIds, admin_address=body.admin, notes=body.notes)
    return ok(result.to_dict(), message=f"Approved {len(result.approved)} applications")


@router.post("/applications/{applicationId}/approve")
def approve(
    applicationId: str,
    body: ReviewRequest | None = None,
    svc: ReviewService = Depends(review_service),
):
    body = body or ReviewRequest()
    app = svc.approve(applicationId, admin_address=body.admin, notes=body.notes)
    return ok(application_out(app), message="Application approved successfully")


@router.post("/applications/{applicationId}/reject")
def reject(
    applicationId: str,
    body: ReviewRequest | None = None,
    svc: ReviewService = Depends(review_service),
):
    body = body or ReviewRequest()
    app = svc.reject(applicationId, admin_address=body.admin, notes=body.notes)
    return ok(application_out(app), message="Application rejected")


@router.post("/applications/{applicationId}/paid")
def mark_paid(
    applicationId: str,
    body: MarkPaidRequest | None = None,
    svc: ReviewService = Depends(review_service),
):
    body = body or MarkPaidRequest()
    app = svc.mark_paid(applicationId, transaction_hash=body.transactionHash)
    return ok(application_out(app), message="Application marked as paid")
