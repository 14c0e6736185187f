from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import PyMongoError

from ..db.mongo import utcnow
from ..domain import application as rules
from ..errors import AppError, BadRequest, Conflict, NotFound
from ..observability.logging import get_logger
from ..repositories.applications_repo import ApplicationsRepo
from .email import EmailSender

log = get_logger("admin_review")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

CONCURRENT_MODIFICATION = "Application was modified concurrently"


@dataclass
class BatchApproveResult:
    approved: list[str] = field(default_factory=list)
    failed: list[dict[str, str]] = field(default_factory=list)

    def fail(self, application_id: str, reason: str) -> None:
        self.failed.append({"id": application_id, "reason": reason})

    def to_dict(self) -> dict[str, Any]:
        return {"approved": list(self.approved), "failed": list(self.failed)}


@dataclass(frozen=True)
class Page:
    items: list[dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return int(math.ceil(self.total / self.limit)) if self.limit else 0


def _filters(*, status: str | None, pool_address: str | None) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if status:
        out["status"] = status
    if pool_address:
        out["poolAddress"] = str(pool_address).strip().lower()
    return out


class ReviewService:
    """Admin review of applications: listing, statistics and status transitions."""

    def __init__(self, *, applications: ApplicationsRepo, email: EmailSender):
        self._apps = applications
        self._email = email

    # --- queries ---

    def list_applications(
        self,
        *,
        status: str | None = None,
        pool_address: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        page = max(1, int(page or 1))
        limit = max(1, min(MAX_PAGE_SIZE, int(limit or DEFAULT_PAGE_SIZE)))
        filters = _filters(status=status, pool_address=pool_address)
        items = self._apps.list(filters, skip=(page - 1) * limit, limit=limit)
        return Page(items=items, total=self._apps.count(filters), page=page, limit=limit)

    def statistics(self, *, pool_address: str | None = None) -> dict[str, Any]:
        return self._apps.statistics(_filters(status=None, pool_address=pool_address))

    # --- transitions ---

    def _load(self, application_id: str) -> dict[str, Any]:
        app = self._apps.get(application_id)
        if not app:
            raise NotFound("Application not found")
        return app

    def _apply(self, app: dict[str, Any], transition: rules.Transition) -> dict[str, Any]:
        updated = self._apps.apply_transition(
            app["_id"], expected_version=int(app.get("version") or 0), transition=transition
        )
        if updated is None:
            raise Conflict(CONCURRENT_MODIFICATION)
        return updated

    def _notify_status(self, app: dict[str, Any], status: str) -> None:
        sent = self._email.send_status_update_email(
            to_email=app.get("email") or "",
            status=status,
            pool=str(app.get("poolId") or ""),
            name=rules.applicant_name(app),
        )
        if not sent:
            log.warning("status_email_failed", application_id=str(app.get("_id")), status=status)

    def approve(self, application_id: str, *, admin_address: str | None, notes: str | None = None) -> dict[str, Any]:
        app = self._load(application_id)
        rules.check_can_approve(app)
        updated = self._apply(
            app, rules.review(rules.APPROVED, admin_address=admin_address, notes=notes, now=utcnow())
        )
        log.info("application_approved", application_id=str(updated["_id"]), reviewed_by=updated.get("reviewedBy"))
        self._notify_status(updated, rules.APPROVED)
        return updated

    def reject(self, application_id: str, *, admin_address: str | None, notes: str | None = None) -> dict[str, Any]:
        app = self._load(application_id)
        rules.check_can_reject(app)
        updated = self._apply(
            app, rules.review(rules.REJECTED, admin_address=admin_address, notes=notes, now=utcnow())
        )
        log.info("application_rejected", application_id=str(updated["_id"]), reviewed_by=updated.get("reviewedBy"))
        self._notify_status(updated, rules.REJECTED)
        return updated

    def mark_paid(self, application_id: str, *, transaction_hash: str | None = None) -> dict[str, Any]:
        app = self._load(application_id)
        rules.check_can_mark_paid(app)
        updated = self._apply(app, rules.mark_paid(transaction_hash=transaction_hash, now=utcnow()))
        log.info("application_paid", application_id=str(updated["_id"]), tx_hash=updated.get("transactionHash"))
        if not self._email.send_payment_email(
            to_email=updated.get("email") or "",
            wallet=str(updated.get("walletAddress") or ""),
            tx_hash=updated.get("transactionHash"),
            name=rules.applicant_name(updated),
        ):
            log.warning("payment_email_failed", application_id=str(updated["_id"]))
        return updated

    def batch_approve(
        self, application_ids: Any, *, admin_address: str | None, notes: str | None = None
    ) -> BatchApproveResult:
        """
        Approve each id in order. A failure is recorded against its id and the
        loop moves on; nothing is rolled back.
        """
        if not isinstance(application_ids, list) or not application_ids:
            raise BadRequest("applicationIds must be a non-empty array")

        result = BatchApproveResult()
        now = utcnow()
        for raw_id in application_ids:
            app_id = str(raw_id)
            try:
                app = self._apps.get(app_id)
                if not app:
                    result.fail(app_id, "Not found")
                    continue

                reason = rules.approve_block_reason(app)
                if reason:
                    result.fail(app_id, reason)
                    continue

                updated = self._apps.apply_transition(
                    app["_id"],
                    expected_version=int(app.get("version") or 0),
                    transition=rules.review(rules.APPROVED, admin_address=admin_address, notes=notes, now=now),
                )
                if updated is None:
                    result.fail(app_id, CONCURRENT_MODIFICATION)
                    continue

                result.approved.append(app_id)
                self._notify_status(updated, rules.APPROVED)
            except (AppError, PyMongoError) as e:
                log.warning("batch_approve_item_failed", application_id=app_id, error=str(e))
                result.fail(app_id, str(e))

        log.info(
            "batch_approve_completed",
            approved=len(result.approved),
            failed=len(result.failed),
            reviewed_by=str(admin_address or "").lower() or None,
        )
        return result
