from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import transaction_service
from ..responses import ok
from ..services.transactions import TransactionService

router = APIRouter(tags=["transactions"])


@router.get("/wallet/{address}")
def history(address: str, svc: TransactionService = Depends(transaction_service)):
    items = svc.history(address)
    return ok(items, count=len(items))


@router.get("/{transactionId}")
def details(transactionId: str, svc: TransactionService = Depends(transaction_service)):
    return ok(svc.details(transactionId))
