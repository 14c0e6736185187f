from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import user_service
from ..responses import ok
from ..services.users_service import UserService

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    walletAddress: str | None = None


@router.get("/check/{wallet}")
def check_wallet(wallet: str, svc: UserService = Depends(user_service)):
    # 404 carries registered=false via the error extensions.
    return ok(svc.check_wallet(wallet), registered=True)


@router.post("/login")
def login(body: LoginRequest, svc: UserService = Depends(user_service)):
    return ok(svc.login(body.walletAddress), message="Login successful", registered=True)
