from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import user_service
from ..responses import ok
from ..services.users_service import UserService

router = APIRouter(tags=["user"])


class ProfileUpdate(BaseModel):
    email: str | None = None
    fullName: str | None = None
    institution: str | None = None
    organizationName: str | None = None


class PreferencesUpdate(BaseModel):
    emailNotifications: bool | None = None
    applicationUpdates: bool | None = None
    weeklyDigest: bool | None = None


@router.get("/profile/{wallet}")
def get_profile(wallet: str, svc: UserService = Depends(user_service)):
    return ok(svc.profile(wallet))


@router.put("/profile/{wallet}")
def update_profile(wallet: str, body: ProfileUpdate, svc: UserService = Depends(user_service)):
    # Only fields present in the request are applied.
    changes = body.model_dump(exclude_unset=True)
    return ok(svc.update_profile(wallet, changes), message="Profile updated successfully")


@router.get("/preferences/{wallet}")
def get_preferences(wallet: str, svc: UserService = Depends(user_service)):
    return ok(svc.preferences(wallet))


@router.put("/preferences/{wallet}")
def update_preferences(wallet: str, body: PreferencesUpdate, svc: UserService = Depends(user_service)):
    changes = body.model_dump(exclude_unset=True)
    return ok(svc.update_preferences(wallet, changes), message="Preferences updated successfully")
