from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..deps import get_app_settings
from ..settings import Settings

router = APIRouter()


@router.get("/", tags=["health"])
def root(settings: Settings = Depends(get_app_settings)):
    return {
        "message": "EduChain Scholarship API",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.normalized_environment,
        "endpoints": {
            "applications": "/api/applications",
            "admin": "/api/admin",
            "onboarding": "/api/onboarding",
            "otp": "/api/otp",
            "user": "/api/user",
            "auth": "/api/auth",
            "transactions": "/api/transactions",
            "health": "/health",
        },
    }


@router.get("/health", tags=["health"])
def health():
    return {
        "success": True,
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
