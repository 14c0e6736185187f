from __future__ import annotations

from fastapi import Request

from .container import Services
from .services.applications_service import ApplicationService
from .services.onboarding_service import OnboardingService
from .services.otp_service import OtpService
from .services.review_service import ReviewService
from .services.transactions import TransactionService
from .services.users_service import UserService
from .settings import Settings


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services are not initialized (app lifespan has not run)")
    return services


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def application_service(request: Request) -> ApplicationService:
    return get_services(request).applications


def review_service(request: Request) -> ReviewService:
    return get_services(request).review


def onboarding_service(request: Request) -> OnboardingService:
    return get_services(request).onboarding


def otp_service(request: Request) -> OtpService:
    return get_services(request).otp


def user_service(request: Request) -> UserService:
    return get_services(request).users


def transaction_service(request: Request) -> TransactionService:
    return get_services(request).transactions
