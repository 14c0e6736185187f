from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .db import mongo
from .repositories.applications_repo import ApplicationsRepo
from .repositories.otps_repo import OtpsRepo
from .repositories.users_repo import UsersRepo
from .services.applications_service import ApplicationService
from .services.content_store import PinataContentStore
from .services.email import EmailSender
from .services.onboarding_service import OnboardingService
from .services.otp_service import OtpService
from .services.review_service import ReviewService
from .services.transactions import TransactionService
from .services.users_service import UserService
from .settings import Settings


@dataclass
class Services:
    """Everything a request handler may need, built once per process."""

    settings: Settings
    email: EmailSender
    content_store: PinataContentStore
    applications: ApplicationService
    review: ReviewService
    onboarding: OnboardingService
    otp: OtpService
    users: UserService
    transactions: TransactionService

    def close(self) -> None:
        self.content_store.close()


def build_services(
    db: Any,
    settings: Settings,
    *,
    email: EmailSender | None = None,
    content_store: PinataContentStore | None = None,
) -> Services:
    email = email or EmailSender(settings)
    content_store = content_store or PinataContentStore(settings)

    applications = ApplicationsRepo(db[mongo.APPLICATIONS])
    users = UsersRepo(db[mongo.USERS])
    otps = OtpsRepo(db[mongo.OTPS])

    return Services(
        settings=settings,
        email=email,
        content_store=content_store,
        applications=ApplicationService(applications=applications, email=email, content_store=content_store),
        review=ReviewService(applications=applications, email=email),
        onboarding=OnboardingService(users=users, email=email, content_store=content_store, settings=settings),
        otp=OtpService(otps=otps, users=users, email=email, settings=settings),
        users=UserService(users=users),
        transactions=TransactionService(applications=applications),
    )
