from __future__ import annotations

from typing import Any

from ..db.mongo import utcnow
from ..domain import user as user_rules
from ..errors import BadRequest, NotFound
from ..observability.logging import get_logger
from ..repositories.users_repo import UsersRepo

log = get_logger("users")

_PROFILE_FIELDS = ("fullName", "institution", "organizationName")


class UserService:
    """Profile, preferences and wallet sign-in for onboarded users."""

    def __init__(self, *, users: UsersRepo):
        self._users = users

    def _require(self, wallet: str, *, message: str = "User not found") -> dict[str, Any]:
        user = self._users.get_by_wallet(wallet)
        if not user:
            raise NotFound(message)
        return user

    def profile(self, wallet: str) -> dict[str, Any]:
        user = self._require(wallet, message="User not found. Please complete onboarding first.")
        return user_rules.public_profile(user)

    def update_profile(self, wallet: str, changes: dict[str, Any]) -> dict[str, Any]:
        """
        `changes` holds only the fields the caller sent. A new email address
        resets verification.
        """
        user = self._require(wallet)
        set_fields: dict[str, Any] = {}

        new_email = str(changes.get("email") or "").strip().lower()
        if new_email and new_email != str(user.get("email") or ""):
            if self._users.get_by_email(new_email):
                raise BadRequest("This email is already registered")
            set_fields["email"] = new_email
            set_fields["emailVerified"] = False

        for key in _PROFILE_FIELDS:
            if key in changes:
                set_fields[key] = changes[key]

        updated = self._users.update_by_wallet(user["walletAddress"], set_fields=set_fields) if set_fields else user
        if not updated:
            raise NotFound("User not found")
        log.info("profile_updated", wallet=user["walletAddress"], fields=sorted(set_fields))
        return user_rules.public_profile(updated)

    def preferences(self, wallet: str) -> dict[str, bool]:
        return user_rules.preferences(self._require(wallet))

    def update_preferences(self, wallet: str, changes: dict[str, Any]) -> dict[str, bool]:
        user = self._require(wallet)
        set_fields = {k: bool(v) for k, v in changes.items() if k in user_rules.PREFERENCE_DEFAULTS and v is not None}
        if set_fields:
            user = self._users.update_by_wallet(user["walletAddress"], set_fields=set_fields) or user
        return user_rules.preferences(user)

    # --- wallet sign-in ---

    def check_wallet(self, wallet: str) -> dict[str, Any]:
        user = self._users.get_by_wallet(wallet)
        if not user:
            raise NotFound("Wallet not registered", extensions={"registered": False})
        return user_rules.public_profile(user)

    def login(self, wallet: str | None) -> dict[str, Any]:
        addr = str(wallet or "").strip()
        if not addr:
            raise BadRequest("Wallet address is required")
        user = self._users.get_by_wallet(addr)
        if not user:
            raise NotFound("Wallet not registered. Please complete onboarding.", extensions={"registered": False})
        updated = self._users.update_by_wallet(user["walletAddress"], set_fields={"lastLogin": utcnow()}) or user
        log.info("user_login", wallet=updated["walletAddress"], role=updated.get("role"))
        return user_rules.public_profile(updated)
