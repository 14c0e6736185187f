from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore", populate_by_name=True)

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=5000, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS / Frontend (also used to build verification links)
    frontend_url: str = Field(default="http://localhost:3000", validation_alias="FRONTEND_URL")
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # MongoDB
    mongo_uri: str = Field(default="mongodb://localhost:27017", validation_alias="MONGO_URI")
    mongo_db_name: str = Field(default="educhain", validation_alias="MONGO_DB_NAME")
    mongo_server_selection_timeout_ms: int = Field(
        default=5000, validation_alias="MONGO_SERVER_SELECTION_TIMEOUT_MS"
    )

    # Email (SES)
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    email_from: str | None = Field(default=None, validation_alias="EMAIL_FROM")
    email_from_name: str = Field(default="EduChain", validation_alias="EMAIL_FROM_NAME")

    # Content store (Pinata / IPFS)
    pinata_api_key: str | None = Field(default=None, validation_alias="PINATA_API_KEY")
    pinata_api_secret: str | None = Field(default=None, validation_alias="PINATA_API_SECRET")
    pinata_base_url: str = Field(
        default="https://api.pinata.cloud/pinning", validation_alias="PINATA_BASE_URL"
    )
    ipfs_gateway_url: str = Field(
        default="https://gateway.pinata.cloud/ipfs", validation_alias="IPFS_GATEWAY_URL"
    )
    content_store_timeout_seconds: float = Field(
        default=30.0, validation_alias="CONTENT_STORE_TIMEOUT_SECONDS"
    )

    # Verification flows
    otp_ttl_minutes: int = Field(default=10, validation_alias="OTP_TTL_MINUTES")
    otp_max_attempts: int = Field(default=3, validation_alias="OTP_MAX_ATTEMPTS")
    verification_token_ttl_hours: int = Field(
        default=24, validation_alias="VERIFICATION_TOKEN_TTL_HOURS"
    )

    # Hardening
    rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    debug_routes_enabled: bool | None = Field(default=None, validation_alias="DEBUG_ROUTES_ENABLED")

    # Used in payment notification emails.
    block_explorer_url: str = Field(
        default="https://mumbai.polygonscan.com", validation_alias="BLOCK_EXPLORER_URL"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def is_development(self) -> bool:
        return self.normalized_environment == "development"

    @property
    def pinata_configured(self) -> bool:
        return bool(
            str(self.pinata_api_key or "").strip() and str(self.pinata_api_secret or "").strip()
        )

    @property
    def email_configured(self) -> bool:
        return bool(str(self.email_from or "").strip())

    @property
    def debug_routes_active(self) -> bool:
        if self.debug_routes_enabled is None:
            return not self.is_production
        return bool(self.debug_routes_enabled)

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development is allowed to run with partial config (mock CIDs, emails
        logged and skipped), but production must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not str(self.mongo_uri or "").strip():
            missing.append("MONGO_URI")
        if not self.email_configured:
            missing.append("EMAIL_FROM")
        if not self.pinata_configured:
            missing.append("PINATA_API_KEY / PINATA_API_SECRET")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "frontend_url": self.frontend_url,
            "mongo": {
                "mongo_uri_configured": _has(self.mongo_uri),
                "mongo_db_name": self.mongo_db_name,
            },
            "email": {
                "aws_region": self.aws_region,
                "email_from": self.email_from if _has(self.email_from) else None,
            },
            "content_store": {
                "pinata_configured": self.pinata_configured,
                "pinata_base_url": self.pinata_base_url,
            },
            "rate_limit_enabled": bool(self.rate_limit_enabled),
            "debug_routes": self.debug_routes_active,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s
