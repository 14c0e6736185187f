from __future__ import annotations

from ..settings import Settings

# Local frontend dev servers.
_DEV_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def allowed_origins(settings: Settings) -> list[str]:
    """FRONTEND_URL plus any comma-separated FRONTEND_URLS; dev origins outside production."""
    origins: set[str] = set() if settings.is_production else set(_DEV_ORIGINS)
    for raw in (settings.frontend_url, settings.frontend_urls):
        for origin in str(raw or "").split(","):
            origin = origin.strip().rstrip("/")
            if origin:
                origins.add(origin)
    return sorted(origins)
