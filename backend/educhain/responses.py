from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .settings import Settings, get_settings


def _default_error(status_code: int) -> str:
    if status_code == 400:
        return "Bad Request"
    if status_code == 404:
        return "Not Found"
    if status_code == 405:
        return "Method Not Allowed"
    if status_code == 409:
        return "Conflict"
    if status_code == 413:
        return "Payload Too Large"
    if status_code == 429:
        return "Too many requests, please try again later."
    if status_code >= 500:
        return "Internal server error"
    return "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return str(rid)
    hdr = request.headers.get("x-request-id")
    return str(hdr) if hdr else None


def _settings_for(request: Request) -> Settings:
    app = request.scope.get("app")
    s = getattr(getattr(app, "state", None), "settings", None)
    return s if isinstance(s, Settings) else get_settings()


def ok(data: Any = None, *, message: str | None = None, **extra: Any) -> dict[str, Any]:
    """Success envelope: `{success: true, data, message?, ...extra}`."""
    payload: dict[str, Any] = {"success": True}
    if message:
        payload["message"] = message
    payload.update(extra)
    payload["data"] = data
    return payload


def error_payload(
    *,
    request: Request,
    status_code: int,
    error: str | None = None,
    details: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": False,
        "error": error or _default_error(int(status_code)),
        "status": int(status_code),
    }

    if details:
        payload["details"] = str(details)

    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid

    if errors:
        payload["errors"] = errors

    if extensions:
        # Extension members never override the envelope's own keys.
        for k, v in extensions.items():
            payload.setdefault(str(k), v)

    return payload


def error_response(
    *,
    request: Request,
    status_code: int,
    error: str | None = None,
    details: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    settings = _settings_for(request)

    # Never leak internal details in production for server errors.
    safe_details = details
    if int(status_code) >= 500 and settings.is_production:
        safe_details = None

    return ORJSONResponse(
        status_code=int(status_code),
        content=error_payload(
            request=request,
            status_code=int(status_code),
            error=error,
            details=safe_details,
            errors=errors,
            extensions=extensions,
        ),
        headers=headers,
    )
