from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .container import Services, build_services
from .db import mongo
from .errors import AppError
from .middleware.access_log import AccessLogMiddleware
from .middleware.cors import allowed_origins
from .middleware.rate_limit import RateLimitMiddleware
from .middleware.request_context import RequestContextMiddleware
from .middleware.server_errors import UnhandledErrorMiddleware, unhandled_error_response
from .observability.logging import configure_logging, get_logger
from .responses import error_response
from .routers.admin import router as admin_router
from .routers.applications import router as applications_router
from .routers.auth import router as auth_router
from .routers.debug import router as debug_router
from .routers.health import router as health_router
from .routers.onboarding import router as onboarding_router
from .routers.otp import router as otp_router
from .routers.transactions import router as transactions_router
from .routers.user import router as user_router
from .settings import Settings, get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    log = get_logger("startup")
    if getattr(app.state, "services", None) is not None:
        # Injected by the caller (tests, scripts); they own its lifecycle.
        yield
        return

    settings: Settings = app.state.settings
    client = mongo.create_client(settings)
    try:
        db = mongo.get_database(client, settings)
        mongo.ensure_indexes(db)
        log.info("mongo_connected", database=settings.mongo_db_name)

        services = build_services(db, settings)
        app.state.services = services
        try:
            yield
        finally:
            services.close()
            app.state.services = None
    finally:
        client.close()
        log.info("mongo_disconnected")


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    settings = settings or (services.settings if services else None) or get_settings()

    # Logging must be configured before the app starts handling requests.
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    app = FastAPI(
        title="EduChain Scholarship Backend",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.services = services

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RateLimitMiddleware, enabled=settings.rate_limit_enabled)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/health"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-Id"],
        expose_headers=["X-Request-Id", "Retry-After"],
        max_age=3000,
    )
    # Outermost: request context (request-id) wraps everything.
    app.add_middleware(RequestContextMiddleware)

    # Error handlers
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PyMongoError, _database_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_response)

    # Routes
    app.include_router(health_router)
    app.include_router(applications_router, prefix="/api/applications")
    app.include_router(admin_router, prefix="/api/admin")
    app.include_router(onboarding_router, prefix="/api/onboarding")
    app.include_router(otp_router, prefix="/api/otp")
    app.include_router(user_router, prefix="/api/user")
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(transactions_router, prefix="/api/transactions")
    if settings.debug_routes_active:
        app.include_router(debug_router, prefix="/api/debug")
        log.warning("debug_routes_enabled")

    return app


def _app_error_handler(request: Request, exc: AppError) -> Response:
    status_code = int(exc.status_code or 500)
    cause = str(exc.__cause__) if exc.__cause__ else None
    if status_code >= 500:
        get_logger("errors").warning(
            "app_error",
            error=exc.message,
            status_code=status_code,
            path=str(request.url.path),
            cause=cause,
        )
    return error_response(
        request=request,
        status_code=status_code,
        error=exc.message,
        # Client errors carry their own message; storage causes stay internal.
        details=cause if status_code >= 500 else None,
        extensions=exc.extensions or None,
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    error: str | None = None
    if isinstance(detail, str) and detail.strip():
        error = detail.strip()
    if status_code == 404 and (not error or error == "Not Found"):
        error = "Route not found"

    return error_response(
        request=request,
        status_code=status_code,
        error=error,
        headers=getattr(exc, "headers", None),
    )


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        loc_path = ".".join([str(x) for x in loc if x != "body"])
        errors.append(
            {
                "location": list(loc) if isinstance(loc, (list, tuple)) else [],
                "path": loc_path,
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    return error_response(
        request=request,
        status_code=400,
        error="Validation failed",
        errors=errors,
    )


def _database_error_handler(request: Request, exc: PyMongoError) -> Response:
    get_logger("errors").error(
        "database_error",
        error=str(exc),
        error_type=type(exc).__name__,
        http_method=request.method,
        path=str(request.url.path),
    )
    return error_response(
        request=request,
        status_code=500,
        error="Database error",
        details=str(exc),
    )
    return error_response(
        request=request,
        status_code=500,
        error="Internal server error",
        details=str(exc) if exc else None,
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
