import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from medikeep.core.config import get_settings
from medikeep.core.errors import FieldError, MediKeepError, ValidationError
from medikeep.core.log import setup_logging
from medikeep.repositories.asset_store import PUBLIC_PREFIX, FileAssetStore
from medikeep.repositories.sql_repository import SQLRepository
from medikeep.routers import health as health_router
from medikeep.routers import prescriptions as prescriptions_router
from medikeep.routers import profile as profile_router
from medikeep.routers import reminders as reminders_router
from medikeep.services.prescription_service import PrescriptionService
from medikeep.services.profile_service import ProfileService
from medikeep.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", "default-src 'self'; img-src 'self' data:")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


async def handle_medikeep_error(request: Request, exc: MediKeepError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message,
                     extra={"error_code": exc.code})
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code,
                    extra={"error_code": exc.code})
    return JSONResponse(exc.to_response(), status_code=exc.http_status)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI's own parsing failures (e.g. malformed JSON) in the MediKeep envelope."""
    errors = []
    for err in exc.errors():
        loc = [part for part in err.get("loc", ()) if isinstance(part, str) and part != "body"]
        errors.append(FieldError(loc[-1] if loc else "body", err.get("msg", "Invalid input")))
    return await handle_medikeep_error(request, ValidationError(errors))


def create_app() -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``--factory``)."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(title="MediKeep API")

    repository = SQLRepository()
    assets = FileAssetStore(settings.uploads_dir)
    app.state.prescription_service = PrescriptionService(repository)
    app.state.reminder_service = ReminderService(repository)
    app.state.profile_service = ProfileService(repository, assets)

    os.makedirs(settings.uploads_dir, exist_ok=True)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=settings.uploads_dir), name="uploads")

    allowed_cors = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed_cors.update(
            {
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            }
        )
    allowed_cors = {origin for origin in allowed_cors if origin}
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    app.add_exception_handler(MediKeepError, handle_medikeep_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    app.include_router(health_router.router)
    app.include_router(prescriptions_router.router)
    app.include_router(reminders_router.router)
    app.include_router(profile_router.router)
    return app
