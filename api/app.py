from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from api.core.config import Settings, get_settings
from api.core.identity import IdentityProvider, build_identity_provider
from api.core.logs import configure_logging
from api.core.mailer import Mailer, build_mailer
from api.repositories.sql_repository import SQLRepository
from api.routers import accounts as accounts_router
from api.routers import approvals as approvals_router
from api.services.account_service import AccountService
from api.services.approval_service import TEMPLATES_DIR, ApprovalService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", "default-src 'self'; style-src 'self' 'unsafe-inline'")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def create_app(
    settings: Optional[Settings] = None,
    *,
    identity_provider: Optional[IdentityProvider] = None,
    mailer: Optional[Mailer] = None,
    repository: Optional[SQLRepository] = None,
) -> FastAPI:
    """Build the application; external clients are injected or built from settings."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=f"{settings.app_name} Admin Hooks")
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    if mailer is None:
        mailer = build_mailer(settings)
    app.state.settings = settings
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    app.state.account_service = AccountService(
        identity_provider=identity_provider or build_identity_provider(settings),
        admin_token=settings.admin_delete_token,
    )
    app.state.approval_service = ApprovalService(
        repository=repository or SQLRepository(),
        mailer=mailer,
        app_name=settings.app_name,
    )
    if not settings.admin_delete_token:
        logger.warning("ADMIN_DELETE_TOKEN not set; /auth/delete-user does not verify adminToken")

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(accounts_router.router)
    app.include_router(approvals_router.router)
    return app


app = create_app()
