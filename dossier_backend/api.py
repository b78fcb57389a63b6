"""
Dossier Backend API
===================

FastAPI application for a single legal case document vault.

Core Endpoints:
- GET  /health            - Health check
- GET  /api/v1/auth/me    - Current actor (or null)
- POST /api/v1/auth/login - Email/password sign in
- POST /api/v1/auth/logout

Documents, categories and permissions: see api_documents.py
Users, timeline, audit, case info, saved searches, dashboard: see api_case.py

Run with:
    uvicorn dossier_backend.api:app --host 0.0.0.0 --port 8000
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .api_case import router as case_router
from .api_documents import router as documents_router
from .audit import RequestMeta, record_audit
from .auth import AuthContext, AuthService, token_for_user
from .config import Settings, get_settings
from .db.session import Database
from .dependencies import get_app_settings, get_db, get_optional_auth, get_request_meta
from .errors import DossierError
from .middleware.security import SecurityHeadersMiddleware
from .schemas import ActorResponse, LoginRequest, LoginResponse, SuccessResponse
from .seed import bootstrap
from .storage import Storage, build_storage

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# Error Handlers
# =============================================================================

def _sanitize_error_detail(detail: Any) -> Any:
    if detail is None:
        return None
    if isinstance(detail, str):
        compact = " ".join(detail.split())
        return compact[:300]
    return detail


def _error_code_for_status(status_code: int) -> str:
    return {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        413: "payload_too_large",
        422: "validation_error",
        500: "internal_error",
        503: "unavailable",
    }.get(status_code, "error")


def _build_error_payload(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(DossierError)
    async def dossier_error_handler(request: Request, exc: DossierError):
        if exc.status_code >= 500:
            logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_build_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.warning("Database error on %s: %s", request.url.path, exc.__class__.__name__)
        return JSONResponse(
            status_code=503,
            content=_build_error_payload("unavailable", "Record store unavailable"),
        )

    @app.exception_handler(HTTPException)
    async def api_http_exception_handler(request: Request, exc: HTTPException):
        detail = _sanitize_error_detail(exc.detail)
        if isinstance(detail, dict):
            message = detail.get("message") or "Request failed"
            details = detail.get("details")
            code = detail.get("code") or _error_code_for_status(exc.status_code)
        elif isinstance(detail, str) and detail:
            message = detail
            details = None
            code = _error_code_for_status(exc.status_code)
        else:
            message = "Request failed"
            details = detail
            code = _error_code_for_status(exc.status_code)

        return JSONResponse(
            status_code=exc.status_code,
            content=_build_error_payload(code, message, details),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
        """Return structured validation errors without leaking inputs."""
        sanitized_errors = [
            {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_build_error_payload(
                "validation_error",
                "Invalid request",
                {"errors": sanitized_errors},
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler - always return valid JSON"""
        logger.exception("Unhandled exception on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=_build_error_payload("internal_error", "Internal server error", {"exception": exc.__class__.__name__}),
        )


# =============================================================================
# Auth endpoints
# =============================================================================

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.get("/me", response_model=Optional[ActorResponse])
async def api_auth_me(auth: Optional[AuthContext] = Depends(get_optional_auth)):
    """Current actor, or null when not signed in"""
    return auth.to_dict() if auth else None


@auth_router.post("/login", response_model=LoginResponse)
async def api_login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    meta: RequestMeta = Depends(get_request_meta),
):
    """Email/password sign in. The token is returned and also set as the session cookie."""
    service = AuthService(db, settings)
    user = service.authenticate_user(body.email.strip().lower(), body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = token_for_user(user, settings)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.jwt_access_token_expire_minutes * 60,
    )

    record_audit(
        db,
        user_id=user.id,
        action="user_login",
        entity_type="user",
        entity_id=user.id,
        details_fr="Connexion",
        details_en="Signed in",
        meta=meta,
    )

    actor = service.get_auth_context(user.id)
    return {"access_token": token, "token_type": "bearer", "user": actor.to_dict()}


@auth_router.post("/logout", response_model=SuccessResponse)
async def api_logout(response: Response, settings: Settings = Depends(get_app_settings)):
    response.delete_cookie(settings.session_cookie_name)
    return {"success": True}


# =============================================================================
# FastAPI App
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    storage: Optional[Storage] = None,
) -> FastAPI:
    """
    Build the application.

    Tests pass explicit settings / database / storage; production uses the
    environment.
    """
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)
    storage = storage or build_storage(settings)

    app = FastAPI(
        title="Dossier Backend",
        description="Legal case document vault: documents, timeline, audit trail",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.storage = storage

    logger.info(f"CORS allow origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware, enforce_https=settings.enforce_https)

    _register_exception_handlers(app)

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(case_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "ok",
            "version": settings.service_version,
            "storage_backend": storage.name,
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.on_event("startup")
    async def startup_event():
        for warning in settings.validate_config():
            logger.warning(f"Config: {warning}")
        bootstrap(database, settings)
        logger.info("Dossier backend ready")

    @app.on_event("shutdown")
    async def shutdown_event():
        database.dispose()

    return app


app = create_app()
