"""
FastAPI Dependencies
====================

Everything a handler needs is pulled from `request.app.state`, which the app
factory fills in: settings, the Database handle and the Storage backend.
"""

import logging
from typing import Generator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .audit import RequestMeta
from .auth import AuthContext, AuthService
from .errors import ForbiddenError, UnauthorizedError
from .storage import Storage

logger = logging.getLogger(__name__)


def get_app_settings(request: Request):
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    """Get database session for FastAPI dependency injection"""
    db = request.app.state.database.new_session()
    try:
        yield db
    finally:
        db.close()


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_request_meta(request: Request) -> RequestMeta:
    return RequestMeta.from_request(request)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


async def get_optional_auth(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Optional[AuthContext]:
    """
    Resolve the actor from either:
    - `Authorization: Bearer <jwt>` (preferred when present)
    - the session cookie
    Returns None when neither yields an active user.
    """
    settings = request.app.state.settings
    token = _bearer_token(authorization) or request.cookies.get(settings.session_cookie_name)
    return AuthService(db, settings).resolve_token(token)


async def require_auth(auth: Optional[AuthContext] = Depends(get_optional_auth)) -> AuthContext:
    if auth is None:
        raise UnauthorizedError("Authentication required")
    return auth


async def require_admin(auth: AuthContext = Depends(require_auth)) -> AuthContext:
    if not auth.is_admin:
        logger.warning(f"Admin endpoint refused for user {auth.user_id} ({auth.role.value})")
        raise ForbiddenError("Admin access required")
    return auth
