"""
Authentication & Session Tokens
===============================

Roles (closed set):
- admin: manages users and case info; full document capabilities by default
- lawyer: view/upload/edit documents
- expert: view/upload documents
- observer: view only

Document capabilities are NOT derived from the role here; they come from the
permission table (see permissions.py). This module only answers "who is the
actor" and "is the actor an admin".

Actor resolution:
1. `Authorization: Bearer <jwt>`
2. Session cookie (name from settings) carrying the same JWT
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .db.models import User, UserRole

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORD HASHING
# =============================================================================

# bcrypt truncates passwords at 72 bytes; enforce to avoid 500s.
MAX_PASSWORD_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def is_password_too_long(password: str) -> bool:
    """Return True if password exceeds bcrypt 72-byte limit."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    if is_password_too_long(plain_password):
        logger.warning("Auth failed: password exceeds bcrypt 72-byte limit")
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Auth failed: invalid password format ({e})")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password"""
    if is_password_too_long(password):
        raise ValueError("Password exceeds bcrypt 72-byte limit")
    return pwd_context.hash(password)


# =============================================================================
# JWT TOKEN HANDLING
# =============================================================================

def create_access_token(data: dict, settings, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings) -> Optional[dict]:
    """Decode and validate a JWT token"""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.warning(f"Invalid JWT token: {e}")
        return None


def token_for_user(user: User, settings) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value}, settings)


# =============================================================================
# AUTH CONTEXT
# =============================================================================

@dataclass
class AuthContext:
    """Authenticated actor for a request"""
    user_id: int
    email: str
    name: Optional[str]
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "is_admin": self.is_admin,
        }


class AuthService:
    """Builds AuthContext from tokens and credentials"""

    def __init__(self, db: Session, settings):
        self.db = db
        self.settings = settings

    def get_auth_context(self, user_id: int) -> Optional[AuthContext]:
        """
        Build auth context for a user.

        Returns:
            AuthContext if user exists and is active, None otherwise
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user or not user.is_active:
            logger.warning(f"Auth failed: user {user_id} not found or inactive")
            return None

        return AuthContext(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
        )

    def resolve_token(self, token: Optional[str]) -> Optional[AuthContext]:
        """Token -> actor, or None for missing/invalid tokens and unknown users."""
        if not token:
            return None
        payload = decode_token(token, self.settings)
        if not payload or payload.get("type") != "access":
            return None
        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            return None
        return self.get_auth_context(user_id)

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Check email/password; update last sign-in on success.

        Returns:
            The active User if authentication succeeds, None otherwise
        """
        user = self.db.query(User).filter(User.email == email, User.is_active == True).first()  # noqa: E712
        if not user:
            logger.warning(f"Auth failed: email {email} not found")
            return None

        if not user.password_hash:
            logger.warning(f"Auth failed: user {user.id} has no password set")
            return None

        if not verify_password(password, user.password_hash):
            logger.warning(f"Auth failed: invalid password for user {user.id}")
            return None

        user.last_signed_in = datetime.utcnow()
        self.db.commit()
        return user
