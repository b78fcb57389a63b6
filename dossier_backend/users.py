"""
User Management
===============

Admin-only mutations (role change, deactivation, creation) are audited.
Users are never hard-deleted; deactivated accounts simply stop resolving as
actors.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import RequestMeta, record_audit
from .auth import AuthContext, get_password_hash
from .db.models import User, UserRole
from .errors import ForbiddenError, NotFoundError, UnavailableError, degrade_on_unavailable

logger = logging.getLogger(__name__)


def _require_admin(auth: AuthContext) -> None:
    if not auth.is_admin:
        logger.warning(f"Admin action refused for user {auth.user_id} ({auth.role.value})")
        raise ForbiddenError("Admin access required")


def _commit(db: Session, message: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UnavailableError(message) from e


@degrade_on_unavailable(list)
def list_active_users(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.is_active == True)  # noqa: E712
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


@degrade_on_unavailable(lambda: None)
def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


@degrade_on_unavailable(lambda: None)
def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def upsert_user(
    db: Session,
    *,
    email: str,
    name: Optional[str] = None,
    login_method: Optional[str] = None,
    role: Optional[UserRole] = None,
    organization: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    """Insert by email, or update the provided fields of an existing user."""
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, role=role or UserRole.OBSERVER)
        db.add(user)
    elif role is not None:
        user.role = role

    for attr, value in (
        ("name", name),
        ("login_method", login_method),
        ("organization", organization),
        ("phone", phone),
    ):
        if value is not None:
            setattr(user, attr, value)

    _commit(db, "Failed to save user")
    return user


def create_user(
    db: Session,
    auth: AuthContext,
    meta: RequestMeta,
    *,
    email: str,
    name: Optional[str],
    role: UserRole,
    password: Optional[str] = None,
    organization: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    _require_admin(auth)

    if get_user_by_email(db, email):
        raise ValueError("A user with this email already exists")

    user = User(
        email=email.strip().lower(),
        name=name,
        role=role,
        organization=organization,
        phone=phone,
        login_method="password" if password else None,
        password_hash=get_password_hash(password) if password else None,
    )
    db.add(user)
    _commit(db, "Failed to create user")

    record_audit(
        db,
        user_id=auth.user_id,
        action="create_user",
        entity_type="user",
        entity_id=user.id,
        details_fr=f"Utilisateur créé: {user.email} ({role.value})",
        details_en=f"User created: {user.email} ({role.value})",
        meta=meta,
    )
    return user


def update_user_role(db: Session, auth: AuthContext, meta: RequestMeta, user_id: int, role: UserRole) -> User:
    _require_admin(auth)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})

    previous = user.role
    user.role = role
    _commit(db, "Failed to update user role")

    record_audit(
        db,
        user_id=auth.user_id,
        action="update_user_role",
        entity_type="user",
        entity_id=user.id,
        details_fr=f"Rôle modifié: {previous.value} -> {role.value}",
        details_en=f"Role changed: {previous.value} -> {role.value}",
        meta=meta,
        metadata={"previousRole": previous.value, "newRole": role.value},
    )
    return user


def deactivate_user(db: Session, auth: AuthContext, meta: RequestMeta, user_id: int) -> User:
    _require_admin(auth)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})

    user.is_active = False
    _commit(db, "Failed to deactivate user")

    record_audit(
        db,
        user_id=auth.user_id,
        action="deactivate_user",
        entity_type="user",
        entity_id=user.id,
        details_fr=f"Utilisateur désactivé: {user.email}",
        details_en=f"User deactivated: {user.email}",
        meta=meta,
    )
    return user


@degrade_on_unavailable(int)
def count_active_users(db: Session) -> int:
    return db.query(User).filter(User.is_active == True).count()  # noqa: E712
