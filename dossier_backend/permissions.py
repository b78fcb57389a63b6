"""
Permission Table
================

(role, category) -> {view, upload, edit, delete}.

The table rows are the only source of truth for document capabilities. A
missing row means no access. DEFAULT_ROLE_POLICY is what seeding writes on
first run; changing it later has no effect on existing rows.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List

from sqlalchemy.orm import Session

from .db.models import DocumentPermission, UserRole
from .errors import ForbiddenError, degrade_on_unavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    """What a role may do inside one category"""
    can_view: bool = False
    can_upload: bool = False
    can_edit: bool = False
    can_delete: bool = False

    @classmethod
    def none(cls) -> "Capabilities":
        return cls()

    @classmethod
    def from_row(cls, row: DocumentPermission) -> "Capabilities":
        return cls(
            can_view=row.can_view,
            can_upload=row.can_upload,
            can_edit=row.can_edit,
            can_delete=row.can_delete,
        )

    def allows(self, capability: str) -> bool:
        return bool(getattr(self, f"can_{capability}"))

    def to_dict(self) -> dict:
        return asdict(self)


CAPABILITY_NAMES = ("view", "upload", "edit", "delete")

# Seed policy
DEFAULT_ROLE_POLICY: Dict[UserRole, Capabilities] = {
    UserRole.ADMIN: Capabilities(can_view=True, can_upload=True, can_edit=True, can_delete=True),
    UserRole.LAWYER: Capabilities(can_view=True, can_upload=True, can_edit=True, can_delete=False),
    UserRole.EXPERT: Capabilities(can_view=True, can_upload=True, can_edit=False, can_delete=False),
    UserRole.OBSERVER: Capabilities(can_view=True, can_upload=False, can_edit=False, can_delete=False),
}


def get_capabilities(db: Session, role: UserRole, category_id: int) -> Capabilities:
    """Capabilities of `role` in `category_id`; all-false when no row exists."""
    row = (
        db.query(DocumentPermission)
        .filter(
            DocumentPermission.role == role,
            DocumentPermission.category_id == category_id,
        )
        .first()
    )
    if not row:
        return Capabilities.none()
    return Capabilities.from_row(row)


def require_capability(db: Session, role: UserRole, category_id: int, capability: str) -> None:
    """Raise ForbiddenError unless `role` has `capability` in `category_id`."""
    if capability not in CAPABILITY_NAMES:
        raise ValueError(f"Unknown capability: {capability}")

    if not get_capabilities(db, role, category_id).allows(capability):
        logger.warning(
            "Permission denied: role %s lacks %s on category %s",
            role.value, capability, category_id,
        )
        raise ForbiddenError(
            f"No {capability} permission for this category",
            details={"category_id": category_id, "capability": capability},
        )


@degrade_on_unavailable(list)
def list_permissions_for_role(db: Session, role: UserRole) -> List[DocumentPermission]:
    return (
        db.query(DocumentPermission)
        .filter(DocumentPermission.role == role)
        .order_by(DocumentPermission.category_id)
        .all()
    )
