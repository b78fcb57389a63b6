"""
Case Information
================

The vault holds exactly one case. Its descriptive row is created on first
write and updated in place afterwards.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import RequestMeta, record_audit
from .auth import AuthContext
from .db.models import CaseInfo
from .errors import ForbiddenError, UnavailableError, degrade_on_unavailable

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "case_number",
    "title_fr",
    "title_en",
    "description_fr",
    "description_en",
    "amount",
    "currency",
    "status",
    "client_name",
    "opposing_party",
    "jurisdiction",
    "start_date",
    "expected_end_date",
)

# Columns that cannot hold NULL; a None here leaves the stored value alone
REQUIRED_FIELDS = ("title_fr", "title_en", "status")


@degrade_on_unavailable(lambda: None)
def get_case_info(db: Session) -> Optional[CaseInfo]:
    return db.query(CaseInfo).order_by(CaseInfo.id).first()


def upsert_case_info(db: Session, fields: Dict[str, Any]) -> CaseInfo:
    """Update the single row if present, otherwise insert it."""
    info = db.query(CaseInfo).order_by(CaseInfo.id).first()
    if info is None:
        info = CaseInfo()
        db.add(info)

    for name, value in fields.items():
        if name not in EDITABLE_FIELDS:
            continue
        if value is None and name in REQUIRED_FIELDS:
            continue
        setattr(info, name, value)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UnavailableError("Failed to save case information") from e
    return info


def update_case_info(db: Session, auth: AuthContext, meta: RequestMeta, fields: Dict[str, Any]) -> CaseInfo:
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")

    info = upsert_case_info(db, fields)

    record_audit(
        db,
        user_id=auth.user_id,
        action="update_case_info",
        entity_type="case_info",
        entity_id=info.id,
        details_fr="Informations du dossier mises à jour",
        details_en="Case information updated",
        meta=meta,
        metadata={"fields": sorted(k for k in fields if k in EDITABLE_FIELDS)},
    )
    return info
