"""
Audit Recorder
==============

Append-only trail of who did what, when and from where. One row per logical
action. Audit writes are separate commits: a failed audit write does not undo
the action it describes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db.models import AuditLog
from .errors import UnavailableError, degrade_on_unavailable

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass
class RequestMeta:
    """Best-effort request provenance"""
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN

    @classmethod
    def from_request(cls, request) -> "RequestMeta":
        ip = request.client.host if request.client else None
        if not ip:
            forwarded = request.headers.get("x-forwarded-for", "")
            ip = forwarded.split(",")[0].strip() or None
        return cls(
            ip_address=(ip or UNKNOWN)[:45],
            user_agent=request.headers.get("user-agent") or UNKNOWN,
        )


def record_audit(
    db: Session,
    *,
    user_id: int,
    action: str,
    entity_type: str,
    details_fr: str,
    details_en: str,
    meta: RequestMeta,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Append and commit one audit row."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details_fr=details_fr,
        details_en=details_en,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
        metadata_json=metadata,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Audit write failed for action %s: %s", action, e.__class__.__name__)
        raise UnavailableError("Failed to write audit record") from e

    logger.info("audit user=%s action=%s %s=%s", user_id, action, entity_type, entity_id)
    return entry


@degrade_on_unavailable(list)
def list_audit_logs(db: Session, limit: int = 1000) -> List[AuditLog]:
    return (
        db.query(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


@degrade_on_unavailable(list)
def list_audit_logs_by_user(db: Session, user_id: int) -> List[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.user_id == user_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .all()
    )


@degrade_on_unavailable(list)
def list_audit_logs_by_action(db: Session, action: str) -> List[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.action == action)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .all()
    )
