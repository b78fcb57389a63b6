"""
Case Timeline
=============

Bilingual chronology of the case. Rows are appended by the system (uploads,
deletions) or created by hand for the user-facing kinds, and never modified.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import RequestMeta, record_audit
from .auth import AuthContext
from .db.models import Document, EventType, TimelineEvent, USER_EVENT_TYPES
from .errors import NotFoundError, UnavailableError, degrade_on_unavailable

logger = logging.getLogger(__name__)


def create_timeline_event(
    db: Session,
    *,
    event_type: EventType,
    title_fr: str,
    title_en: str,
    description_fr: Optional[str] = None,
    description_en: Optional[str] = None,
    actor_id: Optional[int] = None,
    related_document_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    event_date: Optional[datetime] = None,
) -> TimelineEvent:
    """Append and commit one event."""
    event = TimelineEvent(
        event_type=event_type,
        title_fr=title_fr,
        title_en=title_en,
        description_fr=description_fr,
        description_en=description_en,
        actor_id=actor_id,
        related_document_id=related_document_id,
        metadata_json=metadata,
        event_date=event_date or datetime.utcnow(),
    )
    try:
        db.add(event)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Timeline write failed (%s): %s", event_type.value, e.__class__.__name__)
        raise UnavailableError("Failed to write timeline event") from e
    return event


def create_custom_event(db: Session, auth: AuthContext, meta: RequestMeta, payload) -> TimelineEvent:
    """
    Hand-made event from a user.

    Only milestone / meeting / deadline / custom may be created this way; the
    remaining kinds are reserved for events the system emits itself. A related
    document must exist and not be deleted.
    """
    event_type = EventType(payload.event_type)
    if event_type not in USER_EVENT_TYPES:
        raise ValueError(f"Event type {event_type.value} cannot be created manually")

    document_id = payload.related_document_id
    if document_id is not None:
        exists = (
            db.query(Document.id)
            .filter(Document.id == document_id, Document.is_deleted == False)  # noqa: E712
            .first()
        )
        if not exists:
            raise NotFoundError("Document not found", details={"document_id": document_id})

    event = create_timeline_event(
        db,
        event_type=event_type,
        title_fr=payload.title_fr,
        title_en=payload.title_en,
        description_fr=payload.description_fr,
        description_en=payload.description_en,
        actor_id=auth.user_id,
        related_document_id=document_id,
        event_date=payload.event_date,
    )

    record_audit(
        db,
        user_id=auth.user_id,
        action="create_timeline_event",
        entity_type="timeline_event",
        entity_id=event.id,
        details_fr=f"Événement créé: {event.title_fr}",
        details_en=f"Event created: {event.title_en}",
        meta=meta,
    )
    return event


@degrade_on_unavailable(list)
def list_timeline_events(db: Session, limit: Optional[int] = None) -> List[TimelineEvent]:
    q = db.query(TimelineEvent).order_by(TimelineEvent.event_date.desc(), TimelineEvent.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


@degrade_on_unavailable(list)
def list_timeline_events_by_type(db: Session, event_type: EventType) -> List[TimelineEvent]:
    return (
        db.query(TimelineEvent)
        .filter(TimelineEvent.event_type == event_type)
        .order_by(TimelineEvent.event_date.desc(), TimelineEvent.id.desc())
        .all()
    )


@degrade_on_unavailable(list)
def search_timeline_events(db: Session, query: str) -> List[TimelineEvent]:
    """Substring match over titles and descriptions in both languages."""
    query = (query or "").strip()
    if not query:
        return list_timeline_events(db)

    return (
        db.query(TimelineEvent)
        .filter(or_(
            TimelineEvent.title_fr.contains(query, autoescape=True),
            TimelineEvent.title_en.contains(query, autoescape=True),
            TimelineEvent.description_fr.contains(query, autoescape=True),
            TimelineEvent.description_en.contains(query, autoescape=True),
        ))
        .order_by(TimelineEvent.event_date.desc(), TimelineEvent.id.desc())
        .all()
    )


@degrade_on_unavailable(int)
def count_timeline_events(db: Session) -> int:
    return db.query(TimelineEvent).count()
