"""
Documents & Upload Pipeline
===========================

Upload steps, in order:
1. permission check (upload capability on the target category)
2. SHA-256 over the exact bytes received
3. object store write under a fresh key
4. Document row with the serialized timestamp proof
5. audit row `upload_document`
6. timeline event `document_upload`

Each step commits on its own. A failure after step 3 leaves the stored object
without a row; there is no compensation.

Every read here excludes soft-deleted rows.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import RequestMeta, record_audit
from .auth import AuthContext
from .db.models import Document, EventType
from .errors import NotFoundError, UnavailableError, degrade_on_unavailable
from .integrity import build_timestamp_proof, sha256_hex
from .permissions import require_capability
from .storage import Storage, generate_document_key
from .timeline import create_timeline_event

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class UploadResult:
    success: bool
    document_id: int
    sha256_hash: str
    storage_url: str

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "document_id": self.document_id,
            "sha256_hash": self.sha256_hash,
            "storage_url": self.storage_url,
        }


@dataclass
class DocumentSearch:
    """Conjunctive search criteria; unset fields do not filter."""
    query: Optional[str] = None
    category_id: Optional[int] = None
    uploaded_by: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: List[str] = field(default_factory=list)


def _active(db: Session):
    return db.query(Document).filter(Document.is_deleted == False)  # noqa: E712


def _newest_first(query):
    return query.order_by(Document.uploaded_at.desc(), Document.id.desc())


# =============================================================================
# WRITES
# =============================================================================

def upload_document(
    db: Session,
    storage: Storage,
    auth: AuthContext,
    meta: RequestMeta,
    *,
    category_id: int,
    file_name: str,
    data: bytes,
    mime_type: Optional[str] = None,
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
) -> UploadResult:
    """Run the upload pipeline for one file."""
    require_capability(db, auth.role, category_id, "upload")

    digest = sha256_hex(data)
    file_size = len(data)
    mime_type = mime_type or DEFAULT_MIME_TYPE

    key = generate_document_key(auth.user_id, file_name)
    stored = storage.put(key, data, mime_type)
    logger.info("Stored %s (%d bytes) for user %s", key, file_size, auth.user_id)

    uploaded_at = datetime.utcnow()
    document = Document(
        category_id=category_id,
        uploaded_by=auth.user_id,
        file_name=file_name,
        file_size=file_size,
        mime_type=mime_type,
        storage_key=stored.key,
        storage_url=stored.url,
        sha256_hash=digest,
        timestamp_proof=build_timestamp_proof(digest, auth.user_id, file_name, file_size, uploaded_at),
        description=description,
        tags=list(tags or []),
        uploaded_at=uploaded_at,
    )
    try:
        db.add(document)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        # Stored object at `key` is left orphaned
        logger.error("Document insert failed after storing %s: %s", key, e.__class__.__name__)
        raise UnavailableError("Failed to record document") from e

    record_audit(
        db,
        user_id=auth.user_id,
        action="upload_document",
        entity_type="document",
        entity_id=document.id,
        details_fr=f"Document téléversé: {file_name}",
        details_en=f"Document uploaded: {file_name}",
        meta=meta,
        metadata={"categoryId": category_id, "fileSize": file_size, "sha256Hash": digest},
    )

    create_timeline_event(
        db,
        event_type=EventType.DOCUMENT_UPLOAD,
        title_fr=f"Nouveau document: {file_name}",
        title_en=f"New document: {file_name}",
        description_fr=description,
        description_en=description,
        actor_id=auth.user_id,
        related_document_id=document.id,
    )

    return UploadResult(
        success=True,
        document_id=document.id,
        sha256_hash=digest,
        storage_url=stored.url,
    )


def soft_delete_document(db: Session, auth: AuthContext, meta: RequestMeta, document_id: int) -> None:
    """Mark a document deleted. The row and the stored object stay."""
    document = _active(db).filter(Document.id == document_id).first()
    if not document:
        raise NotFoundError("Document not found", details={"document_id": document_id})

    require_capability(db, auth.role, document.category_id, "delete")

    try:
        document.is_deleted = True
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UnavailableError("Failed to delete document") from e

    record_audit(
        db,
        user_id=auth.user_id,
        action="delete_document",
        entity_type="document",
        entity_id=document.id,
        details_fr=f"Document supprimé: {document.file_name}",
        details_en=f"Document deleted: {document.file_name}",
        meta=meta,
    )

    create_timeline_event(
        db,
        event_type=EventType.DOCUMENT_DELETE,
        title_fr=f"Document supprimé: {document.file_name}",
        title_en=f"Document deleted: {document.file_name}",
        actor_id=auth.user_id,
        related_document_id=document.id,
    )


def view_document(db: Session, auth: AuthContext, meta: RequestMeta, document_id: int) -> Optional[Document]:
    """Fetch one document and record the access."""
    document = get_document(db, document_id)
    if document:
        record_audit(
            db,
            user_id=auth.user_id,
            action="view_document",
            entity_type="document",
            entity_id=document.id,
            details_fr=f"Document consulté: {document.file_name}",
            details_en=f"Document viewed: {document.file_name}",
            meta=meta,
        )
    return document


# =============================================================================
# READS
# =============================================================================

@degrade_on_unavailable(list)
def list_documents(db: Session, limit: Optional[int] = None) -> List[Document]:
    q = _newest_first(_active(db))
    if limit is not None:
        q = q.limit(limit)
    return q.all()


@degrade_on_unavailable(lambda: None)
def get_document(db: Session, document_id: int) -> Optional[Document]:
    return _active(db).filter(Document.id == document_id).first()


@degrade_on_unavailable(list)
def list_documents_by_category(db: Session, category_id: int) -> List[Document]:
    return _newest_first(_active(db).filter(Document.category_id == category_id)).all()


@degrade_on_unavailable(list)
def search_documents(db: Session, criteria: DocumentSearch) -> List[Document]:
    """
    All set criteria must hold.

    - query: substring of file name or description
    - start_date / end_date: inclusive bounds on upload time
    - tags: every listed tag must be present on the document
    """
    q = _active(db)

    text = (criteria.query or "").strip()
    if text:
        q = q.filter(
            Document.file_name.contains(text, autoescape=True)
            | Document.description.contains(text, autoescape=True)
        )
    if criteria.category_id is not None:
        q = q.filter(Document.category_id == criteria.category_id)
    if criteria.uploaded_by is not None:
        q = q.filter(Document.uploaded_by == criteria.uploaded_by)
    if criteria.start_date is not None:
        q = q.filter(Document.uploaded_at >= criteria.start_date)
    if criteria.end_date is not None:
        q = q.filter(Document.uploaded_at <= criteria.end_date)

    results = _newest_first(q).all()

    # JSON containment differs per dialect, filter tags here
    wanted = [t for t in (criteria.tags or []) if t]
    if wanted:
        results = [d for d in results if all(t in (d.tags or []) for t in wanted)]
    return results


@degrade_on_unavailable(lambda: {"total": 0, "by_category": []})
def get_document_stats(db: Session) -> dict:
    total = _active(db).count()
    rows = (
        db.query(Document.category_id, func.count(Document.id))
        .filter(Document.is_deleted == False)  # noqa: E712
        .group_by(Document.category_id)
        .order_by(Document.category_id)
        .all()
    )
    return {
        "total": total,
        "by_category": [{"category_id": cid, "count": count} for cid, count in rows],
    }
