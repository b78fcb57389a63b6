"""
Saved Searches
==============

Named document-search criteria owned by a user. Creation is audited.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import RequestMeta, record_audit
from .auth import AuthContext
from .db.models import SavedSearch
from .errors import UnavailableError, degrade_on_unavailable

logger = logging.getLogger(__name__)


def create_saved_search(
    db: Session,
    auth: AuthContext,
    meta: RequestMeta,
    name: str,
    criteria: Dict[str, Any],
) -> SavedSearch:
    saved = SavedSearch(user_id=auth.user_id, search_name=name, search_criteria=criteria)
    try:
        db.add(saved)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UnavailableError("Failed to save search") from e

    record_audit(
        db,
        user_id=auth.user_id,
        action="create_saved_search",
        entity_type="saved_search",
        entity_id=saved.id,
        details_fr=f"Recherche enregistrée: {name}",
        details_en=f"Search saved: {name}",
        meta=meta,
    )
    return saved


@degrade_on_unavailable(list)
def list_saved_searches(db: Session, user_id: int) -> List[SavedSearch]:
    return (
        db.query(SavedSearch)
        .filter(SavedSearch.user_id == user_id)
        .order_by(SavedSearch.created_at.desc(), SavedSearch.id.desc())
        .all()
    )
