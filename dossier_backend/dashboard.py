"""
Dashboard aggregate: one call for the case overview screen.
"""

from sqlalchemy.orm import Session

from .case_info import get_case_info
from .categories import list_categories
from .documents import get_document_stats, list_documents
from .timeline import count_timeline_events, list_timeline_events
from .users import count_active_users

RECENT_LIMIT = 5


def get_dashboard(db: Session) -> dict:
    stats = get_document_stats(db)
    counts = {row["category_id"]: row["count"] for row in stats["by_category"]}

    categories = [
        {
            "category_id": c.id,
            "name_key": c.name_key,
            "name_fr": c.name_fr,
            "name_en": c.name_en,
            "color": c.color,
            "icon": c.icon,
            "count": counts.get(c.id, 0),
        }
        for c in list_categories(db)
    ]

    info = get_case_info(db)

    return {
        "total_documents": stats["total"],
        "documents_by_category": categories,
        "active_users": count_active_users(db),
        "timeline_events": count_timeline_events(db),
        "case": {
            "title_fr": info.title_fr if info else None,
            "title_en": info.title_en if info else None,
            "amount": info.amount if info else None,
            "currency": info.currency if info else None,
            "status": info.status.value if info and info.status else None,
        },
        "recent_documents": list_documents(db, limit=RECENT_LIMIT),
        "recent_events": list_timeline_events(db, limit=RECENT_LIMIT),
    }
