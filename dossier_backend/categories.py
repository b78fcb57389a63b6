"""
Document categories. Fixed set, seeded at startup; read-only at runtime.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from .db.models import Category
from .errors import degrade_on_unavailable


@degrade_on_unavailable(list)
def list_categories(db: Session) -> List[Category]:
    """Active categories by display order"""
    return (
        db.query(Category)
        .filter(Category.is_active == True)  # noqa: E712
        .order_by(Category.sort_order)
        .all()
    )


@degrade_on_unavailable(lambda: None)
def get_category(db: Session, category_id: int) -> Optional[Category]:
    return db.query(Category).filter(Category.id == category_id).first()
