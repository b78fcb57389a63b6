"""
Startup Seeding
===============

Idempotent: every seeder checks for existing rows before inserting, so running
bootstrap on every process start is safe.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .auth import get_password_hash
from .db.models import Category, DocumentPermission, User, UserRole
from .permissions import DEFAULT_ROLE_POLICY

logger = logging.getLogger(__name__)


# (name_key, name_fr, name_en, icon, color)
DEFAULT_CATEGORIES = [
    ("expertise_reports", "Rapports d'Expertise et Études Techniques", "Expertise Reports and Technical Studies", "FileText", "#1e3a8a"),
    ("property_proofs", "Inventaires et Preuves de Propriété", "Inventories and Property Proofs", "Home", "#d97706"),
    ("property_titles", "Titres de Propriété et Documents Fonciers", "Property Titles and Land Documents", "FileCheck", "#059669"),
    ("damage_proofs", "Preuves de la Matérialité des Dommages", "Material Damage Proofs", "AlertTriangle", "#dc2626"),
    ("correspondence", "Correspondances et Actes d'Huissier", "Correspondence and Bailiff Acts", "Mail", "#7c3aed"),
    ("health_moral", "Santé et Préjudice Moral", "Health and Moral Damage", "Heart", "#ec4899"),
    ("site_reports", "État des lieux et Constats", "Site Reports and Findings", "ClipboardList", "#0891b2"),
    ("legal_fees", "Honoraires d'avocat et Frais de Justice", "Legal Fees and Court Costs", "DollarSign", "#65a30d"),
    ("formal_notices", "Mises en Demeure et Sommations", "Formal Notices and Summons", "Bell", "#ea580c"),
    ("agreements", "Protocoles d'Accord", "Agreements and Protocols", "Handshake", "#8b5cf6"),
    ("summons", "Assignations et Citations", "Summons and Citations", "Gavel", "#0369a1"),
    ("jurisprudence", "Jurisprudence et Précédents", "Case Law and Precedents", "BookOpen", "#4338ca"),
    ("media_proofs", "Preuves Photographiques et Vidéos", "Photographic and Video Evidence", "Camera", "#be123c"),
    ("contracts", "Contrats et Engagements Commerciaux", "Contracts and Commercial Commitments", "FileSignature", "#0d9488"),
    ("others", "AUTRES (Documents divers)", "OTHERS (Miscellaneous Documents)", "FolderOpen", "#64748b"),
]


def seed_default_categories(db: Session) -> int:
    """Insert the fixed categories when the table is empty. Returns rows inserted."""
    existing = db.query(Category).count()
    if existing:
        logger.info(f"Categories already seeded ({existing})")
        return 0

    for sort_order, (name_key, name_fr, name_en, icon, color) in enumerate(DEFAULT_CATEGORIES, start=1):
        db.add(Category(
            name_key=name_key,
            name_fr=name_fr,
            name_en=name_en,
            icon=icon,
            color=color,
            sort_order=sort_order,
            is_active=True,
        ))
    db.commit()

    logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} default categories")
    return len(DEFAULT_CATEGORIES)


def seed_default_permissions(db: Session) -> int:
    """One row per role x active category, only when the table is empty."""
    if db.query(DocumentPermission).count():
        logger.info("Permissions already seeded")
        return 0

    categories = db.query(Category).filter(Category.is_active == True).all()  # noqa: E712
    created = 0
    for category in categories:
        for role, caps in DEFAULT_ROLE_POLICY.items():
            db.add(DocumentPermission(
                role=role,
                category_id=category.id,
                can_view=caps.can_view,
                can_upload=caps.can_upload,
                can_edit=caps.can_edit,
                can_delete=caps.can_delete,
            ))
            created += 1
    db.commit()

    logger.info(f"Seeded {created} permission rows")
    return created


def ensure_owner_user(db: Session, settings) -> Optional[User]:
    """Make sure the configured owner exists as an active admin."""
    if not settings.owner_email:
        return None

    email = settings.owner_email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, name=settings.owner_name, login_method="password")
        db.add(user)
        logger.info(f"Created owner user {email}")

    user.role = UserRole.ADMIN
    user.is_active = True
    if settings.owner_password:
        user.password_hash = get_password_hash(settings.owner_password)
    db.commit()
    return user


def bootstrap(database, settings) -> None:
    """Create tables and seed reference data."""
    database.create_all()
    with database.session() as db:
        seed_default_categories(db)
        seed_default_permissions(db)
        ensure_owner_user(db, settings)
