"""
SQLAlchemy Models for Database
==============================

Schema for a single legal case vault:
- Users with a closed set of roles
- 15 fixed document categories
- Documents (object storage + SHA-256 integrity proof, soft delete)
- Role x category permission table
- Bilingual timeline events (append-only)
- Audit log (append-only)
- Case information (singleton)
- Saved searches

Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import enum
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, Enum, ForeignKey,
    BigInteger, UniqueConstraint, Index, JSON
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    """Platform roles. Document capabilities come only from the permission table."""
    ADMIN = "admin"
    LAWYER = "lawyer"
    EXPERT = "expert"
    OBSERVER = "observer"


class EventType(str, enum.Enum):
    """Timeline event kinds"""
    DOCUMENT_UPLOAD = "document_upload"
    DOCUMENT_VIEW = "document_view"
    DOCUMENT_EDIT = "document_edit"
    DOCUMENT_DELETE = "document_delete"
    USER_LOGIN = "user_login"
    USER_ACTION = "user_action"
    MILESTONE = "milestone"
    MEETING = "meeting"
    DEADLINE = "deadline"
    CUSTOM = "custom"


# Kinds a user may create by hand; the rest are emitted by the system.
USER_EVENT_TYPES = (EventType.MILESTONE, EventType.MEETING, EventType.DEADLINE, EventType.CUSTOM)


class CaseStatus(str, enum.Enum):
    """Case lifecycle status"""
    ACTIVE = "active"
    PENDING = "pending"
    CLOSED = "closed"
    ARCHIVED = "archived"


# =============================================================================
# USERS & CATEGORIES
# =============================================================================

class User(Base):
    """Platform user / utilisateur"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)
    login_method = Column(String(64), nullable=True)  # password / sso
    role = Column(Enum(UserRole), default=UserRole.OBSERVER, nullable=False)
    organization = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_signed_in = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    documents = relationship("Document", back_populates="uploader")
    saved_searches = relationship("SavedSearch", back_populates="user")


class Category(Base):
    """Document category / catégorie"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name_key = Column(String(100), nullable=False, unique=True)  # i18n key: "contracts", ...
    name_fr = Column(Text, nullable=False)
    name_en = Column(Text, nullable=False)
    icon = Column(String(50), nullable=False)  # UI icon name
    color = Column(String(20), nullable=False)  # hex colour
    sort_order = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    documents = relationship("Document", back_populates="category")
    permissions = relationship("DocumentPermission", back_populates="category")


# =============================================================================
# DOCUMENTS & PERMISSIONS
# =============================================================================

class Document(Base):
    """Stored document / pièce"""
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # File info
    file_name = Column(Text, nullable=False)
    file_size = Column(BigInteger, nullable=False)  # bytes
    mime_type = Column(String(100), nullable=False)

    # Storage
    storage_key = Column(Text, nullable=False)
    storage_url = Column(Text, nullable=False)

    # Integrity proof, computed once at upload
    sha256_hash = Column(String(64), nullable=False)
    timestamp_proof = Column(Text, nullable=True)  # JSON certificate

    description = Column(Text, nullable=True)
    tags = Column(JSON, default=list)
    version = Column(Integer, default=1, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_document_category_deleted", "category_id", "is_deleted"),
        Index("ix_document_uploaded_at", "uploaded_at"),
    )

    # Relationships
    category = relationship("Category", back_populates="documents")
    uploader = relationship("User", back_populates="documents")


class DocumentPermission(Base):
    """Capabilities of a role on a category"""
    __tablename__ = "document_permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role = Column(Enum(UserRole), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    can_view = Column(Boolean, default=False, nullable=False)
    can_upload = Column(Boolean, default=False, nullable=False)
    can_edit = Column(Boolean, default=False, nullable=False)
    can_delete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("role", "category_id", name="uq_permission_role_category"),
    )

    # Relationships
    category = relationship("Category", back_populates="permissions")


# =============================================================================
# TIMELINE / AUDIT
# =============================================================================

class TimelineEvent(Base):
    """Case chronology entry, never updated once written"""
    __tablename__ = "timeline_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(Enum(EventType), nullable=False)
    title_fr = Column(Text, nullable=False)
    title_en = Column(Text, nullable=False)
    description_fr = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    related_document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)
    metadata_json = Column(JSON, nullable=True)
    event_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_timeline_event_date", "event_date"),
    )


class AuditLog(Base):
    """Who did what, when and from where. Append-only."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    action = Column(String(100), nullable=False)  # "upload_document", "update_user_role", ...
    entity_type = Column(String(50), nullable=False)  # "document", "user", "case_info", ...
    entity_id = Column(Integer, nullable=True)
    details_fr = Column(Text, nullable=False)
    details_en = Column(Text, nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    metadata_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_user", "user_id", "created_at"),
        Index("ix_audit_action", "action"),
    )


# =============================================================================
# CASE INFO / SAVED SEARCHES
# =============================================================================

class CaseInfo(Base):
    """The case itself / dossier. At most one row."""
    __tablename__ = "case_info"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_number = Column(String(100), nullable=True, unique=True)
    title_fr = Column(Text, nullable=False, default="")
    title_en = Column(Text, nullable=False, default="")
    description_fr = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    amount = Column(BigInteger, nullable=True)  # cents
    currency = Column(String(3), default="EUR")
    status = Column(Enum(CaseStatus), default=CaseStatus.ACTIVE, nullable=False)
    client_name = Column(Text, nullable=True)
    opposing_party = Column(Text, nullable=True)
    jurisdiction = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=True)
    expected_end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SavedSearch(Base):
    """Named document search criteria owned by a user"""
    __tablename__ = "saved_searches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    search_name = Column(String(200), nullable=False)
    search_criteria = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="saved_searches")
