"""
Database Package - SQLAlchemy
=============================

Record store for the case vault.
"""

from .models import (
    Base,
    User, Category, Document, DocumentPermission,
    TimelineEvent, AuditLog, CaseInfo, SavedSearch,
    UserRole, EventType, CaseStatus, USER_EVENT_TYPES,
)
from .session import Database

__all__ = [
    # Base
    "Base",
    # Entities
    "User", "Category", "Document", "DocumentPermission",
    "TimelineEvent", "AuditLog", "CaseInfo", "SavedSearch",
    # Enums
    "UserRole", "EventType", "CaseStatus", "USER_EVENT_TYPES",
    # Session
    "Database",
]
