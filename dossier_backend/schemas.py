"""
Pydantic Schemas for Dossier Backend
====================================

Request/response models for the HTTP API. Responses are built from ORM rows
(`from_attributes`), so field names follow the table columns.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, EmailStr, field_validator

from .db.models import CaseStatus, EventType, UserRole


# =============================================================================
# AUTH / USERS
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ActorResponse(BaseModel):
    """The authenticated actor"""
    id: int
    email: str
    name: Optional[str] = None
    role: UserRole
    is_admin: bool


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: ActorResponse


class UserResponse(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: UserRole
    organization: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_signed_in: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreateUserRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    role: UserRole = UserRole.OBSERVER
    password: Optional[str] = Field(None, min_length=8)
    organization: Optional[str] = None
    phone: Optional[str] = None


class UpdateRoleRequest(BaseModel):
    role: UserRole


# =============================================================================
# CATEGORIES / PERMISSIONS
# =============================================================================

class CategoryResponse(BaseModel):
    id: int
    name_key: str
    name_fr: str
    name_en: str
    icon: str
    color: str
    sort_order: int

    class Config:
        from_attributes = True


class PermissionResponse(BaseModel):
    role: UserRole
    category_id: int
    can_view: bool
    can_upload: bool
    can_edit: bool
    can_delete: bool

    class Config:
        from_attributes = True


# =============================================================================
# DOCUMENTS
# =============================================================================

class DocumentResponse(BaseModel):
    id: int
    category_id: int
    uploaded_by: int
    file_name: str
    file_size: int
    mime_type: str
    storage_key: str
    storage_url: str
    sha256_hash: str
    timestamp_proof: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    version: int
    uploaded_at: datetime

    class Config:
        from_attributes = True


class UploadResponse(BaseModel):
    """Upload pipeline result"""
    success: bool
    document_id: int
    sha256_hash: str
    storage_url: str


class DocumentSearchRequest(BaseModel):
    """All provided criteria must match"""
    query: Optional[str] = Field(None, description="Substring of file name or description")
    category_id: Optional[int] = None
    uploaded_by: Optional[int] = None
    start_date: Optional[datetime] = Field(None, description="Inclusive lower bound on upload time")
    end_date: Optional[datetime] = Field(None, description="Inclusive upper bound on upload time")
    tags: List[str] = Field(default_factory=list, description="Every tag must be present")

    class Config:
        json_schema_extra = {
            "example": {
                "query": "contract",
                "start_date": "2024-01-01T00:00:00",
                "end_date": "2024-12-31T23:59:59",
            }
        }


class CategoryCount(BaseModel):
    category_id: int
    count: int


class DocumentStatsResponse(BaseModel):
    total: int
    by_category: List[CategoryCount]


class SuccessResponse(BaseModel):
    success: bool = True


# =============================================================================
# TIMELINE / AUDIT
# =============================================================================

class TimelineEventResponse(BaseModel):
    id: int
    event_type: EventType
    title_fr: str
    title_en: str
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    actor_id: Optional[int] = None
    related_document_id: Optional[int] = None
    metadata_json: Optional[Dict[str, Any]] = None
    event_date: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class CreateTimelineEventRequest(BaseModel):
    """Manual timeline entry; system kinds are not accepted"""
    event_type: Literal["milestone", "meeting", "deadline", "custom"]
    title_fr: str = Field(..., min_length=1)
    title_en: str = Field(..., min_length=1)
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    event_date: datetime
    related_document_id: Optional[int] = None


class AuditLogResponse(BaseModel):
    id: int
    user_id: int
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    details_fr: str
    details_en: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata_json: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# CASE INFO / SAVED SEARCHES / DASHBOARD
# =============================================================================

class CaseInfoResponse(BaseModel):
    id: int
    case_number: Optional[str] = None
    title_fr: str
    title_en: str
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: CaseStatus
    client_name: Optional[str] = None
    opposing_party: Optional[str] = None
    jurisdiction: Optional[str] = None
    start_date: Optional[datetime] = None
    expected_end_date: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class CaseInfoUpdate(BaseModel):
    """Only provided fields are written"""
    case_number: Optional[str] = None
    title_fr: Optional[str] = None
    title_en: Optional[str] = None
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    amount: Optional[int] = Field(None, ge=0, description="Amount in cents")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: Optional[CaseStatus] = None
    client_name: Optional[str] = None
    opposing_party: Optional[str] = None
    jurisdiction: Optional[str] = None
    start_date: Optional[datetime] = None
    expected_end_date: Optional[datetime] = None

    @field_validator("title_fr", "title_en", "status")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class SavedSearchRequest(BaseModel):
    search_name: str = Field(..., min_length=1, max_length=200)
    search_criteria: Dict[str, Any]


class SavedSearchResponse(BaseModel):
    id: int
    user_id: int
    search_name: str
    search_criteria: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True


class DashboardCategory(BaseModel):
    category_id: int
    name_key: str
    name_fr: str
    name_en: str
    color: str
    icon: str
    count: int


class DashboardCase(BaseModel):
    title_fr: Optional[str] = None
    title_en: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: Optional[str] = None


class DashboardResponse(BaseModel):
    total_documents: int
    documents_by_category: List[DashboardCategory]
    active_users: int
    timeline_events: int
    case: DashboardCase
    recent_documents: List[DocumentResponse]
    recent_events: List[TimelineEventResponse]
