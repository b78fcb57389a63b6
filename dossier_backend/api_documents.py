"""
Documents API
=============

Endpoints for categories, permissions and documents.

Endpoints:
- GET    /api/v1/categories
- GET    /api/v1/categories/{category_id}
- GET    /api/v1/permissions/me
- GET    /api/v1/permissions/role/{role}
- GET    /api/v1/documents
- GET    /api/v1/documents/stats
- GET    /api/v1/documents/category/{category_id}
- GET    /api/v1/documents/{document_id}
- POST   /api/v1/documents              (multipart upload)
- POST   /api/v1/documents/search
- DELETE /api/v1/documents/{document_id}
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from . import categories as category_service
from . import documents as document_service
from .audit import RequestMeta
from .auth import AuthContext
from .db.models import UserRole
from .dependencies import get_db, get_request_meta, get_storage, require_auth
from .errors import NotFoundError
from .permissions import list_permissions_for_role
from .schemas import (
    CategoryResponse,
    DocumentResponse,
    DocumentSearchRequest,
    DocumentStatsResponse,
    PermissionResponse,
    SuccessResponse,
    UploadResponse,
)
from .storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


def _parse_tags(raw: Optional[str]) -> List[str]:
    """Tags arrive as a JSON array string or a comma separated list."""
    if not raw or not raw.strip():
        return []
    raw = raw.strip()
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid tags JSON")
        if not isinstance(parsed, list):
            raise HTTPException(status_code=400, detail="Tags must be a list")
        return [str(t).strip() for t in parsed if str(t).strip()]
    return [t.strip() for t in raw.split(",") if t.strip()]


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/categories", response_model=List[CategoryResponse])
async def api_list_categories(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return category_service.list_categories(db)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def api_get_category(
    category_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    category = category_service.get_category(db, category_id)
    if not category:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


# =============================================================================
# PERMISSIONS
# =============================================================================

@router.get("/permissions/me", response_model=List[PermissionResponse])
async def api_my_permissions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Permission rows for the caller's role"""
    return list_permissions_for_role(db, auth.role)


@router.get("/permissions/role/{role}", response_model=List[PermissionResponse])
async def api_role_permissions(
    role: UserRole,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return list_permissions_for_role(db, role)


# =============================================================================
# DOCUMENTS
# =============================================================================

@router.get("/documents", response_model=List[DocumentResponse])
async def api_list_documents(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return document_service.list_documents(db)


@router.get("/documents/stats", response_model=DocumentStatsResponse)
async def api_document_stats(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return document_service.get_document_stats(db)


@router.get("/documents/category/{category_id}", response_model=List[DocumentResponse])
async def api_documents_by_category(
    category_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return document_service.list_documents_by_category(db, category_id)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def api_get_document(
    document_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    meta: RequestMeta = Depends(get_request_meta),
):
    """Fetch one document; the access is audited."""
    document = document_service.view_document(db, auth, meta, document_id)
    if not document:
        raise NotFoundError("Document not found", details={"document_id": document_id})
    return document


@router.post("/documents", response_model=UploadResponse)
async def api_upload_document(
    file: UploadFile = File(...),
    category_id: int = Form(...),
    description: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    storage: Storage = Depends(get_storage),
    auth: AuthContext = Depends(require_auth),
    meta: RequestMeta = Depends(get_request_meta),
):
    """
    Upload one file into a category.

    Form fields:
    - file: the document
    - category_id: target category
    - description: optional free text
    - tags: optional JSON array (or comma separated list)
    """
    data = await file.read()
    result = document_service.upload_document(
        db,
        storage,
        auth,
        meta,
        category_id=category_id,
        file_name=file.filename or "file",
        data=data,
        mime_type=file.content_type,
        description=description,
        tags=_parse_tags(tags),
    )
    return result.to_dict()


@router.post("/documents/search", response_model=List[DocumentResponse])
async def api_search_documents(
    body: DocumentSearchRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    criteria = document_service.DocumentSearch(**body.model_dump())
    return document_service.search_documents(db, criteria)


@router.delete("/documents/{document_id}", response_model=SuccessResponse)
async def api_delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    meta: RequestMeta = Depends(get_request_meta),
):
    document_service.soft_delete_document(db, auth, meta, document_id)
    return {"success": True}
