"""
Case API
========

Endpoints for users, timeline, audit log, case information, saved searches
and the dashboard.

Endpoints:
- GET   /api/v1/users
- GET   /api/v1/users/{user_id}
- POST  /api/v1/users                       (admin)
- PATCH /api/v1/users/{user_id}/role        (admin)
- POST  /api/v1/users/{user_id}/deactivate  (admin)
- GET   /api/v1/timeline
- GET   /api/v1/timeline/type/{event_type}
- GET   /api/v1/timeline/search?query=
- POST  /api/v1/timeline
- GET   /api/v1/audit
- GET   /api/v1/audit/user/{user_id}
- GET   /api/v1/audit/action/{action}
- GET   /api/v1/case
- PUT   /api/v1/case                        (admin)
- GET   /api/v1/saved-searches
- POST  /api/v1/saved-searches
- GET   /api/v1/dashboard
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from . import audit as audit_service
from . import case_info as case_service
from . import saved_searches as search_service
from . import timeline as timeline_service
from . import users as user_service
from .audit import RequestMeta
from .auth import AuthContext
from .dashboard import get_dashboard
from .db.models import EventType
from .dependencies import get_db, get_request_meta, require_admin, require_auth
from .errors import NotFoundError
from .schemas import (
    AuditLogResponse,
    CaseInfoResponse,
    CaseInfoUpdate,
    CreateTimelineEventRequest,
    CreateUserRequest,
    DashboardResponse,
    SavedSearchRequest,
    SavedSearchResponse,
    TimelineEventResponse,
    UpdateRoleRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["case"])


# =============================================================================
# USERS
# =============================================================================

@router.get("/users", response_model=List[UserResponse])
async def api_list_users(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Active users only"""
    return user_service.list_active_users(db)


@router.get("/users/{user_id}", response_model=UserResponse)
async def api_get_user(
    user_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    user = user_service.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


@router.post("/users", response_model=UserResponse, status_code=201)
async def api_create_user(
    body: CreateUserRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
    meta: RequestMeta = Depends(get_request_meta),
):
    try:
        return user_service.create_user(
            db,
            auth,
            meta,
            email=body.email,
            name=body.name,
            role=body.role,
            password=body.password,
            organization=body.organization,
            phone=body.phone,
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def api_update_user_role(
    user_id: int,
    body: UpdateRoleRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
    meta: RequestMeta = Depends(get_request_meta),
):
    return user_service.update_user_role(db, auth, meta, user_id, body.role)


@router.post("/users/{user_id}/deactivate", response_model=UserResponse)
async def api_deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
    meta: RequestMeta = Depends(get_request_meta),
):
    return user_service.deactivate_user(db, auth, meta, user_id)


# =============================================================================
# TIMELINE
# =============================================================================

@router.get("/timeline", response_model=List[TimelineEventResponse])
async def api_list_timeline(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return timeline_service.list_timeline_events(db)


@router.get("/timeline/type/{event_type}", response_model=List[TimelineEventResponse])
async def api_timeline_by_type(
    event_type: EventType,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return timeline_service.list_timeline_events_by_type(db, event_type)


@router.get("/timeline/search", response_model=List[TimelineEventResponse])
async def api_search_timeline(
    query: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return timeline_service.search_timeline_events(db, query)


@router.post("/timeline", response_model=TimelineEventResponse, status_code=201)
async def api_create_timeline_event(
    body: CreateTimelineEventRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    meta: RequestMeta = Depends(get_request_meta),
):
    return timeline_service.create_custom_event(db, auth, meta, body)


# =============================================================================
# AUDIT
# =============================================================================

@router.get("/audit", response_model=List[AuditLogResponse])
async def api_list_audit(
    request: Request,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Newest first, capped at the configured limit"""
    cap = request.app.state.settings.audit_list_limit
    return audit_service.list_audit_logs(db, min(limit or cap, cap))


@router.get("/audit/user/{user_id}", response_model=List[AuditLogResponse])
async def api_audit_by_user(
    user_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return audit_service.list_audit_logs_by_user(db, user_id)


@router.get("/audit/action/{action}", response_model=List[AuditLogResponse])
async def api_audit_by_action(
    action: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return audit_service.list_audit_logs_by_action(db, action)


# =============================================================================
# CASE INFO
# =============================================================================

@router.get("/case", response_model=Optional[CaseInfoResponse])
async def api_get_case_info(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return case_service.get_case_info(db)


@router.put("/case", response_model=CaseInfoResponse)
async def api_update_case_info(
    body: CaseInfoUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
    meta: RequestMeta = Depends(get_request_meta),
):
    return case_service.update_case_info(db, auth, meta, body.model_dump(exclude_unset=True))


# =============================================================================
# SAVED SEARCHES
# =============================================================================

@router.get("/saved-searches", response_model=List[SavedSearchResponse])
async def api_list_saved_searches(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return search_service.list_saved_searches(db, auth.user_id)


@router.post("/saved-searches", response_model=SavedSearchResponse, status_code=201)
async def api_create_saved_search(
    body: SavedSearchRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    meta: RequestMeta = Depends(get_request_meta),
):
    return search_service.create_saved_search(db, auth, meta, body.search_name, body.search_criteria)


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/dashboard", response_model=DashboardResponse)
async def api_dashboard(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return get_dashboard(db)
