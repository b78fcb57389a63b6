"""
App, Auth & Dashboard Tests
===========================

Health, security headers, error envelope, login/logout and the dashboard.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from dossier_backend.api import create_app
from dossier_backend.auth import create_access_token, get_password_hash
from dossier_backend.dashboard import RECENT_LIMIT, get_dashboard
from dossier_backend.db import AuditLog, EventType, User, UserRole
from dossier_backend.documents import soft_delete_document, upload_document
from dossier_backend.timeline import create_timeline_event


class TestAppBasics:
    """Health check and middleware"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["storage_backend"] == "local"

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in response.headers

    def test_enforce_https_redirects(self, settings, database, storage):
        settings.enforce_https = True
        app = create_app(settings=settings, database=database, storage=storage)

        with TestClient(app) as c:
            response = c.get("/health", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"].startswith("https://")

    def test_validation_error_envelope(self, client, headers_for):
        response = client.post("/api/v1/documents/search", headers=headers_for(UserRole.ADMIN), json={"category_id": "abc"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["details"]["errors"]

    def test_startup_creates_owner(self, settings, database, storage, db):
        settings.owner_email = "Owner@Example.com"
        settings.owner_password = "correct horse battery"
        app = create_app(settings=settings, database=database, storage=storage)

        with TestClient(app):
            pass

        owner = db.query(User).filter(User.email == "owner@example.com").one()
        assert owner.role == UserRole.ADMIN
        assert owner.password_hash


class TestAuthEndpoints:
    """/api/v1/auth/*"""

    @pytest.fixture
    def member(self, db):
        user = User(
            email="lawyer2@example.com",
            name="Maître Martin",
            role=UserRole.LAWYER,
            login_method="password",
            password_hash=get_password_hash("s3cret-password"),
        )
        db.add(user)
        db.commit()
        return user

    def test_me_anonymous(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json() is None

    def test_me_with_bearer(self, client, headers_for):
        response = client.get("/api/v1/auth/me", headers=headers_for(UserRole.EXPERT))

        assert response.json()["role"] == "expert"
        assert response.json()["is_admin"] is False

    def test_login_sets_cookie_and_audits(self, client, member, settings, db):
        response = client.post("/api/v1/auth/login", json={"email": "lawyer2@example.com", "password": "s3cret-password"})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == member.id
        assert settings.session_cookie_name in response.cookies
        assert db.query(AuditLog).filter(AuditLog.action == "user_login").count() == 1

        # Cookie alone authenticates
        me = client.get("/api/v1/auth/me")
        assert me.json()["email"] == "lawyer2@example.com"

    def test_login_bad_password(self, client, member):
        response = client.post("/api/v1/auth/login", json={"email": "lawyer2@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_logout(self, client):
        response = client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_invalid_token_is_anonymous(self, client):
        response = client.get("/api/v1/documents", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_token_for_unknown_user(self, client, settings):
        token = create_access_token({"sub": "4242", "role": "admin"}, settings)

        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.json() is None


class TestDashboard:
    """dashboard.get_dashboard and GET /api/v1/dashboard"""

    def test_aggregates(self, db, storage, auth_for, meta, users):
        admin = auth_for(UserRole.ADMIN)
        first = upload_document(db, storage, admin, meta, category_id=1, file_name="a.pdf", data=b"a")
        upload_document(db, storage, admin, meta, category_id=1, file_name="b.pdf", data=b"b")
        upload_document(db, storage, admin, meta, category_id=2, file_name="c.pdf", data=b"c")
        soft_delete_document(db, admin, meta, first.document_id)
        create_timeline_event(
            db, event_type=EventType.MILESTONE, title_fr="Jalon", title_en="Milestone",
            event_date=datetime(2024, 1, 1),
        )

        dashboard = get_dashboard(db)

        assert dashboard["total_documents"] == 2
        counts = {c["category_id"]: c["count"] for c in dashboard["documents_by_category"]}
        assert counts[1] == 1
        assert counts[2] == 1
        assert counts[15] == 0
        assert dashboard["active_users"] == 4
        # 3 uploads + 1 delete + 1 milestone
        assert dashboard["timeline_events"] == 5
        assert len(dashboard["recent_documents"]) == 2
        assert dashboard["case"]["status"] is None

    def test_endpoint(self, client, headers_for):
        response = client.get("/api/v1/dashboard", headers=headers_for(UserRole.OBSERVER))

        assert response.status_code == 200
        body = response.json()
        assert body["total_documents"] == 0
        assert len(body["documents_by_category"]) == 15
        assert body["recent_documents"] == []

    def test_recent_lists_capped(self, db, storage, auth_for, meta):
        admin = auth_for(UserRole.ADMIN)
        for i in range(RECENT_LIMIT + 2):
            upload_document(db, storage, admin, meta, category_id=1, file_name=f"{i}.pdf", data=b"x")

        dashboard = get_dashboard(db)

        assert dashboard["total_documents"] == RECENT_LIMIT + 2
        assert dashboard["timeline_events"] == RECENT_LIMIT + 2
        assert len(dashboard["recent_documents"]) == RECENT_LIMIT
        assert len(dashboard["recent_events"]) == RECENT_LIMIT
        assert dashboard["recent_documents"][0].file_name == f"{RECENT_LIMIT + 1}.pdf"
