"""
Permission Table Tests
======================

Seeding, capability lookup and the permission endpoints.
"""

import pytest

from dossier_backend.db import Category, DocumentPermission, UserRole
from dossier_backend.errors import ForbiddenError
from dossier_backend.permissions import (
    Capabilities,
    DEFAULT_ROLE_POLICY,
    get_capabilities,
    list_permissions_for_role,
    require_capability,
)
from dossier_backend.seed import DEFAULT_CATEGORIES, seed_default_categories, seed_default_permissions


class TestSeeding:
    """Startup seeding is idempotent"""

    def test_fifteen_categories_in_order(self, db):
        categories = db.query(Category).order_by(Category.sort_order).all()

        assert len(categories) == 15
        assert [c.sort_order for c in categories] == list(range(1, 16))
        assert categories[0].name_key == "expertise_reports"
        assert categories[-1].name_key == "others"

    def test_category_names_match_the_case_vocabulary(self, db):
        by_key = {c.name_key: c for c in db.query(Category).all()}

        assert by_key["property_proofs"].name_fr == "Inventaires et Preuves de Propriété"
        assert by_key["damage_proofs"].name_en == "Material Damage Proofs"
        assert by_key["correspondence"].name_fr == "Correspondances et Actes d'Huissier"
        assert by_key["media_proofs"].name_en == "Photographic and Video Evidence"
        assert by_key["others"].name_fr == "AUTRES (Documents divers)"
        assert by_key["others"].name_en == "OTHERS (Miscellaneous Documents)"

    def test_seeding_twice_creates_no_duplicates(self, db):
        assert seed_default_categories(db) == 0
        assert seed_default_permissions(db) == 0

        assert db.query(Category).count() == len(DEFAULT_CATEGORIES)
        assert db.query(DocumentPermission).count() == len(DEFAULT_CATEGORIES) * len(UserRole)

    def test_rows_follow_default_policy(self, db):
        for row in db.query(DocumentPermission).all():
            expected = DEFAULT_ROLE_POLICY[row.role]
            assert Capabilities.from_row(row) == expected


class TestCapabilities:
    """Capability lookup from the permission table"""

    def test_missing_row_means_no_access(self, db):
        db.query(DocumentPermission).filter(
            DocumentPermission.role == UserRole.LAWYER,
            DocumentPermission.category_id == 1,
        ).delete()
        db.commit()

        caps = get_capabilities(db, UserRole.LAWYER, 1)

        assert caps == Capabilities.none()
        assert not caps.can_view

    def test_unknown_category_means_no_access(self, db):
        assert get_capabilities(db, UserRole.ADMIN, 9999) == Capabilities.none()

    @pytest.mark.parametrize("role,capability,allowed", [
        (UserRole.ADMIN, "delete", True),
        (UserRole.LAWYER, "edit", True),
        (UserRole.LAWYER, "delete", False),
        (UserRole.EXPERT, "upload", True),
        (UserRole.EXPERT, "edit", False),
        (UserRole.OBSERVER, "view", True),
        (UserRole.OBSERVER, "upload", False),
    ])
    def test_seeded_policy(self, db, role, capability, allowed):
        assert get_capabilities(db, role, 1).allows(capability) is allowed

    def test_table_row_overrides_role(self, db):
        """Permissions come only from rows, never from the role itself"""
        row = db.query(DocumentPermission).filter(
            DocumentPermission.role == UserRole.OBSERVER,
            DocumentPermission.category_id == 2,
        ).one()
        row.can_upload = True
        db.commit()

        assert get_capabilities(db, UserRole.OBSERVER, 2).can_upload
        assert not get_capabilities(db, UserRole.OBSERVER, 1).can_upload

    def test_require_capability_raises_forbidden(self, db):
        with pytest.raises(ForbiddenError) as exc_info:
            require_capability(db, UserRole.OBSERVER, 1, "upload")

        assert exc_info.value.status_code == 403
        assert "upload" in exc_info.value.message

    def test_require_capability_rejects_unknown_name(self, db):
        with pytest.raises(ValueError):
            require_capability(db, UserRole.ADMIN, 1, "share")

    def test_list_permissions_for_role(self, db):
        rows = list_permissions_for_role(db, UserRole.EXPERT)

        assert len(rows) == 15
        assert all(r.role == UserRole.EXPERT for r in rows)


class TestPermissionEndpoints:
    """GET /api/v1/permissions/*"""

    def test_my_permissions(self, client, headers_for):
        response = client.get("/api/v1/permissions/me", headers=headers_for(UserRole.OBSERVER))

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 15
        assert all(r["can_view"] and not r["can_upload"] for r in rows)

    def test_role_permissions(self, client, headers_for):
        response = client.get("/api/v1/permissions/role/admin", headers=headers_for(UserRole.LAWYER))

        assert response.status_code == 200
        assert all(r["can_delete"] for r in response.json())

    def test_requires_authentication(self, client):
        response = client.get("/api/v1/permissions/me")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"
