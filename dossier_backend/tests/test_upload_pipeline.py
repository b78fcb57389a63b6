"""
Upload Pipeline Tests
=====================

Permission gate, digest, storage, document row, audit and timeline side effects.
"""

import hashlib
import json
from unittest.mock import patch

import pytest

from dossier_backend.db import AuditLog, Document, EventType, TimelineEvent, UserRole
from dossier_backend.documents import upload_document
from dossier_backend.errors import ForbiddenError, StorageError

PDF_BYTES = b"%PDF-1.4 expert report on structural damage"


def _counts(db):
    return (
        db.query(Document).count(),
        db.query(AuditLog).count(),
        db.query(TimelineEvent).count(),
    )


class TestUploadService:
    """documents.upload_document"""

    def test_admin_upload_succeeds(self, db, storage, auth_for, meta):
        result = upload_document(
            db, storage, auth_for(UserRole.ADMIN), meta,
            category_id=1, file_name="report.pdf", data=PDF_BYTES, mime_type="application/pdf",
        )

        assert result.success
        assert len(result.sha256_hash) == 64
        assert result.sha256_hash == result.sha256_hash.lower()
        assert all(c in "0123456789abcdef" for c in result.sha256_hash)
        assert result.storage_url

    def test_stored_digest_matches_bytes(self, db, storage, auth_for, meta, tmp_path):
        result = upload_document(
            db, storage, auth_for(UserRole.LAWYER), meta,
            category_id=1, file_name="report.pdf", data=PDF_BYTES,
        )

        document = db.query(Document).filter(Document.id == result.document_id).one()
        assert document.sha256_hash == hashlib.sha256(PDF_BYTES).hexdigest()
        assert (tmp_path / "storage" / document.storage_key).read_bytes() == PDF_BYTES
        assert document.file_size == len(PDF_BYTES)

    def test_one_document_one_audit_one_event(self, db, storage, auth_for, meta):
        admin = auth_for(UserRole.ADMIN)
        result = upload_document(
            db, storage, admin, meta,
            category_id=1, file_name="report.pdf", data=PDF_BYTES,
        )

        assert _counts(db) == (1, 1, 1)

        audit = db.query(AuditLog).one()
        assert audit.action == "upload_document"
        assert audit.entity_id == result.document_id
        assert audit.user_id == admin.user_id
        assert audit.ip_address == "127.0.0.1"
        assert audit.metadata_json == {
            "categoryId": 1,
            "fileSize": len(PDF_BYTES),
            "sha256Hash": result.sha256_hash,
        }

        event = db.query(TimelineEvent).one()
        assert event.event_type == EventType.DOCUMENT_UPLOAD
        assert event.related_document_id == result.document_id
        assert event.actor_id == admin.user_id

    def test_timestamp_proof(self, db, storage, auth_for, meta):
        expert = auth_for(UserRole.EXPERT)
        result = upload_document(
            db, storage, expert, meta,
            category_id=3, file_name="deed.pdf", data=PDF_BYTES,
        )

        document = db.query(Document).filter(Document.id == result.document_id).one()
        proof = json.loads(document.timestamp_proof)
        assert proof["sha256"] == result.sha256_hash
        assert proof["uploadedBy"] == expert.user_id
        assert proof["fileName"] == "deed.pdf"
        assert proof["fileSize"] == len(PDF_BYTES)
        assert proof["uploadedAt"].endswith("Z")
        assert proof["uploadedAt"][:19] == document.uploaded_at.isoformat()[:19]

    def test_storage_key_layout(self, db, storage, auth_for, meta):
        admin = auth_for(UserRole.ADMIN)
        first = upload_document(db, storage, admin, meta, category_id=1, file_name="same.pdf", data=b"a")
        second = upload_document(db, storage, admin, meta, category_id=1, file_name="same.pdf", data=b"b")

        keys = [d.storage_key for d in db.query(Document).order_by(Document.id)]
        assert keys[0] != keys[1]
        for key in keys:
            assert key.startswith(f"documents/{admin.user_id}/")
            assert key.endswith("-same.pdf")
        assert first.document_id != second.document_id

    def test_observer_upload_forbidden_without_side_effects(self, db, storage, auth_for, meta, tmp_path):
        with pytest.raises(ForbiddenError):
            upload_document(
                db, storage, auth_for(UserRole.OBSERVER), meta,
                category_id=1, file_name="report.pdf", data=PDF_BYTES,
            )

        assert _counts(db) == (0, 0, 0)
        assert not (tmp_path / "storage" / "documents").exists()

    def test_storage_failure_writes_nothing(self, db, storage, auth_for, meta):
        with patch.object(storage, "put", side_effect=StorageError("Failed to store file")):
            with pytest.raises(StorageError):
                upload_document(
                    db, storage, auth_for(UserRole.ADMIN), meta,
                    category_id=1, file_name="report.pdf", data=PDF_BYTES,
                )

        assert _counts(db) == (0, 0, 0)

    def test_tags_and_description_kept(self, db, storage, auth_for, meta):
        result = upload_document(
            db, storage, auth_for(UserRole.ADMIN), meta,
            category_id=14, file_name="lease.pdf", data=PDF_BYTES,
            description="Signed lease", tags=["lease", "2021"],
        )

        document = db.query(Document).filter(Document.id == result.document_id).one()
        assert document.tags == ["lease", "2021"]
        assert document.description == "Signed lease"
        assert document.version == 1
        assert document.is_deleted is False


class TestUploadEndpoint:
    """POST /api/v1/documents"""

    def test_multipart_upload(self, client, headers_for, db):
        response = client.post(
            "/api/v1/documents",
            headers=headers_for(UserRole.ADMIN),
            files={"file": ("report.pdf", PDF_BYTES, "application/pdf")},
            data={"category_id": "1", "description": "Expert report", "tags": '["expertise", "2024"]'},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["sha256_hash"] == hashlib.sha256(PDF_BYTES).hexdigest()
        assert body["storage_url"]

        document = db.query(Document).filter(Document.id == body["document_id"]).one()
        assert document.mime_type == "application/pdf"
        assert document.tags == ["expertise", "2024"]

    def test_observer_gets_structured_forbidden(self, client, headers_for, db):
        response = client.post(
            "/api/v1/documents",
            headers=headers_for(UserRole.OBSERVER),
            files={"file": ("report.pdf", PDF_BYTES, "application/pdf")},
            data={"category_id": "1"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"
        assert _counts(db) == (0, 0, 0)

    def test_upload_requires_authentication(self, client):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("report.pdf", PDF_BYTES, "application/pdf")},
            data={"category_id": "1"},
        )

        assert response.status_code == 401

    def test_storage_failure_is_unavailable(self, client, headers_for, storage):
        with patch.object(storage, "put", side_effect=StorageError("Failed to store file")):
            response = client.post(
                "/api/v1/documents",
                headers=headers_for(UserRole.ADMIN),
                files={"file": ("report.pdf", PDF_BYTES, "application/pdf")},
                data={"category_id": "1"},
            )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "storage_error"

    def test_invalid_tags_rejected(self, client, headers_for):
        response = client.post(
            "/api/v1/documents",
            headers=headers_for(UserRole.ADMIN),
            files={"file": ("report.pdf", PDF_BYTES, "application/pdf")},
            data={"category_id": "1", "tags": "[not json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "bad_request"
