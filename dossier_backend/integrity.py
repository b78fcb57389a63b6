"""
Integrity proof for uploaded files.

The digest is computed once over the exact bytes received and stored verbatim.
"""

import hashlib
import json
from datetime import datetime, timezone


def sha256_hex(data: bytes) -> str:
    """64-char lowercase hex SHA-256 of `data`."""
    return hashlib.sha256(data).hexdigest()


def verify_digest(data: bytes, expected: str) -> bool:
    return sha256_hex(data) == (expected or "").lower()


def build_timestamp_proof(
    sha256: str,
    uploaded_by: int,
    file_name: str,
    file_size: int,
    uploaded_at: datetime,
) -> str:
    """
    Serialized proof blob stored alongside the document row.

    `uploaded_at` is naive UTC; the proof carries it as ISO-8601 with a Z suffix.
    """
    if uploaded_at.tzinfo is not None:
        uploaded_at = uploaded_at.astimezone(timezone.utc).replace(tzinfo=None)
    return json.dumps({
        "uploadedAt": uploaded_at.isoformat(timespec="milliseconds") + "Z",
        "uploadedBy": uploaded_by,
        "sha256": sha256,
        "fileName": file_name,
        "fileSize": file_size,
    })
